import abc
import logging
import re

from supabase import create_client

from app.core.config import get_settings
from app.core.errors import StorageError, StorageNotFoundError

logger = logging.getLogger(__name__)

BUCKET_RECEIPTS = "receipts"

_NOT_FOUND_RE = re.compile(r"not\s*found", re.IGNORECASE)


def get_storage_client():
    settings = get_settings()
    key = settings.supabase_service_role_key or settings.supabase_key
    if not settings.supabase_url or not key:
        raise StorageError("Supabase storage credentials are not configured.")
    return create_client(settings.supabase_url, key)


def is_not_found_error(exc: BaseException) -> bool:
    return bool(_NOT_FOUND_RE.search(str(exc)))


def _signed_url_from_result(result) -> str | None:
    if isinstance(result, dict):
        data = result.get("data") if isinstance(result.get("data"), dict) else result
        error = result.get("error")
    else:
        data = getattr(result, "data", None) or {}
        error = getattr(result, "error", None)

    if error:
        message = error.get("message") if isinstance(error, dict) else str(error)
        if _NOT_FOUND_RE.search(message or ""):
            raise StorageNotFoundError(message)
        raise StorageError(message or None)

    if not isinstance(data, dict):
        return None
    return data.get("signedUrl") or data.get("signedURL")


class SignedAccessProvider(abc.ABC):
    """Short-lived read access to private image objects."""

    @abc.abstractmethod
    def sign(self, path: str, ttl_seconds: int) -> str:
        """Return a signed read URL for *path* or raise ``StorageError``."""

    @abc.abstractmethod
    def remove(self, path: str) -> None:
        """Delete the object at *path*; raise ``StorageNotFoundError`` if it is gone."""


class SupabaseSignedAccess(SignedAccessProvider):
    def __init__(self, bucket: str = BUCKET_RECEIPTS, client=None) -> None:
        self._bucket = bucket
        self._client = client

    def _bucket_api(self):
        if self._client is None:
            self._client = get_storage_client()
        return self._client.storage.from_(self._bucket)

    def sign(self, path: str, ttl_seconds: int) -> str:
        try:
            result = self._bucket_api().create_signed_url(path, ttl_seconds)
        except StorageError:
            raise
        except Exception as exc:
            if is_not_found_error(exc):
                raise StorageNotFoundError(str(exc)) from exc
            logger.warning("Signing %s/%s failed: %s", self._bucket, path, exc)
            raise StorageError(str(exc) or None) from exc

        url = _signed_url_from_result(result)
        if not url:
            raise StorageError("No signed URL")
        return url

    def remove(self, path: str) -> None:
        try:
            result = self._bucket_api().remove([path])
        except StorageError:
            raise
        except Exception as exc:
            if is_not_found_error(exc):
                raise StorageNotFoundError(str(exc)) from exc
            raise StorageError(str(exc) or "Failed to delete image.") from exc

        error = result.get("error") if isinstance(result, dict) else getattr(result, "error", None)
        if error:
            message = error.get("message") if isinstance(error, dict) else str(error)
            if _NOT_FOUND_RE.search(message or ""):
                raise StorageNotFoundError(message)
            raise StorageError(message or "Failed to delete image.")
