"""Error taxonomy for the receipt extraction pipeline.

Every error carries a user-facing message, a coarse status class and the HTTP
status the API answers with. ``app.main`` maps them to JSON responses.
"""

from __future__ import annotations

from enum import StrEnum


class StatusClass(StrEnum):
    UNAUTHORIZED = "unauthorized"
    BAD_INPUT = "bad_input"
    UPSTREAM_FAILURE = "upstream_failure"
    NOT_FOUND = "not_found"


class ReceiptError(Exception):
    """Base class for all pipeline errors."""

    status_class: StatusClass = StatusClass.UPSTREAM_FAILURE
    status_code: int = 500
    default_message: str = "Receipt processing failed."

    def __init__(self, message: str | None = None, *, detail: str | None = None) -> None:
        self.message = message or self.default_message
        self.detail = detail
        super().__init__(self.message)


class AuthenticationError(ReceiptError):
    status_class = StatusClass.UNAUTHORIZED
    status_code = 401
    default_message = "Unauthorized."


class ValidationError(ReceiptError):
    status_class = StatusClass.BAD_INPUT
    status_code = 400
    default_message = "Invalid request body."


class StorageError(ReceiptError):
    status_code = 502
    default_message = "Failed to create signed URL."


class StorageNotFoundError(StorageError):
    status_class = StatusClass.NOT_FOUND
    status_code = 404
    default_message = "Image not found."


class ModelConfigurationError(ReceiptError):
    status_code = 500
    default_message = "Vision model is not configured."


class ModelTimeoutError(ReceiptError):
    status_code = 504
    default_message = "Processing timed out."


class ModelResponseError(ReceiptError):
    status_code = 502
    default_message = "Vision model request failed."


class ModelOutputParseError(ReceiptError):
    status_code = 502
    default_message = "Vision model returned invalid JSON."


class PersistenceError(ReceiptError):
    status_code = 500
    default_message = "Failed to store transaction."
