"""Bearer-token authentication against Supabase Auth.

Tokens are verified locally: HS256 with the project JWT secret, or ES256 with
a key from the project's JWKS endpoint. The ``alg`` header only decides which
verifier runs first; both are tried before a token is rejected.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Optional

import jwt
from fastapi import Header
from jwt import PyJWKClient

from app.core.config import Settings, get_settings
from app.core.errors import AuthenticationError, ReceiptError

logger = logging.getLogger(__name__)

JWKS_PATH = "/auth/v1/.well-known/jwks.json"

_jwks_clients: dict[str, PyJWKClient] = {}
_jwks_lock = threading.Lock()

Verifier = Callable[[str, Settings], Optional[dict[str, Any]]]


@dataclass
class CurrentUser:
    id: str
    email: Optional[str] = None


def _jwks_client_for(url: str) -> PyJWKClient:
    client = _jwks_clients.get(url)
    if client is None:
        with _jwks_lock:
            client = _jwks_clients.setdefault(url, PyJWKClient(url, cache_keys=True, lifespan=3600))
    return client


def _decode(token: str, key, algorithm: str, settings: Settings) -> dict[str, Any]:
    audience = (settings.supabase_jwt_audience or "").strip()
    return jwt.decode(
        token,
        key,
        algorithms=[algorithm],
        audience=audience or None,
        options={"verify_aud": bool(audience)},
    )


def verify_with_secret(token: str, settings: Settings) -> Optional[dict[str, Any]]:
    if not settings.supabase_jwt_secret:
        return None
    try:
        return _decode(token, settings.supabase_jwt_secret, "HS256", settings)
    except jwt.InvalidTokenError as exc:
        logger.debug("HS256 verification failed: %s", exc)
        return None


def verify_with_jwks(token: str, settings: Settings) -> Optional[dict[str, Any]]:
    base = (settings.supabase_url or "").rstrip("/")
    if not base:
        return None
    try:
        signing_key = _jwks_client_for(base + JWKS_PATH).get_signing_key_from_jwt(token)
        return _decode(token, signing_key.key, "ES256", settings)
    except (jwt.InvalidTokenError, jwt.PyJWKClientError) as exc:
        logger.debug("ES256 verification failed: %s", exc)
        return None


def _verifiers_for(alg: str) -> tuple[Verifier, ...]:
    if alg == "ES256":
        return (verify_with_jwks, verify_with_secret)
    return (verify_with_secret, verify_with_jwks)


def _bearer_token(authorization: Optional[str]) -> str:
    scheme, _, token = (authorization or "").partition(" ")
    token = token.strip()
    if scheme != "Bearer" or not token:
        raise AuthenticationError("Missing Authorization bearer token.")
    return token


def get_current_user(
    authorization: Optional[str] = Header(None, alias="Authorization"),
) -> CurrentUser:
    token = _bearer_token(authorization)
    settings = get_settings()

    if not settings.supabase_jwt_secret and not settings.supabase_url:
        raise ReceiptError("SUPABASE_JWT_SECRET is not configured.")

    try:
        alg = jwt.get_unverified_header(token).get("alg", "")
    except jwt.DecodeError as exc:
        raise AuthenticationError() from exc

    payload = None
    for verify in _verifiers_for(alg):
        payload = verify(token, settings)
        if payload is not None:
            break

    if payload is None or not payload.get("sub"):
        raise AuthenticationError()

    return CurrentUser(id=str(payload["sub"]), email=payload.get("email"))
