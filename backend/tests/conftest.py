import os
from datetime import datetime, timedelta, timezone

import jwt
import pytest

from app.core.config import get_settings

os.environ.setdefault("SUPABASE_JWT_SECRET", "test-secret")
os.environ.setdefault("SUPABASE_JWT_AUDIENCE", "authenticated")

TEST_USER_ID = "00000000-0000-0000-0000-000000000001"


@pytest.fixture(autouse=True)
def _reset_settings_cache():
    # Some tests mutate env vars and clear the settings cache. Ensure we don't leak
    # a cached Settings instance (e.g. with a different JWT secret) across tests.
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def make_token(
    sub: str = TEST_USER_ID,
    *,
    secret: str | None = None,
    aud: str = "authenticated",
    expires_in: timedelta = timedelta(hours=1),
) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": sub,
        "email": "tests@example.com",
        "aud": aud,
        "iat": int(now.timestamp()),
        "exp": int((now + expires_in).timestamp()),
    }
    token = jwt.encode(payload, secret or os.environ["SUPABASE_JWT_SECRET"], algorithm="HS256")
    if isinstance(token, bytes):
        token = token.decode("utf-8")
    return token


def auth_header(sub: str = TEST_USER_ID) -> dict:
    return {"Authorization": f"Bearer {make_token(sub)}"}
