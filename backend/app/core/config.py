from functools import lru_cache
import json
from pydantic import AliasChoices, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _parse_list_value(value: str) -> list[str]:
    """Accept a JSON array or a comma separated string."""
    raw = (value or "").strip()
    if not raw:
        return []
    items: list = raw.split(",")
    if raw.startswith("["):
        try:
            parsed = json.loads(raw)
        except ValueError:
            parsed = None
        if isinstance(parsed, list):
            items = parsed
    return [str(item).strip() for item in items if str(item).strip()]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        extra="forbid",
        validate_by_name=True,
        populate_by_name=True,
    )
    environment: str = "development"
    log_level: str = "INFO"

    supabase_url: str = ""
    supabase_key: str = ""
    supabase_service_role_key: str = ""
    supabase_jwt_secret: str = ""
    supabase_jwt_audience: str = "authenticated"
    supabase_storage_bucket: str = Field(
        default="receipts",
        validation_alias=AliasChoices("SUPABASE_STORAGE_BUCKET", "NEXT_PUBLIC_SUPABASE_STORAGE_BUCKET"),
    )
    database_url: str = ""

    openai_api_key: str = ""
    openai_base_url: str = "https://api.openai.com/v1"

    ai_receipt_provider: str = "openai"
    ai_receipt_model: str = Field(
        default="gpt-4o-mini",
        validation_alias=AliasChoices("AI_RECEIPT_MODEL", "OPENAI_MODEL"),
    )
    ai_receipt_timeout_seconds: float = 60.0
    signed_url_ttl_seconds: int = 600

    receipt_allowed_currencies_raw: str = Field(
        default="",
        validation_alias=AliasChoices("RECEIPT_ALLOWED_CURRENCIES"),
    )

    docs_enabled: bool = Field(default=True)
    openapi_enabled: bool = Field(default=True)
    expose_error_details: bool = False

    security_headers_enabled: bool = Field(
        default=True,
        validation_alias=AliasChoices("SECURITY_HEADERS_ENABLED", "SECURE_HEADERS_ENABLED"),
    )

    cors_allow_origins_raw: str = Field(
        default="",
        validation_alias=AliasChoices("CORS_ALLOW_ORIGINS"),
    )
    cors_allow_methods_raw: str = Field(
        default="GET,POST,PATCH,DELETE,OPTIONS",
        validation_alias=AliasChoices("CORS_ALLOW_METHODS"),
    )
    cors_allow_headers_raw: str = Field(
        default="Authorization,Content-Type,Accept",
        validation_alias=AliasChoices("CORS_ALLOW_HEADERS"),
    )

    @model_validator(mode="after")
    def _timeout_within_signed_url_ttl(self):
        # The model must never receive an expired link.
        if self.ai_receipt_timeout_seconds >= self.signed_url_ttl_seconds:
            raise ValueError("AI_RECEIPT_TIMEOUT_SECONDS must be smaller than SIGNED_URL_TTL_SECONDS")
        return self

    @property
    def receipt_allowed_currencies(self) -> list[str]:
        return [code.upper() for code in _parse_list_value(self.receipt_allowed_currencies_raw)]

    @property
    def cors_allow_origins(self) -> list[str]:
        return _parse_list_value(self.cors_allow_origins_raw)

    @property
    def cors_allow_methods(self) -> list[str]:
        return _parse_list_value(self.cors_allow_methods_raw)

    @property
    def cors_allow_headers(self) -> list[str]:
        return _parse_list_value(self.cors_allow_headers_raw)

@lru_cache

def get_settings() -> Settings:
    return Settings()
