"""Provider factory: returns the configured provider instance."""

from __future__ import annotations

import logging

from app.core.config import get_settings
from app.core.errors import ModelConfigurationError

from .base import BaseProvider, ProviderResult
from .mock import MockProvider

logger = logging.getLogger(__name__)

__all__ = ["get_provider", "BaseProvider", "ProviderResult", "MockProvider"]


def get_provider(provider_name: str) -> BaseProvider:
    """Return a provider instance for *provider_name*.

    Missing credentials and unknown names raise ``ModelConfigurationError``;
    there is no fallback to the mock provider.
    """
    settings = get_settings()
    name = (provider_name or "").lower().strip()

    if name == "mock":
        return MockProvider()

    if name == "openai":
        if not settings.openai_api_key:
            logger.error("OPENAI_API_KEY not set")
            raise ModelConfigurationError("Missing OPENAI_API_KEY.")
        from .openai import OpenAIProvider

        return OpenAIProvider(api_key=settings.openai_api_key, base_url=settings.openai_base_url)

    logger.error("Unknown AI provider %r", name)
    raise ModelConfigurationError(f"Unknown AI provider {name!r}.")
