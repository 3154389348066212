"""AI Router: resolves provider + model + timeout for a scope from settings."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from app.core.config import get_settings

from .providers import BaseProvider, get_provider

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedConfig:
    """Final resolved provider + model for one call."""

    provider: BaseProvider
    model: str
    timeout_seconds: float


def resolve(scope: str) -> ResolvedConfig:
    """Resolve provider + model for a given *scope*.

    Only ``"receipt_extract"`` exists today; it reads ``AI_RECEIPT_PROVIDER``,
    ``AI_RECEIPT_MODEL`` and ``AI_RECEIPT_TIMEOUT_SECONDS``.
    """
    settings = get_settings()
    if scope != "receipt_extract":
        raise ValueError(f"Unknown AI scope {scope!r}")

    provider = get_provider(settings.ai_receipt_provider)
    logger.debug("Resolved %s -> %s:%s", scope, provider.name, settings.ai_receipt_model)

    return ResolvedConfig(
        provider=provider,
        model=settings.ai_receipt_model,
        timeout_seconds=settings.ai_receipt_timeout_seconds,
    )
