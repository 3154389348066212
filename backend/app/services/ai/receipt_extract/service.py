"""Receipt vision extraction: one model call per image, bounded by a timeout."""

from __future__ import annotations

import asyncio
import logging

from app.core.errors import ModelTimeoutError
from app.schemas.transaction import SourceType

from ..common import router as ai_router
from ..common.providers.base import ProviderResult
from .contracts import RECEIPT_RESPONSE_SCHEMA, SUGGESTED_CATEGORIES

logger = logging.getLogger(__name__)

RECEIPT_EXTRACT_PROMPT = """You extract transaction info from an image of a {source_type}.
Return best-effort values. If uncertain, use null and lower confidence.
Categories should be one of: {categories}.
If you see a dollar total like 23.47, total_cents should be 2347.
Give correct ISO currency codes like USD, CAD, EUR, etc.
txn_date must be YYYY-MM-DD."""


def build_prompt(source_type: SourceType) -> str:
    return RECEIPT_EXTRACT_PROMPT.format(
        source_type=source_type.value,
        categories=", ".join(SUGGESTED_CATEGORIES),
    )


async def extract_receipt_text(image_url: str, source_type: SourceType) -> ProviderResult:
    """Ask the configured vision model to describe the receipt at *image_url*.

    Raises ``ModelTimeoutError`` when the call exceeds the scope timeout; the
    pending request is cancelled, which closes its HTTP client. The returned
    text is not parsed here.
    """
    config = ai_router.resolve("receipt_extract")
    prompt = build_prompt(source_type)

    try:
        result = await asyncio.wait_for(
            config.provider.generate_from_image(
                prompt,
                image_url,
                response_schema=RECEIPT_RESPONSE_SCHEMA,
                model=config.model,
                timeout_seconds=config.timeout_seconds,
            ),
            timeout=config.timeout_seconds,
        )
    except asyncio.TimeoutError as exc:
        logger.warning("Receipt extraction timed out after %.1fs", config.timeout_seconds)
        raise ModelTimeoutError() from exc

    logger.info(
        "Receipt extraction done provider=%s model=%s tokens=%s/%s latency_ms=%s",
        result.provider,
        result.model,
        result.prompt_tokens,
        result.completion_tokens,
        result.latency_ms,
    )
    return result
