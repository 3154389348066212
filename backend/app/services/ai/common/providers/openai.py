"""OpenAI provider (Responses API with image input and JSON-schema output)."""

from __future__ import annotations

import logging
import time
from typing import Any

from app.core.errors import ModelConfigurationError, ModelResponseError, ModelTimeoutError

from ..envelope import extract_response_text
from .base import BaseProvider, ProviderResult

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.openai.com/v1"


class OpenAIProvider(BaseProvider):
    name = "openai"

    def __init__(self, api_key: str, *, base_url: str = DEFAULT_BASE_URL, transport=None) -> None:
        if not api_key:
            raise ModelConfigurationError("Missing OPENAI_API_KEY.")
        self._api_key = api_key
        self._base_url = (base_url or DEFAULT_BASE_URL).rstrip("/")
        self._transport = transport

    def _build_body(self, prompt: str, image_url: str, response_schema: dict[str, Any], model: str) -> dict:
        return {
            "model": model,
            "input": [
                {
                    "role": "user",
                    "content": [
                        {"type": "input_text", "text": prompt},
                        {"type": "input_image", "image_url": image_url},
                    ],
                }
            ],
            "text": {
                "format": {
                    "type": "json_schema",
                    "name": response_schema["name"],
                    "strict": response_schema.get("strict", True),
                    "schema": response_schema["schema"],
                }
            },
        }

    async def generate_from_image(
        self,
        prompt: str,
        image_url: str,
        *,
        response_schema: dict[str, Any],
        model: str = "",
        timeout_seconds: float = 60.0,
    ) -> ProviderResult:
        import httpx

        model = model or "gpt-4o-mini"
        t0 = time.monotonic()

        try:
            async with httpx.AsyncClient(timeout=timeout_seconds, transport=self._transport) as client:
                resp = await client.post(
                    f"{self._base_url}/responses",
                    headers={
                        "Authorization": f"Bearer {self._api_key}",
                        "Content-Type": "application/json",
                    },
                    json=self._build_body(prompt, image_url, response_schema, model),
                )
        except httpx.TimeoutException as exc:
            raise ModelTimeoutError() from exc
        except httpx.HTTPError as exc:
            logger.warning("OpenAI transport error: %s", exc)
            raise ModelResponseError(f"OpenAI request failed: {exc}") from exc

        if not resp.is_success:
            body = resp.text
            logger.warning("OpenAI returned HTTP %s: %s", resp.status_code, body[:500])
            raise ModelResponseError(body or f"OpenAI request failed ({resp.status_code}).", detail=body)

        try:
            data = resp.json()
        except ValueError as exc:
            raise ModelResponseError("OpenAI response body is not JSON.") from exc

        text = extract_response_text(data)
        elapsed = (time.monotonic() - t0) * 1000
        usage = data.get("usage") if isinstance(data, dict) else None
        usage = usage if isinstance(usage, dict) else {}

        return ProviderResult(
            raw_text=text,
            model=str(data.get("model") or model) if isinstance(data, dict) else model,
            provider=self.name,
            prompt_tokens=usage.get("input_tokens", 0),
            completion_tokens=usage.get("output_tokens", 0),
            latency_ms=round(elapsed, 2),
        )
