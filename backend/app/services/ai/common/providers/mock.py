"""Mock provider: deterministic receipt for local development and tests."""

from __future__ import annotations

import json
import time
from typing import Any

from .base import BaseProvider, ProviderResult

MOCK_RECEIPT: dict[str, Any] = {
    "merchant": "Mock Market",
    "txn_date": "2024-01-01",
    "total_cents": 1234,
    "currency": "CAD",
    "category": "Groceries",
    "confidence": 1.0,
    "notes": None,
}


class MockProvider(BaseProvider):
    name = "mock"

    async def generate_from_image(
        self,
        prompt: str,
        image_url: str,
        *,
        response_schema: dict[str, Any],
        model: str = "",
        timeout_seconds: float = 60.0,
    ) -> ProviderResult:
        t0 = time.monotonic()
        text = json.dumps(MOCK_RECEIPT)
        elapsed = (time.monotonic() - t0) * 1000
        return ProviderResult(
            raw_text=text,
            model=model or "mock-v1",
            provider=self.name,
            prompt_tokens=len(prompt.split()),
            completion_tokens=len(text.split()),
            latency_ms=round(elapsed, 2),
        )
