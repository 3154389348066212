"""Abstract base for all vision providers."""

from __future__ import annotations

import abc
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class ProviderResult:
    """Immutable result returned by every provider."""

    raw_text: str
    model: str
    provider: str
    prompt_tokens: int = 0
    completion_tokens: int = 0
    latency_ms: float = 0.0


class BaseProvider(abc.ABC):
    """Contract that every vision provider must implement."""

    name: str = "base"

    @abc.abstractmethod
    async def generate_from_image(
        self,
        prompt: str,
        image_url: str,
        *,
        response_schema: dict[str, Any],
        model: str = "",
        timeout_seconds: float = 60.0,
    ) -> ProviderResult:
        """Send *prompt* with the image at *image_url* and return the model's text."""
