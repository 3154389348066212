"""Text extraction from Responses-API style envelopes.

The envelope shape is not stable across model/version combinations, so it is
searched with an ordered list of strategies. Each strategy returns the text or
``None``; the first hit wins.
"""

from __future__ import annotations

import json
from collections.abc import Callable, Iterator
from typing import Any, Optional

from app.core.errors import ModelResponseError

Strategy = Callable[[Any], Optional[str]]


def _non_empty(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value
    return None


def _iter_content_parts(payload: Any) -> Iterator[dict]:
    output = payload.get("output") if isinstance(payload, dict) else None
    if not isinstance(output, list):
        return
    for item in output:
        content = item.get("content") if isinstance(item, dict) else None
        if not isinstance(content, list):
            continue
        for part in content:
            if isinstance(part, dict):
                yield part


def direct_output_text(payload: Any) -> Optional[str]:
    if not isinstance(payload, dict):
        return None
    return _non_empty(payload.get("output_text"))


def output_text_part(payload: Any) -> Optional[str]:
    for part in _iter_content_parts(payload):
        if part.get("type") == "output_text":
            text = _non_empty(part.get("text"))
            if text is not None:
                return text
    return None


def output_json_part(payload: Any) -> Optional[str]:
    for part in _iter_content_parts(payload):
        if part.get("type") == "output_json" and part.get("json") is not None:
            return json.dumps(part["json"])
    return None


def any_text_part(payload: Any) -> Optional[str]:
    for part in _iter_content_parts(payload):
        text = _non_empty(part.get("text"))
        if text is not None:
            return text
    return None


STRATEGIES: tuple[Strategy, ...] = (
    direct_output_text,
    output_text_part,
    output_json_part,
    any_text_part,
)


def extract_response_text(payload: Any, strategies: tuple[Strategy, ...] = STRATEGIES) -> str:
    """Return the first text found by *strategies* or raise ``ModelResponseError``."""
    for strategy in strategies:
        text = strategy(payload)
        if text is not None:
            return text
    raise ModelResponseError("Empty model response: no output text or JSON found.")
