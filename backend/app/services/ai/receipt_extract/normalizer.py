"""Coerce untrusted model output into an ``ExtractedReceipt``.

The model is prompted with a strict output schema but is not trusted to honor
it. Each field has its own coercion function; a bad value only ever blanks its
own field, so ``normalize`` never raises.
"""

from __future__ import annotations

import math
import re
from collections.abc import Iterable
from typing import Any, Optional

from .contracts import DEFAULT_CURRENCY, MAX_TOTAL_CENTS, ExtractedReceipt

_ISO_DATE_RE = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}")
_NUMERIC_RE = re.compile(r"[+-]?(?:[0-9]+(?:\.[0-9]*)?|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")


def to_number(value: Any) -> Optional[float]:
    """Numbers pass through, numeric strings are parsed, everything else is ``None``."""
    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not _NUMERIC_RE.fullmatch(value):
            return None
    elif not isinstance(value, (int, float)):
        return None
    try:
        number = float(value)
    except OverflowError:
        return None
    return number if math.isfinite(number) else None


def _trimmed_or_none(value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return None
    trimmed = value.strip()
    return trimmed or None


def coerce_merchant(value: Any) -> Optional[str]:
    return _trimmed_or_none(value)


def coerce_txn_date(value: Any) -> Optional[str]:
    trimmed = _trimmed_or_none(value)
    if trimmed is None:
        return None
    # Common model glitches: '""', "//"
    if trimmed == "//" or trimmed.replace('"', "") == "":
        return None
    return trimmed if _ISO_DATE_RE.fullmatch(trimmed) else None


def coerce_total_cents(value: Any) -> Optional[int]:
    if isinstance(value, int) and not isinstance(value, bool):
        cents = value
    else:
        number = to_number(value)
        if number is None or not number.is_integer():
            return None
        cents = int(number)
    return cents if 0 <= cents <= MAX_TOTAL_CENTS else None


def coerce_currency(value: Any, allowed: Optional[Iterable[str]] = None) -> str:
    trimmed = _trimmed_or_none(value)
    if trimmed is None:
        return DEFAULT_CURRENCY
    code = trimmed.upper()
    if allowed is not None and code not in allowed:
        return DEFAULT_CURRENCY
    return code


def coerce_category(value: Any) -> Optional[str]:
    return _trimmed_or_none(value)


def coerce_confidence(value: Any) -> Optional[float]:
    number = to_number(value)
    if number is None or number < 0 or number > 1:
        return None
    return number


def coerce_notes(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None


def normalize(raw: Any, *, allowed_currencies: Optional[Iterable[str]] = None) -> ExtractedReceipt:
    """Build an ``ExtractedReceipt`` from any JSON value.

    Non-object input is treated as an empty object and extraneous keys are
    ignored. With *allowed_currencies* set, unknown currency codes fall back
    to the default currency.
    """
    data = raw if isinstance(raw, dict) else {}
    allowed = frozenset(code.upper() for code in allowed_currencies) if allowed_currencies else None

    return ExtractedReceipt(
        merchant=coerce_merchant(data.get("merchant")),
        txn_date=coerce_txn_date(data.get("txn_date")),
        total_cents=coerce_total_cents(data.get("total_cents")),
        currency=coerce_currency(data.get("currency"), allowed),
        category=coerce_category(data.get("category")),
        confidence=coerce_confidence(data.get("confidence")),
        notes=coerce_notes(data.get("notes")),
    )
