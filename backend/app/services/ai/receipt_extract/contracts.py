"""Receipt extraction scope contracts."""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel

DEFAULT_CURRENCY = "CAD"

# Upper bound of the 32-bit total_cents column.
MAX_TOTAL_CENTS = 2_147_483_647

SUGGESTED_CATEGORIES: tuple[str, ...] = (
    "Groceries",
    "Dining",
    "Transport",
    "Shopping",
    "Bills",
    "Entertainment",
    "Health",
    "Travel",
    "Education",
    "Subscriptions",
    "Income",
    "Other",
)

RECEIPT_FIELDS: tuple[str, ...] = (
    "merchant",
    "txn_date",
    "total_cents",
    "currency",
    "category",
    "confidence",
    "notes",
)

RECEIPT_RESPONSE_SCHEMA: dict[str, Any] = {
    "name": "receipt_extraction",
    "strict": True,
    "schema": {
        "type": "object",
        "additionalProperties": False,
        "properties": {
            "merchant": {"type": ["string", "null"]},
            "txn_date": {
                "type": ["string", "null"],
                "description": "Date if present. Prefer YYYY-MM-DD, otherwise use null.",
            },
            "total_cents": {
                "type": ["integer", "null"],
                "description": "Total amount in cents",
            },
            "currency": {"type": ["string", "null"]},
            "category": {"type": ["string", "null"]},
            "confidence": {"type": ["number", "null"], "minimum": 0, "maximum": 1},
            "notes": {"type": ["string", "null"]},
        },
        "required": list(RECEIPT_FIELDS),
    },
}


class ExtractedReceipt(BaseModel):
    """Normalized receipt. ``None`` means the model gave no usable value."""

    merchant: Optional[str] = None
    txn_date: Optional[str] = None
    total_cents: Optional[int] = None
    currency: str = DEFAULT_CURRENCY
    category: Optional[str] = None
    confidence: Optional[float] = None
    notes: Optional[str] = None
