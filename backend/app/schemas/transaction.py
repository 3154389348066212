import math
from datetime import datetime
from enum import StrEnum
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.services.ai.receipt_extract.contracts import MAX_TOTAL_CENTS
from app.services.ai.receipt_extract.normalizer import coerce_txn_date, to_number


class SourceType(StrEnum):
    RECEIPT = "receipt"
    SCREENSHOT = "screenshot"


def normalize_source_type(value: Any) -> SourceType:
    """``screenshot`` stays, anything else (legacy ``camera``/``upload`` included) is a receipt."""
    if isinstance(value, str) and value.strip().lower() == SourceType.SCREENSHOT:
        return SourceType.SCREENSHOT
    return SourceType.RECEIPT


# --- Pipeline ---


class ProcessRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    image_path: str = Field(..., alias="imagePath", min_length=1)
    source_type: SourceType = Field(default=SourceType.RECEIPT, alias="sourceType")

    @field_validator("image_path", mode="before")
    @classmethod
    def _strip_path(cls, value):
        return value.strip() if isinstance(value, str) else value

    @field_validator("source_type", mode="before")
    @classmethod
    def _normalize_source(cls, value):
        return normalize_source_type(value)


class TransactionRecord(BaseModel):
    """Row handed to the persistence collaborator after normalization."""

    user_id: str
    source_type: SourceType
    image_path: str
    merchant: Optional[str] = None
    txn_date: Optional[str] = None
    total_cents: Optional[int] = None
    currency: str
    category: Optional[str] = None
    confidence: Optional[float] = None
    notes: Optional[str] = None
    ai_json: dict[str, Any]


class TransactionOut(BaseModel):
    id: str
    user_id: str
    created_at: Optional[datetime] = None
    txn_date: Optional[str] = None
    merchant: Optional[str] = None
    total_cents: Optional[int] = None
    currency: Optional[str] = None
    category: Optional[str] = None
    source_type: str
    image_path: Optional[str] = None
    ai_json: Optional[dict[str, Any]] = None
    confidence: Optional[float] = None
    notes: Optional[str] = None


class ProcessResponse(BaseModel):
    transaction: TransactionOut


class TransactionListResponse(BaseModel):
    transactions: list[TransactionOut]


# --- Human correction ---


def _trim_or_none(value):
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValueError("must be a string or null")
    return value.strip() or None


class TransactionPatchRequest(BaseModel):
    """Only the fields present in the body are updated."""

    model_config = ConfigDict(extra="forbid")

    id: str = Field(..., min_length=1)
    merchant: Optional[str] = None
    txn_date: Optional[str] = None
    total_cents: Optional[Union[int, float, str]] = None
    currency: Optional[str] = None
    category: Optional[str] = None

    @field_validator("merchant", "category", mode="before")
    @classmethod
    def _trim(cls, value):
        return _trim_or_none(value)

    @field_validator("txn_date", mode="before")
    @classmethod
    def _iso_date(cls, value):
        return coerce_txn_date(_trim_or_none(value))

    @field_validator("currency", mode="before")
    @classmethod
    def _upper_currency(cls, value):
        trimmed = _trim_or_none(value)
        return trimmed.upper() if trimmed else None

    @field_validator("total_cents", mode="before")
    @classmethod
    def _round_cents(cls, value):
        if value is None:
            return None
        if isinstance(value, bool) or not isinstance(value, (int, float, str)):
            raise ValueError("must be a number, a numeric string or null")
        number = to_number(value)
        if number is None:
            return None
        # Half-up, not banker's rounding.
        cents = math.floor(number + 0.5)
        return cents if 0 <= cents <= MAX_TOTAL_CENTS else None

    def changes(self) -> dict[str, Any]:
        return {
            name: getattr(self, name)
            for name in ("merchant", "txn_date", "total_cents", "currency", "category")
            if name in self.model_fields_set
        }


class TransactionDeleteRequest(BaseModel):
    id: str = Field(..., min_length=1)


class SignedImageResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    signed_url: str = Field(..., alias="signedUrl")
