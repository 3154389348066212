"""Transaction persistence scoped to the owning user."""

from __future__ import annotations

import logging
import uuid
from typing import Any, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.errors import PersistenceError
from app.models.transaction import Transaction
from app.schemas.transaction import TransactionRecord

logger = logging.getLogger(__name__)


class TransactionStore:
    def __init__(self, db: Session) -> None:
        self.db = db

    def insert(self, record: TransactionRecord) -> Transaction:
        """Store one pipeline result; on failure nothing is left behind."""
        txn = Transaction(
            user_id=record.user_id,
            source_type=record.source_type.value,
            image_path=record.image_path,
            merchant=record.merchant,
            txn_date=record.txn_date,
            total_cents=record.total_cents,
            currency=record.currency,
            category=record.category,
            confidence=record.confidence,
            notes=record.notes,
            ai_json=record.ai_json,
        )
        try:
            self.db.add(txn)
            self.db.commit()
            self.db.refresh(txn)
        except (SQLAlchemyError, OverflowError) as exc:
            self.db.rollback()
            logger.warning("Transaction insert failed for user %s: %s", record.user_id, exc)
            raise PersistenceError(str(exc.orig) if getattr(exc, "orig", None) else str(exc)) from exc
        return txn

    def list_for_user(self, user_id: str) -> list[Transaction]:
        return (
            self.db.query(Transaction)
            .filter(Transaction.user_id == user_id)
            .order_by(Transaction.created_at.desc())
            .all()
        )

    def get_for_user(self, user_id: str, transaction_id: str) -> Optional[Transaction]:
        try:
            uuid.UUID(str(transaction_id))
        except ValueError:
            return None
        return (
            self.db.query(Transaction)
            .filter(Transaction.id == transaction_id, Transaction.user_id == user_id)
            .one_or_none()
        )

    def update_for_user(self, user_id: str, transaction_id: str, changes: dict[str, Any]) -> Optional[Transaction]:
        txn = self.get_for_user(user_id, transaction_id)
        if txn is None:
            return None
        for field, value in changes.items():
            setattr(txn, field, value)
        try:
            self.db.commit()
            self.db.refresh(txn)
        except (SQLAlchemyError, OverflowError) as exc:
            self.db.rollback()
            raise PersistenceError(str(exc)) from exc
        return txn

    def delete(self, txn: Transaction) -> None:
        try:
            self.db.delete(txn)
            self.db.commit()
        except (SQLAlchemyError, OverflowError) as exc:
            self.db.rollback()
            raise PersistenceError(str(exc)) from exc
