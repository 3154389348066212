"""Transaction list, human correction, delete and signed image link."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.concurrency import run_in_threadpool

from app.core.auth import CurrentUser, get_current_user
from app.core.config import get_settings
from app.core.dependencies import get_signed_access, get_transaction_store
from app.core.errors import StorageNotFoundError
from app.core.storage import SignedAccessProvider
from app.models.transaction import Transaction
from app.schemas.transaction import (
    ProcessResponse,
    SignedImageResponse,
    TransactionDeleteRequest,
    TransactionListResponse,
    TransactionOut,
    TransactionPatchRequest,
)
from app.services.transaction_service import TransactionStore

router = APIRouter()
logger = logging.getLogger(__name__)


def transaction_to_out(txn: Transaction) -> TransactionOut:
    return TransactionOut(
        id=str(txn.id),
        user_id=str(txn.user_id),
        created_at=txn.created_at,
        txn_date=txn.txn_date,
        merchant=txn.merchant,
        total_cents=txn.total_cents,
        currency=txn.currency,
        category=txn.category,
        source_type=txn.source_type,
        image_path=txn.image_path,
        ai_json=txn.ai_json,
        confidence=txn.confidence,
        notes=txn.notes,
    )


@router.get("/transactions", response_model=TransactionListResponse)
def list_transactions(
    user: CurrentUser = Depends(get_current_user),
    store: TransactionStore = Depends(get_transaction_store),
):
    rows = store.list_for_user(user.id)
    return TransactionListResponse(transactions=[transaction_to_out(row) for row in rows])


@router.patch("/transactions", response_model=ProcessResponse)
def correct_transaction(
    body: TransactionPatchRequest,
    user: CurrentUser = Depends(get_current_user),
    store: TransactionStore = Depends(get_transaction_store),
):
    changes = body.changes()
    if not changes:
        raise HTTPException(400, "No fields to update.")

    txn = store.update_for_user(user.id, body.id, changes)
    if txn is None:
        raise HTTPException(404, "Not found.")

    logger.info("Transaction %s corrected fields=%s", txn.id, sorted(changes))
    return ProcessResponse(transaction=transaction_to_out(txn))


@router.delete("/transactions")
async def delete_transaction(
    body: TransactionDeleteRequest,
    user: CurrentUser = Depends(get_current_user),
    signer: SignedAccessProvider = Depends(get_signed_access),
    store: TransactionStore = Depends(get_transaction_store),
):
    txn = store.get_for_user(user.id, body.id)
    if txn is None:
        raise HTTPException(404, "Not found.")

    if txn.image_path:
        try:
            await run_in_threadpool(signer.remove, txn.image_path)
        except StorageNotFoundError:
            # Image already gone; still delete the row.
            logger.info("Image %s already removed", txn.image_path)

    store.delete(txn)
    return {"ok": True}


@router.get("/transactions/image", response_model=SignedImageResponse)
async def transaction_image(
    id: str | None = Query(default=None),
    user: CurrentUser = Depends(get_current_user),
    signer: SignedAccessProvider = Depends(get_signed_access),
    store: TransactionStore = Depends(get_transaction_store),
):
    if not id:
        raise HTTPException(400, "Missing id.")

    txn = store.get_for_user(user.id, id)
    if txn is None:
        raise HTTPException(404, "Not found.")
    if not txn.image_path:
        raise HTTPException(404, "No image available.")

    url = await run_in_threadpool(signer.sign, txn.image_path, get_settings().signed_url_ttl_seconds)
    return SignedImageResponse(signed_url=url)
