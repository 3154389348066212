"""Receipt processing endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from app.api.v1.transactions import transaction_to_out
from app.core.auth import CurrentUser, get_current_user
from app.core.dependencies import get_signed_access, get_transaction_store
from app.core.storage import SignedAccessProvider
from app.schemas.transaction import ProcessRequest, ProcessResponse
from app.services.receipt_pipeline import ReceiptExtractionPipeline
from app.services.transaction_service import TransactionStore

router = APIRouter()


@router.post(
    "/process",
    response_model=ProcessResponse,
    summary="Extract a transaction from an uploaded receipt image",
)
async def process_receipt(
    body: ProcessRequest,
    user: CurrentUser = Depends(get_current_user),
    signer: SignedAccessProvider = Depends(get_signed_access),
    store: TransactionStore = Depends(get_transaction_store),
):
    pipeline = ReceiptExtractionPipeline(signer=signer, store=store)
    txn = await pipeline.run(body.image_path, body.source_type, user)
    return ProcessResponse(transaction=transaction_to_out(txn))
