"""Receipt extraction pipeline.

Orchestrates: sign image URL → vision model → parse JSON → normalize → persist.
Steps run strictly in order and none is retried; a failed run is retried
wholesale by the caller and produces a new row.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Awaitable, Callable
from typing import Any, Optional

from fastapi.concurrency import run_in_threadpool

from app.core.auth import CurrentUser
from app.core.config import Settings, get_settings
from app.core.errors import (
    ModelOutputParseError,
    ModelResponseError,
    PersistenceError,
    ReceiptError,
    StorageError,
)
from app.core.storage import SignedAccessProvider
from app.models.transaction import Transaction
from app.schemas.transaction import SourceType, TransactionRecord
from app.services.ai.common.providers.base import ProviderResult
from app.services.ai.receipt_extract.normalizer import normalize
from app.services.ai.receipt_extract.service import extract_receipt_text
from app.services.transaction_service import TransactionStore

logger = logging.getLogger(__name__)

Extractor = Callable[[str, SourceType], Awaitable[ProviderResult]]


def parse_model_output(raw_text: str) -> Any:
    try:
        return json.loads(raw_text)
    except (json.JSONDecodeError, TypeError) as exc:
        logger.warning("Model output is not JSON: %r", (raw_text or "")[:200])
        raise ModelOutputParseError(detail=str(exc)) from exc


class ReceiptExtractionPipeline:
    def __init__(
        self,
        *,
        signer: SignedAccessProvider,
        store: TransactionStore,
        extractor: Extractor = extract_receipt_text,
        settings: Optional[Settings] = None,
    ) -> None:
        self.signer = signer
        self.store = store
        self.extractor = extractor
        self.settings = settings or get_settings()

    async def _sign(self, image_path: str) -> str:
        try:
            return await run_in_threadpool(
                self.signer.sign, image_path, self.settings.signed_url_ttl_seconds
            )
        except ReceiptError:
            raise
        except Exception as exc:
            logger.exception("Unexpected storage failure for %s", image_path)
            raise StorageError(str(exc) or None) from exc

    async def _extract(self, signed_url: str, source_type: SourceType) -> ProviderResult:
        try:
            return await self.extractor(signed_url, source_type)
        except ReceiptError:
            raise
        except Exception as exc:
            logger.exception("Unexpected vision model failure")
            raise ModelResponseError(str(exc) or None) from exc

    def _persist(self, record: TransactionRecord) -> Transaction:
        try:
            return self.store.insert(record)
        except ReceiptError:
            raise
        except Exception as exc:
            logger.exception("Unexpected persistence failure")
            raise PersistenceError(str(exc) or None) from exc

    async def run(self, image_path: str, source_type: SourceType, user: CurrentUser) -> Transaction:
        logger.info("Pipeline start user=%s image=%s source=%s", user.id, image_path, source_type.value)

        signed_url = await self._sign(image_path)
        logger.info("Pipeline: signed URL ready")

        result = await self._extract(signed_url, source_type)
        raw = parse_model_output(result.raw_text)

        receipt = normalize(raw, allowed_currencies=self.settings.receipt_allowed_currencies or None)
        ai_json = receipt.model_dump()

        txn = self._persist(
            TransactionRecord(
                user_id=user.id,
                source_type=source_type,
                image_path=image_path,
                ai_json=ai_json,
                **ai_json,
            )
        )
        logger.info("Pipeline done transaction=%s", txn.id)
        return txn
