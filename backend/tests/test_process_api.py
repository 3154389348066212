"""Tests for POST /api/v1/process."""

import os
import unittest
from unittest.mock import AsyncMock, patch

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.dependencies import get_db, get_signed_access
from app.core.errors import ModelTimeoutError, StorageNotFoundError
from app.core.storage import SignedAccessProvider
from app.main import app
from app.models.transaction import Base, Transaction
from app.services.ai.common.providers.base import ProviderResult
from app.services.ai.common.router import ResolvedConfig
from conftest import TEST_USER_ID, auth_header

COSTCO_TEXT = (
    '{"merchant":"Costco","txn_date":"2024-03-01","total_cents":4599,"currency":"cad",'
    '"category":"Groceries","confidence":0.92,"notes":null}'
)


class StubSigner(SignedAccessProvider):
    def __init__(self) -> None:
        self.error: Exception | None = None
        self.signed: list[str] = []
        self.removed: list[str] = []

    def sign(self, path: str, ttl_seconds: int) -> str:
        if self.error is not None:
            raise self.error
        self.signed.append(path)
        return f"https://storage.test/{path}?ttl={ttl_seconds}"

    def remove(self, path: str) -> None:
        if self.error is not None:
            raise self.error
        self.removed.append(path)


class ApiTestCase(unittest.TestCase):
    def setUp(self):
        self.engine = create_engine(
            "sqlite://",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
        Base.metadata.create_all(self.engine)
        self.SessionLocal = sessionmaker(bind=self.engine)
        self.signer = StubSigner()

        def override_get_db():
            db = self.SessionLocal()
            try:
                yield db
            finally:
                db.close()

        app.dependency_overrides[get_db] = override_get_db
        app.dependency_overrides[get_signed_access] = lambda: self.signer
        self.client = TestClient(app)

    def tearDown(self):
        self.client.close()
        app.dependency_overrides.clear()
        Base.metadata.drop_all(self.engine)
        self.engine.dispose()

    def _rows(self) -> list[Transaction]:
        db = self.SessionLocal()
        try:
            return db.query(Transaction).all()
        finally:
            db.close()


def _resolved_returning(text: str) -> ResolvedConfig:
    provider = AsyncMock()
    provider.name = "mock"
    provider.generate_from_image.return_value = ProviderResult(raw_text=text, model="test-model", provider="mock")
    return ResolvedConfig(provider=provider, model="test-model", timeout_seconds=60.0)


class ProcessEndpointTests(ApiTestCase):
    def test_costco_receipt_is_stored_and_returned(self):
        with patch("app.services.ai.common.router.resolve", return_value=_resolved_returning(COSTCO_TEXT)):
            resp = self.client.post(
                "/api/v1/process",
                json={"imagePath": f"{TEST_USER_ID}/costco.jpg", "sourceType": "receipt"},
                headers=auth_header(),
            )
        self.assertEqual(resp.status_code, 200, resp.text)
        txn = resp.json()["transaction"]
        self.assertEqual(txn["merchant"], "Costco")
        self.assertEqual(txn["txn_date"], "2024-03-01")
        self.assertEqual(txn["total_cents"], 4599)
        self.assertEqual(txn["currency"], "CAD")
        self.assertEqual(txn["category"], "Groceries")
        self.assertEqual(txn["confidence"], 0.92)
        self.assertEqual(txn["user_id"], TEST_USER_ID)
        self.assertEqual(txn["image_path"], f"{TEST_USER_ID}/costco.jpg")
        self.assertEqual(txn["ai_json"]["currency"], "CAD")
        self.assertTrue(txn["id"])

        rows = self._rows()
        self.assertEqual(len(rows), 1)
        self.assertEqual(str(rows[0].id), txn["id"])
        self.assertEqual(self.signer.signed, [f"{TEST_USER_ID}/costco.jpg"])

    def test_legacy_source_types_become_receipt(self):
        for source in ("camera", "upload", "something-else"):
            with self.subTest(source=source):
                with patch("app.services.ai.common.router.resolve", return_value=_resolved_returning("{}")):
                    resp = self.client.post(
                        "/api/v1/process",
                        json={"imagePath": "x/y.png", "sourceType": source},
                        headers=auth_header(),
                    )
                self.assertEqual(resp.status_code, 200, resp.text)
                self.assertEqual(resp.json()["transaction"]["source_type"], "receipt")

    def test_screenshot_source_type_kept(self):
        with patch("app.services.ai.common.router.resolve", return_value=_resolved_returning("{}")):
            resp = self.client.post(
                "/api/v1/process",
                json={"imagePath": "x/y.png", "sourceType": "screenshot"},
                headers=auth_header(),
            )
        self.assertEqual(resp.status_code, 200, resp.text)
        self.assertEqual(resp.json()["transaction"]["source_type"], "screenshot")

    @patch.dict(os.environ, {"AI_RECEIPT_PROVIDER": "mock"}, clear=False)
    def test_mock_provider_end_to_end(self):
        resp = self.client.post("/api/v1/process", json={"imagePath": "x/y.png"}, headers=auth_header())
        self.assertEqual(resp.status_code, 200, resp.text)
        self.assertEqual(resp.json()["transaction"]["merchant"], "Mock Market")

    def test_missing_token_is_unauthorized(self):
        resp = self.client.post("/api/v1/process", json={"imagePath": "x/y.png", "sourceType": "receipt"})
        self.assertEqual(resp.status_code, 401)
        self.assertEqual(resp.json()["status_class"], "unauthorized")
        self.assertEqual(self.signer.signed, [])

    def test_invalid_token_is_unauthorized(self):
        resp = self.client.post(
            "/api/v1/process",
            json={"imagePath": "x/y.png"},
            headers={"Authorization": "Bearer not-a-jwt"},
        )
        self.assertEqual(resp.status_code, 401)

    def test_empty_image_path_is_bad_input(self):
        resp = self.client.post(
            "/api/v1/process",
            json={"imagePath": "   ", "sourceType": "receipt"},
            headers=auth_header(),
        )
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["status_class"], "bad_input")
        self.assertIn("imagePath", resp.json()["detail"])
        self.assertEqual(self.signer.signed, [])

    def test_malformed_json_body_is_bad_input(self):
        resp = self.client.post(
            "/api/v1/process",
            content=b"{not json",
            headers={**auth_header(), "Content-Type": "application/json"},
        )
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["status_class"], "bad_input")

    def test_missing_image_is_not_found(self):
        self.signer.error = StorageNotFoundError("Object not found")
        resp = self.client.post("/api/v1/process", json={"imagePath": "x/missing.png"}, headers=auth_header())
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(resp.json(), {"detail": "Object not found", "status_class": "not_found"})
        self.assertEqual(self._rows(), [])

    def test_model_timeout_is_distinct(self):
        resolved = _resolved_returning("{}")
        resolved.provider.generate_from_image.side_effect = ModelTimeoutError()
        with patch("app.services.ai.common.router.resolve", return_value=resolved):
            resp = self.client.post("/api/v1/process", json={"imagePath": "x/y.png"}, headers=auth_header())
        self.assertEqual(resp.status_code, 504)
        self.assertEqual(resp.json(), {"detail": "Processing timed out.", "status_class": "upstream_failure"})
        self.assertEqual(self._rows(), [])

    def test_non_json_model_output_is_upstream_failure(self):
        with patch("app.services.ai.common.router.resolve", return_value=_resolved_returning("not json")):
            resp = self.client.post("/api/v1/process", json={"imagePath": "x/y.png"}, headers=auth_header())
        self.assertEqual(resp.status_code, 502)
        self.assertEqual(resp.json()["status_class"], "upstream_failure")
        self.assertEqual(self._rows(), [])

    @patch.dict(os.environ, {"AI_RECEIPT_PROVIDER": "openai", "OPENAI_API_KEY": ""}, clear=False)
    def test_missing_model_credentials(self):
        resp = self.client.post("/api/v1/process", json={"imagePath": "x/y.png"}, headers=auth_header())
        self.assertEqual(resp.status_code, 500)
        self.assertEqual(resp.json()["detail"], "Missing OPENAI_API_KEY.")


class AuthMeTests(ApiTestCase):
    def test_auth_me(self):
        resp = self.client.get("/api/v1/auth/me", headers=auth_header())
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["user_id"], TEST_USER_ID)

    def test_auth_me_requires_bearer_token(self):
        resp = self.client.get("/api/v1/auth/me")
        self.assertEqual(resp.status_code, 401)

    def test_health(self):
        resp = self.client.get("/health")
        self.assertEqual(resp.json(), {"status": "ok"})
        self.assertEqual(resp.headers["X-Content-Type-Options"], "nosniff")


if __name__ == "__main__":
    unittest.main()
