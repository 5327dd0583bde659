from __future__ import annotations

from datetime import datetime, timezone

from fastapi import Depends, FastAPI
from fastapi.testclient import TestClient

from verified_id_common.easy_auth import EasyAuthUser, require_easy_auth
from verified_id_common.exceptions import UpstreamServiceError
from verified_id_common.tracker import InMemoryRequestStore, RequestKind, TrackedRequest
from verified_id_common.web import (
    health_payload,
    ingest_callback,
    install_error_handlers,
    isoformat,
    status_body,
)


def test_isoformat_uses_utc_designator():
    value = datetime(2026, 3, 1, 8, 30, 15, 123456, tzinfo=timezone.utc)
    assert isoformat(value) == "2026-03-01T08:30:15.123Z"
    assert isoformat(None) is None


def test_health_payload_shape():
    payload = health_payload("issue-credential", "production")

    assert payload["status"] == "healthy"
    assert payload["app"] == "issue-credential"
    assert payload["environment"] == "production"
    assert payload["timestamp"].endswith("Z")


def test_status_body_includes_kind_fields():
    created = datetime(2026, 3, 1, tzinfo=timezone.utc)
    record = TrackedRequest(
        id="r1", kind=RequestKind.ISSUANCE, created_at=created, metadata={"pin": "1234"}
    )

    body = status_body(record, pin="1234")

    assert body == {
        "success": True,
        "requestId": "r1",
        "status": "request_created",
        "type": "issuance",
        "created": "2026-03-01T00:00:00.000Z",
        "updated": None,
        "error": None,
        "pin": "1234",
    }


def test_ingest_callback_updates_known_request():
    store = InMemoryRequestStore()
    request_id = store.create("issuance")

    assert ingest_callback(store, {"state": request_id, "code": "request_retrieved"}) is True
    assert store.get(request_id).status == "request_retrieved"


def test_ingest_callback_reads_request_status_field():
    store = InMemoryRequestStore()
    request_id = store.create("issuance")

    ingest_callback(store, {"state": request_id, "requestStatus": "issuance_successful"})

    assert store.get(request_id).status == "issuance_successful"


def test_ingest_callback_stores_error_object():
    store = InMemoryRequestStore()
    request_id = store.create("issuance")
    error = {"code": "IssuanceFlowFailed", "message": "User declined"}

    ingest_callback(store, {"state": request_id, "requestStatus": "issuance_error", "error": error})

    record = store.get(request_id)
    assert record.status == "issuance_error"
    assert record.error == error


def test_ingest_callback_applies_result_extractor():
    store = InMemoryRequestStore()
    request_id = store.create("verification")
    seen = []

    def extractor(status, payload):
        seen.append(status)
        return {"claims": payload["claims"]}

    ingest_callback(
        store,
        {"state": request_id, "code": "presentation_verified", "claims": {"a": 1}},
        extractor,
    )

    assert seen == ["presentation_verified"]
    assert store.get(request_id).result == {"claims": {"a": 1}}


def test_ingest_callback_ignores_unknown_and_incomplete_payloads():
    store = InMemoryRequestStore()
    request_id = store.create("issuance")

    assert ingest_callback(store, {"state": "never-created", "code": "issuance_successful"}) is False
    assert ingest_callback(store, {"code": "issuance_successful"}) is False
    assert ingest_callback(store, {"state": request_id}) is False
    assert ingest_callback(store, {}) is False

    assert store.get(request_id).status == "request_created"
    assert store.get("never-created") is None


def _protected_app() -> FastAPI:
    app = FastAPI()
    install_error_handlers(app)

    @app.get("/whoami")
    async def whoami(user: EasyAuthUser = Depends(require_easy_auth)):
        return {"name": user.name}

    @app.get("/boom")
    async def boom():
        raise UpstreamServiceError("Failed to create issuance request: timeout")

    return app


def test_missing_identity_is_rendered_as_401():
    client = TestClient(_protected_app())

    response = client.get("/whoami")

    assert response.status_code == 401
    assert response.json() == {
        "error": "Authentication required",
        "message": "Please sign in through Azure App Service authentication",
    }


def test_service_errors_are_rendered_with_status_code():
    client = TestClient(_protected_app())

    response = client.get("/boom")

    assert response.status_code == 500
    body = response.json()
    assert body["success"] is False
    assert body["error"] == "Failed to create issuance request: timeout"
