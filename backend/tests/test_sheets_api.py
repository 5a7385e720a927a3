"""
API Tests for POST /api/google-sheets

Drives the FastAPI app with TestClient. The database session, the
signed-in member and the reconciler are replaced through dependency
overrides; spreadsheet traffic goes through httpx.MockTransport.

Run with: pytest tests/test_sheets_api.py -v
"""

from typing import Dict, Optional
from unittest.mock import MagicMock

import httpx
import pytest
from fastapi.testclient import TestClient

from database import get_db
from middleware.auth import get_current_user_required
from models import MemberFields, MemberRecord, RecordSource
from reconciliation.endpoints.sheets_api import get_reconciler
from reconciliation.services.reconciliation_service import MemberReconciler
from server import app
from services.auth import AuthUser
from sheets import (
    AutomationSheetWriter,
    DirectCellSheetWriter,
    PublicCsvSheetReader,
    SheetsApiClient,
)
from sheets.token_provider import AccessToken, TokenProvider

USER = AuthUser(id="user-1", email="a@b.com", session_id="session-1")

SHEET_CSV = (
    "Email,Tel,Topic,Keyword,Title,IG Link\n"
    "a@b.com,555,topicX,kwY,titleZ,http://ig/x\n"
    "other@x.com,000,t,k,ti,ig\n"
)


class InMemoryMemberStore:
    """Stands in for MemberStore; keyed by user id."""

    def __init__(self, records: Optional[Dict[str, MemberRecord]] = None):
        self.records = records or {}
        self.updates = []

    async def get_member(self, user_id: str) -> Optional[MemberRecord]:
        return self.records.get(user_id)

    async def update_member(self, user_id: str, email: str, fields: MemberFields) -> None:
        self.updates.append((user_id, email, fields))
        self.records[user_id] = MemberRecord(
            email=email, source=RecordSource.database, **fields.model_dump()
        )


class StaticTokenProvider(TokenProvider):
    async def mint_access_token(self) -> AccessToken:
        return AccessToken(value="test-token", expires_at=float("inf"))


def _csv_reader(text: str = SHEET_CSV) -> PublicCsvSheetReader:
    return PublicCsvSheetReader(
        "sheet-123",
        transport=httpx.MockTransport(lambda request: httpx.Response(200, text=text)),
    )


def _automation_writer(success: bool = True) -> AutomationSheetWriter:
    body = {"success": True} if success else {"success": False, "error": "Script quota exceeded"}
    return AutomationSheetWriter(
        "https://automation.example.test/exec",
        transport=httpx.MockTransport(lambda request: httpx.Response(200, json=body)),
    )


@pytest.fixture
def store():
    return InMemoryMemberStore()


@pytest.fixture
def wiring():
    """Reader and writer handed to the reconciler; tests swap them per case."""
    return {"reader": _csv_reader(), "writer": _automation_writer()}


@pytest.fixture
def client(store, wiring):
    """Authenticated client with an in-memory store, CSV reader and webhook writer."""

    async def override_db():
        yield MagicMock()

    async def override_user():
        return USER

    async def override_reconciler():
        return MemberReconciler(store, wiring["reader"], wiring["writer"])

    app.dependency_overrides[get_db] = override_db
    app.dependency_overrides[get_current_user_required] = override_user
    app.dependency_overrides[get_reconciler] = override_reconciler

    yield TestClient(app)

    app.dependency_overrides.clear()


# ==================== READ ====================

class TestReadAction:

    def test_found_in_spreadsheet(self, client):
        response = client.post("/api/google-sheets", json={"action": "read", "email": "A@B.COM"})

        assert response.status_code == 200
        assert response.json() == {
            "found": True,
            "userData": {
                "email": "a@b.com",
                "tel": "555",
                "topic": "topicX",
                "keyword": "kwY",
                "title": "titleZ",
                "igLink": "http://ig/x",
                "rowIndex": 2,
            },
        }

    def test_not_found(self, client, wiring):
        wiring["reader"] = _csv_reader("Email,Tel\nsomeone@x.com,1\n")
        response = client.post("/api/google-sheets", json={"action": "read", "email": "a@b.com"})

        assert response.status_code == 200
        assert response.json() == {"found": False}

    def test_database_wins_over_spreadsheet(self, client, store, wiring):
        store.records[USER.id] = MemberRecord(email="a@b.com", tel="111", source=RecordSource.database)
        wiring["reader"] = _csv_reader("Email,Tel\na@b.com,000\n")

        response = client.post("/api/google-sheets", json={"action": "read", "email": "a@b.com"})

        user_data = response.json()["userData"]
        assert user_data["tel"] == "111"
        assert user_data["rowIndex"] is None

    def test_spreadsheet_fetch_failure_is_500(self, client, wiring):
        wiring["reader"] = PublicCsvSheetReader(
            "sheet-123",
            transport=httpx.MockTransport(lambda request: httpx.Response(503)),
        )
        response = client.post("/api/google-sheets", json={"action": "read", "email": "a@b.com"})

        assert response.status_code == 500
        assert response.json() == {"error": "Failed to fetch spreadsheet: 503"}


# ==================== UPDATE ====================

class TestUpdateAction:

    def test_update_success(self, client, store):
        response = client.post("/api/google-sheets", json={
            "action": "update",
            "email": "a@b.com",
            "rowIndex": 2,
            "data": {"tel": "999", "topic": "t", "keyword": "k", "title": "ti", "igLink": "ig"},
        })

        assert response.status_code == 200
        assert response.json() == {"success": True}
        user_id, email, fields = store.updates[0]
        assert (user_id, email) == ("user-1", "a@b.com")
        assert fields.social_link == "ig"

    def test_spreadsheet_failure_reports_sync_warning(self, client, store, wiring):
        wiring["writer"] = _automation_writer(success=False)
        response = client.post("/api/google-sheets", json={
            "action": "update", "email": "a@b.com", "data": {"tel": "999"},
        })

        assert response.status_code == 200
        assert response.json() == {"success": True, "syncWarning": "Script quota exceeded"}
        assert store.records[USER.id].tel == "999"

    def test_row_owned_by_another_email_is_403_without_writes(self, client, store, wiring):
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            if request.method == "GET":
                return httpx.Response(200, json={"values": [["other@x.com"]]})
            return httpx.Response(200, json={})

        api_client = SheetsApiClient(StaticTokenProvider(), "sheet-123", transport=httpx.MockTransport(handler))
        wiring["writer"] = DirectCellSheetWriter(api_client, "Sheet1", wiring["reader"])

        response = client.post("/api/google-sheets", json={
            "action": "update", "email": "a@b.com", "rowIndex": 2, "data": {"tel": "999"},
        })

        assert response.status_code == 403
        assert response.json() == {"error": "Unauthorized: Email mismatch"}
        assert [r.method for r in requests] == ["GET"]
        assert store.updates == []

    def test_row_index_must_be_positive(self, client):
        response = client.post("/api/google-sheets", json={
            "action": "update", "email": "a@b.com", "rowIndex": 0, "data": {},
        })
        assert response.status_code == 400
        assert "error" in response.json()

    def test_update_without_data_leaves_record_untouched(self, client, store):
        store.records[USER.id] = MemberRecord(
            email="a@b.com", tel="111", topic="T", source=RecordSource.database
        )

        response = client.post("/api/google-sheets", json={"action": "update", "email": "a@b.com"})

        assert response.status_code == 400
        assert response.json() == {"error": "Update data is required"}
        assert store.updates == []
        assert store.records[USER.id].tel == "111"
        assert store.records[USER.id].topic == "T"


# ==================== REQUEST VALIDATION ====================

class TestRequestValidation:

    def test_invalid_action(self, client):
        response = client.post("/api/google-sheets", json={"action": "delete", "email": "a@b.com"})
        assert response.status_code == 400
        assert response.json() == {"error": "Invalid action"}

    def test_missing_action_is_invalid_action(self, client):
        response = client.post("/api/google-sheets", json={"email": "a@b.com"})
        assert response.status_code == 400
        assert response.json() == {"error": "Invalid action"}

    def test_email_required(self, client):
        response = client.post("/api/google-sheets", json={"action": "read"})
        assert response.status_code == 400

    def test_body_email_must_match_signed_in_member(self, client, store):
        response = client.post("/api/google-sheets", json={
            "action": "update", "email": "other@x.com", "data": {"tel": "1"},
        })
        assert response.status_code == 403
        assert response.json() == {"error": "Unauthorized: Email mismatch"}
        assert store.updates == []

    def test_non_json_body(self, client):
        response = client.post(
            "/api/google-sheets",
            content=b"action=read",
            headers={"Content-Type": "application/x-www-form-urlencoded"},
        )
        assert response.status_code == 500
        assert "error" in response.json()


# ==================== AUTH & CORS ====================

class TestAuthAndCors:

    def test_missing_token_is_401(self):
        async def override_db():
            yield MagicMock()

        app.dependency_overrides[get_db] = override_db
        try:
            response = TestClient(app).post("/api/google-sheets", json={"action": "read", "email": "a@b.com"})
        finally:
            app.dependency_overrides.clear()

        assert response.status_code == 401
        assert response.json()["error"] == "Not authenticated"

    def test_options_returns_empty_200(self, client):
        response = client.options("/api/google-sheets")
        assert response.status_code == 200
        assert response.content == b""

    def test_preflight_allows_dashboard_headers(self, client):
        response = client.options("/api/google-sheets", headers={
            "Origin": "https://dashboard.example.test",
            "Access-Control-Request-Method": "POST",
            "Access-Control-Request-Headers": "authorization, x-client-info, apikey, content-type",
        })

        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] == "*"
        allowed = response.headers["access-control-allow-headers"].lower()
        for header in ("authorization", "x-client-info", "apikey", "content-type"):
            assert header in allowed

    def test_responses_carry_cors_and_request_id(self, client):
        response = client.post(
            "/api/google-sheets",
            json={"action": "read", "email": "a@b.com"},
            headers={"Origin": "https://dashboard.example.test", "X-Request-ID": "req-test"},
        )
        assert response.headers["access-control-allow-origin"] == "*"
        assert response.headers["x-request-id"] == "req-test"

    def test_unexpected_error_keeps_cors_headers(self):
        async def override_db():
            yield MagicMock()

        async def override_user():
            return USER

        async def failing_reconciler():
            raise RuntimeError("reconciler wiring exploded")

        app.dependency_overrides[get_db] = override_db
        app.dependency_overrides[get_current_user_required] = override_user
        app.dependency_overrides[get_reconciler] = failing_reconciler
        try:
            response = TestClient(app, raise_server_exceptions=False).post(
                "/api/google-sheets",
                json={"action": "read", "email": "a@b.com"},
                headers={"Origin": "https://dashboard.example.test"},
            )
        finally:
            app.dependency_overrides.clear()

        assert response.status_code == 500
        assert "error" in response.json()
        assert response.headers["access-control-allow-origin"] == "*"
