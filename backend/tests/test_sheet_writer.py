"""
Unit Tests for spreadsheet writers

Tests:
- AutomationSheetWriter request body and success flag handling
- DirectCellSheetWriter ownership check (no writes on mismatch)
- Sequential cell updates and the atomic batchUpdate mode

Run with: pytest tests/test_sheet_writer.py -v
"""

import json
from unittest.mock import AsyncMock

import httpx
import pytest

from sheets.client import SheetsApiClient
from sheets.errors import SheetWriteError, Unauthorized
from sheets.token_provider import AccessToken, TokenProvider
from sheets.writer import AutomationSheetWriter, DirectCellSheetWriter, SheetIdentity

AUTOMATION_URL = "https://automation.example.test/exec"


class StaticTokenProvider(TokenProvider):
    async def mint_access_token(self) -> AccessToken:
        return AccessToken(value="test-token", expires_at=float("inf"))


class FakeSheetsApi:
    """Records Sheets API calls and serves the email column."""

    def __init__(self, emails_by_row=None, fail_on_put=None):
        self.emails_by_row = emails_by_row or {}
        self.fail_on_put = fail_on_put
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if request.method == "GET":
            row = int(path.rsplit("!A", 1)[1])
            email = self.emails_by_row.get(row)
            return httpx.Response(200, json={"values": [[email]]} if email else {})

        if request.method == "PUT":
            if self.fail_on_put and path.endswith(self.fail_on_put):
                return httpx.Response(500, text="backend error")
            return httpx.Response(200, json={"updatedCells": 1})

        return httpx.Response(200, json={"totalUpdatedCells": 5})

    @property
    def writes(self):
        return [r for r in self.requests if r.method in ("PUT", "POST")]


def _direct_writer(api: FakeSheetsApi, reader=None, atomic=False) -> DirectCellSheetWriter:
    client = SheetsApiClient(StaticTokenProvider(), "sheet-123", transport=httpx.MockTransport(api))
    return DirectCellSheetWriter(client, "Sheet1", reader or AsyncMock(), atomic=atomic)


# ==================== AUTOMATION WRITER ====================

class TestAutomationSheetWriter:

    @pytest.mark.asyncio
    async def test_posts_record_with_wire_names(self, member_fields):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"success": True})

        writer = AutomationSheetWriter(AUTOMATION_URL, transport=httpx.MockTransport(handler))
        await writer.write(SheetIdentity("amy@example.com", 4), member_fields)

        body = json.loads(seen[0].content)
        assert str(seen[0].url) == AUTOMATION_URL
        assert body == {
            "email": "amy@example.com",
            "rowIndex": 4,
            "tel": "0912-345-678",
            "topic": "Design",
            "keyword": "ux",
            "title": "Lead",
            "igLink": "@amy",
        }

    @pytest.mark.asyncio
    async def test_success_false_is_an_error(self, member_fields):
        transport = httpx.MockTransport(
            lambda request: httpx.Response(200, json={"success": False, "error": "Row locked"})
        )
        writer = AutomationSheetWriter(AUTOMATION_URL, transport=transport)

        with pytest.raises(SheetWriteError, match="Row locked"):
            await writer.write(SheetIdentity("amy@example.com"), member_fields)

    @pytest.mark.asyncio
    async def test_invalid_json_is_an_error(self, member_fields):
        transport = httpx.MockTransport(lambda request: httpx.Response(200, text="<html>"))
        writer = AutomationSheetWriter(AUTOMATION_URL, transport=transport)

        with pytest.raises(SheetWriteError, match="invalid JSON"):
            await writer.write(SheetIdentity("amy@example.com"), member_fields)

    @pytest.mark.asyncio
    async def test_does_not_address_rows(self):
        writer = AutomationSheetWriter(AUTOMATION_URL)
        assert writer.addresses_rows is False
        await writer.authorize(SheetIdentity("amy@example.com", 2))


# ==================== DIRECT CELL WRITER ====================

class TestDirectCellSheetWriter:

    @pytest.mark.asyncio
    async def test_writes_five_cells_in_row(self, member_fields):
        api = FakeSheetsApi(emails_by_row={7: "Amy@Example.com"})
        writer = _direct_writer(api)

        await writer.write(SheetIdentity("amy@example.com", 7), member_fields)

        assert api.requests[0].method == "GET"
        puts = api.writes
        assert [r.method for r in puts] == ["PUT"] * 5
        assert [r.url.path.rsplit("/", 1)[1] for r in puts] == [
            "'Sheet1'!B7", "'Sheet1'!C7", "'Sheet1'!D7", "'Sheet1'!E7", "'Sheet1'!F7"
        ]
        assert json.loads(puts[4].content)["values"] == [["@amy"]]
        assert puts[0].url.params["valueInputOption"] == "RAW"

    @pytest.mark.asyncio
    async def test_email_mismatch_is_unauthorized_with_zero_writes(self, member_fields):
        api = FakeSheetsApi(emails_by_row={7: "bob@example.com"})
        writer = _direct_writer(api)

        with pytest.raises(Unauthorized, match="Unauthorized: Email mismatch"):
            await writer.write(SheetIdentity("amy@example.com", 7), member_fields)

        assert api.writes == []

    @pytest.mark.asyncio
    async def test_empty_row_is_unauthorized(self, member_fields):
        api = FakeSheetsApi()
        writer = _direct_writer(api)

        with pytest.raises(Unauthorized):
            await writer.authorize(SheetIdentity("amy@example.com", 9))
        assert api.writes == []

    @pytest.mark.asyncio
    async def test_header_row_is_unauthorized(self, member_fields):
        api = FakeSheetsApi()
        writer = _direct_writer(api)

        with pytest.raises(Unauthorized):
            await writer.write(SheetIdentity("amy@example.com", 1), member_fields)
        assert api.requests == []

    @pytest.mark.asyncio
    async def test_row_is_located_by_email_when_not_given(self, member_fields, sheet_rows):
        api = FakeSheetsApi()
        reader = AsyncMock()
        reader.read.return_value = sheet_rows
        writer = _direct_writer(api, reader=reader)

        await writer.write(SheetIdentity("bob@example.com"), member_fields)

        assert all(r.url.path.endswith("3") for r in api.writes)
        assert len(api.writes) == 5

    @pytest.mark.asyncio
    async def test_missing_row_is_write_error(self, member_fields, sheet_rows):
        reader = AsyncMock()
        reader.read.return_value = sheet_rows
        writer = _direct_writer(FakeSheetsApi(), reader=reader)

        with pytest.raises(SheetWriteError, match="No spreadsheet row"):
            await writer.write(SheetIdentity("nobody@example.com"), member_fields)

    @pytest.mark.asyncio
    async def test_partial_failure_reports_written_cells(self, member_fields):
        api = FakeSheetsApi(emails_by_row={2: "amy@example.com"}, fail_on_put="D2")
        writer = _direct_writer(api)

        with pytest.raises(SheetWriteError, match="after writing 2 of 5 cells"):
            await writer.write(SheetIdentity("amy@example.com", 2), member_fields)

        assert len(api.writes) == 3

    @pytest.mark.asyncio
    async def test_atomic_mode_sends_one_request(self, member_fields):
        api = FakeSheetsApi(emails_by_row={2: "amy@example.com"})
        writer = _direct_writer(api, atomic=True)

        await writer.write(SheetIdentity("amy@example.com", 2), member_fields)

        writes = api.writes
        assert len(writes) == 1
        assert writes[0].method == "POST"
        assert writes[0].url.path.endswith("/sheet-123/values:batchUpdate")
        body = json.loads(writes[0].content)
        assert body["valueInputOption"] == "RAW"
        assert [d["range"] for d in body["data"]] == [
            "'Sheet1'!B2", "'Sheet1'!C2", "'Sheet1'!D2", "'Sheet1'!E2", "'Sheet1'!F2"
        ]
