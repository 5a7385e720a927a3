"""
Thin async client for the Google Sheets v4 values API.

Every call fetches a bearer token from the configured TokenProvider
and opens its own short-lived ``httpx.AsyncClient``. Failures surface
as :class:`FetchError` so callers deal with one error type.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence
from urllib.parse import quote

import httpx

from sheets.errors import FetchError
from sheets.token_provider import TokenProvider

logger = logging.getLogger(__name__)

SHEETS_API_BASE = "https://sheets.googleapis.com/v4/spreadsheets"


class SheetsApiClient:
    """Values endpoints of one spreadsheet."""

    def __init__(
        self,
        token_provider: TokenProvider,
        spreadsheet_id: str,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        base_url: str = SHEETS_API_BASE,
    ):
        self.token_provider = token_provider
        self.spreadsheet_id = spreadsheet_id
        self.timeout = timeout
        self.transport = transport
        self.base_url = base_url.rstrip("/")

    def _values_url(self, a1_range: str) -> str:
        return f"{self.base_url}/{self.spreadsheet_id}/values/{quote(a1_range, safe='')}"

    async def _request(self, method: str, url: str, **kwargs) -> Dict[str, Any]:
        token = await self.token_provider.get_token()
        headers = {"Authorization": f"Bearer {token}"}

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.request(method, url, headers=headers, **kwargs)
        except httpx.TimeoutException as exc:
            raise FetchError("Sheets API request timed out") from exc
        except httpx.RequestError as exc:
            raise FetchError(f"Sheets API request failed: {exc}") from exc

        if response.status_code >= 400:
            logger.error(f"Sheets API {method} returned {response.status_code}: {response.text[:200]}")
            raise FetchError(f"Sheets API error: {response.status_code} {response.text[:200]}")

        try:
            return response.json()
        except ValueError as exc:
            raise FetchError("Sheets API returned a non-JSON response") from exc

    async def get_values(self, a1_range: str) -> List[List[str]]:
        """Return the cells of ``a1_range`` row by row; short rows are kept short."""
        payload = await self._request(
            "GET", self._values_url(a1_range), params={"majorDimension": "ROWS"}
        )
        return [[str(cell) for cell in row] for row in payload.get("values", [])]

    async def update_value(self, a1_range: str, value: str) -> None:
        await self._request(
            "PUT",
            self._values_url(a1_range),
            params={"valueInputOption": "RAW"},
            json={"range": a1_range, "majorDimension": "ROWS", "values": [[value]]},
        )

    async def batch_update(self, data: Sequence[Dict[str, Any]]) -> None:
        """Write several ranges in one request."""
        await self._request(
            "POST",
            f"{self.base_url}/{self.spreadsheet_id}/values:batchUpdate",
            json={"valueInputOption": "RAW", "data": list(data)},
        )
