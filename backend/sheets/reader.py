"""
Spreadsheet readers.

Two interchangeable strategies return the worksheet as rows of
strings, header row first:

``PublicCsvSheetReader``
    Unauthenticated fetch of the public CSV export, parsed with
    :func:`sheets.csv_parser.parse_csv`.

``ApiSheetReader``
    Authenticated read of the member columns through the Sheets API.
    Rows may be shorter than the header when trailing cells are empty.

:func:`find_by_email` locates a member's row; a miss is a normal
outcome and returns ``None``.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional, Sequence

import httpx

from models import MemberRecord, RecordSource
from sheets.client import SheetsApiClient
from sheets.columns import EMAIL_COLUMN, MEMBER_COLUMNS, table_range
from sheets.csv_parser import parse_csv
from sheets.errors import FetchError

logger = logging.getLogger(__name__)

EXPORT_URL = "https://docs.google.com/spreadsheets/d/{spreadsheet_id}/export"


@dataclass(frozen=True)
class SheetMatch:
    row: List[str]
    row_index: int  # 1-based, header is row 1


def normalise_email(email: Optional[str]) -> str:
    return (email or "").strip().lower()


def find_by_email(rows: Sequence[Sequence[str]], email: str) -> Optional[SheetMatch]:
    """Return the first data row whose email cell equals ``email``."""
    wanted = normalise_email(email)
    if not wanted:
        return None

    email_position = MEMBER_COLUMNS.index(EMAIL_COLUMN)
    for i in range(1, len(rows)):
        row = rows[i]
        cell = row[email_position] if len(row) > email_position else ""
        if normalise_email(cell) == wanted:
            return SheetMatch(row=list(row), row_index=i + 1)
    return None


def row_to_record(row: Sequence[str], row_index: int) -> MemberRecord:
    values = {}
    for position, column in enumerate(MEMBER_COLUMNS):
        values[column.field] = row[position] if position < len(row) else ""
    return MemberRecord(**values, row_index=row_index, source=RecordSource.spreadsheet)


class SheetReader(ABC):
    """Reads the member worksheet."""

    @abstractmethod
    async def read(self) -> List[List[str]]:
        ...

    async def lookup(self, email: str) -> Optional[MemberRecord]:
        """Read the sheet and return the member's record, if present."""
        match = find_by_email(await self.read(), email)
        if match is None:
            logger.info(f"No spreadsheet row for {normalise_email(email)}")
            return None
        return row_to_record(match.row, match.row_index)


class PublicCsvSheetReader(SheetReader):

    def __init__(
        self,
        spreadsheet_id: str,
        gid: str = "",
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.spreadsheet_id = spreadsheet_id
        self.gid = gid
        self.timeout = timeout
        self.transport = transport

    @property
    def url(self) -> str:
        return EXPORT_URL.format(spreadsheet_id=self.spreadsheet_id)

    async def read(self) -> List[List[str]]:
        params = {"format": "csv"}
        if self.gid:
            params["gid"] = self.gid

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self.transport, follow_redirects=True
            ) as client:
                response = await client.get(self.url, params=params)
        except httpx.TimeoutException as exc:
            raise FetchError("Failed to fetch spreadsheet: timeout") from exc
        except httpx.RequestError as exc:
            raise FetchError(f"Failed to fetch spreadsheet: {exc}") from exc

        if not response.is_success:
            logger.error(f"Failed to fetch spreadsheet: {response.status_code}")
            raise FetchError(f"Failed to fetch spreadsheet: {response.status_code}")

        return parse_csv(response.text)


class ApiSheetReader(SheetReader):

    def __init__(self, client: SheetsApiClient, sheet_name: str):
        self.client = client
        self.sheet_name = sheet_name

    async def read(self) -> List[List[str]]:
        return await self.client.get_values(table_range(self.sheet_name))
