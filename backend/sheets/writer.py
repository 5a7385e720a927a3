"""
Spreadsheet writers.

``AutomationSheetWriter``
    Posts the whole record to an external automation webhook and trusts
    the ``success`` flag in its JSON reply.

``DirectCellSheetWriter``
    Updates the member's row cell by cell through the Sheets API. The
    row's email is re-read and compared with the caller's before any
    write. Sequential cell updates are not atomic: if one PUT fails the
    cells written before it stay written. ``atomic=True`` sends all
    cells in a single batchUpdate request instead.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional

import httpx

from models import MemberFields
from sheets.client import SheetsApiClient
from sheets.columns import EDITABLE_COLUMNS, EMAIL_COLUMN, cell_range
from sheets.errors import FetchError, SheetWriteError, Unauthorized
from sheets.reader import SheetReader, find_by_email, normalise_email

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SheetIdentity:
    """Who is writing, and optionally which row they claim."""
    email: str
    row_index: Optional[int] = None


class SheetWriter(ABC):

    addresses_rows = False

    async def authorize(self, identity: SheetIdentity) -> None:
        """Raise :class:`Unauthorized` if ``identity`` may not write its row."""

    @abstractmethod
    async def write(self, identity: SheetIdentity, fields: MemberFields) -> None:
        ...


class AutomationSheetWriter(SheetWriter):

    def __init__(
        self,
        url: str,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.url = url
        self.timeout = timeout
        self.transport = transport

    async def write(self, identity: SheetIdentity, fields: MemberFields) -> None:
        body = {"email": identity.email, "rowIndex": identity.row_index, **fields.as_wire()}

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(self.url, json=body)
        except httpx.TimeoutException as exc:
            raise SheetWriteError("Automation endpoint timed out") from exc
        except httpx.RequestError as exc:
            raise SheetWriteError(f"Automation endpoint request failed: {exc}") from exc

        try:
            payload = response.json()
        except ValueError as exc:
            raise SheetWriteError(
                f"Automation endpoint returned invalid JSON (HTTP {response.status_code})"
            ) from exc

        if not isinstance(payload, dict) or payload.get("success") is not True:
            message = payload.get("error") if isinstance(payload, dict) else None
            raise SheetWriteError(message or "Automation endpoint reported failure")

        logger.info(f"Automation endpoint accepted update for {normalise_email(identity.email)}")


class DirectCellSheetWriter(SheetWriter):

    addresses_rows = True

    def __init__(
        self,
        client: SheetsApiClient,
        sheet_name: str,
        reader: SheetReader,
        atomic: bool = False,
    ):
        self.client = client
        self.sheet_name = sheet_name
        self.reader = reader
        self.atomic = atomic

    async def resolve_row(self, identity: SheetIdentity) -> int:
        """Return the verified row index for ``identity``."""
        if identity.row_index is None:
            match = find_by_email(await self.reader.read(), identity.email)
            if match is None:
                raise SheetWriteError(f"No spreadsheet row for {normalise_email(identity.email)}")
            return match.row_index

        if identity.row_index < 2:
            raise Unauthorized()

        values = await self.client.get_values(
            cell_range(self.sheet_name, EMAIL_COLUMN.letter, identity.row_index)
        )
        stored = values[0][0] if values and values[0] else ""
        if normalise_email(stored) != normalise_email(identity.email):
            logger.warning(
                f"Row {identity.row_index} belongs to another member; refusing update "
                f"for {normalise_email(identity.email)}"
            )
            raise Unauthorized()
        return identity.row_index

    async def authorize(self, identity: SheetIdentity) -> None:
        await self.resolve_row(identity)

    async def write(self, identity: SheetIdentity, fields: MemberFields) -> None:
        row_index = await self.resolve_row(identity)
        cells = [
            (cell_range(self.sheet_name, column.letter, row_index), getattr(fields, column.field))
            for column in EDITABLE_COLUMNS
        ]

        if self.atomic:
            await self.client.batch_update([
                {"range": a1, "majorDimension": "ROWS", "values": [[value]]}
                for a1, value in cells
            ])
            return

        written: List[str] = []
        for a1, value in cells:
            try:
                await self.client.update_value(a1, value)
            except FetchError as exc:
                raise SheetWriteError(
                    f"Cell update {a1} failed after writing {len(written)} of {len(cells)} cells: {exc}"
                ) from exc
            written.append(a1)

        logger.info(f"Updated {len(written)} cells in row {row_index}")
