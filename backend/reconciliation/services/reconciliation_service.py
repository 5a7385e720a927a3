"""
Member Reconciliation Service

Keeps a member's record in step between the database and the
spreadsheet:
- get_record resolves the record to display using the precedence policy
- save_record writes the database (authoritative) and then mirrors the
  fields to the spreadsheet on a best-effort basis

Each call is stateless; re-saving identical fields yields identical state.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from models import MemberFields, MemberRecord, SaveStatus
from reconciliation.precedence import DatabaseFirstPolicy, database_first
from services.members import MemberStore
from sheets import SheetIdentity, SheetReader, SheetWriter, SheetsError, Unauthorized

logger = logging.getLogger(__name__)

DATABASE_WRITE_FAILED = "Database write failed"


@dataclass
class SaveResult:
    """Outcome of save_record."""
    status: SaveStatus
    detail: Optional[str] = None

    @property
    def saved(self) -> bool:
        """True when the database copy was written."""
        return self.status in (SaveStatus.ok, SaveStatus.partial_ok)


class MemberReconciler:
    """
    Orchestrates the database store, the sheet reader and the sheet writer.
    """

    def __init__(
        self,
        store: MemberStore,
        reader: SheetReader,
        writer: SheetWriter,
        policy: DatabaseFirstPolicy = database_first,
    ):
        self.store = store
        self.reader = reader
        self.writer = writer
        self.policy = policy

    async def get_record(self, user_id: str, email: str) -> MemberRecord:
        """Return the member's record from whichever store is authoritative."""
        db_record = await self.store.get_member(user_id)
        if self.policy.database_is_authoritative(db_record):
            logger.debug(f"Database record is authoritative for user {user_id}")
            return self.policy.resolve(email, db_record, None)

        sheet_record = await self.reader.lookup(email)
        return self.policy.resolve(email, db_record, sheet_record)

    async def save_record(
        self,
        user_id: str,
        email: str,
        fields: MemberFields,
        row_index: Optional[int] = None,
    ) -> SaveResult:
        """
        Write ``fields`` to the database, then to the spreadsheet.

        Raises:
            Unauthorized: the addressed row belongs to another email;
                nothing has been written to either store.
        """
        identity = SheetIdentity(email=email, row_index=row_index)

        if self.writer.addresses_rows:
            try:
                await self.writer.authorize(identity)
            except Unauthorized:
                raise
            except SheetsError as e:
                # The write below re-verifies the row and reports the failure.
                logger.warning(f"Could not verify spreadsheet row before save: {e}")

        try:
            await self.store.update_member(user_id, email, fields)
        except SQLAlchemyError as e:
            logger.error(f"Database write failed for user {user_id}: {e}")
            return SaveResult(status=SaveStatus.error, detail=DATABASE_WRITE_FAILED)

        try:
            await self.writer.write(identity, fields)
        except SheetsError as e:
            logger.warning(f"Spreadsheet sync failed for user {user_id}: {e}")
            return SaveResult(status=SaveStatus.partial_ok, detail=str(e))

        return SaveResult(status=SaveStatus.ok)
