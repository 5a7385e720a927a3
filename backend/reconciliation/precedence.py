"""
Source precedence for member records.

The database and the spreadsheet can disagree. On every read the
record is resolved with one rule:

1. database record with any non-blank editable field -> database
2. otherwise a spreadsheet row matching the email -> spreadsheet
3. otherwise an empty record bound to the caller's email
"""

from typing import Optional

from models import MemberRecord, RecordSource


class DatabaseFirstPolicy:
    """Database wins whenever it holds content."""

    def database_is_authoritative(self, db_record: Optional[MemberRecord]) -> bool:
        return db_record is not None and db_record.has_content()

    def resolve(
        self,
        email: str,
        db_record: Optional[MemberRecord],
        sheet_record: Optional[MemberRecord],
    ) -> MemberRecord:
        if self.database_is_authoritative(db_record):
            return db_record.model_copy(update={"source": RecordSource.database, "row_index": None})
        if sheet_record is not None:
            return sheet_record.model_copy(update={"source": RecordSource.spreadsheet})
        return MemberRecord.empty(email)


database_first = DatabaseFirstPolicy()
