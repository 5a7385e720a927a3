from enum import Enum


class RecordSource(str, Enum):
    """Store a member record was resolved from."""
    database = "database"
    spreadsheet = "spreadsheet"
    empty = "empty"


class SheetsAction(str, Enum):
    read = "read"
    update = "update"


class SaveStatus(str, Enum):
    ok = "ok"
    partial_ok = "partial_ok"
    error = "error"
