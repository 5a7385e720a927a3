from .member import (
    EDITABLE_FIELDS,
    MemberFields,
    MemberRecord,
    SheetsRequest,
)
from .enums import RecordSource, SheetsAction, SaveStatus

__all__ = [
    'EDITABLE_FIELDS', 'MemberFields', 'MemberRecord', 'SheetsRequest',
    'RecordSource', 'SheetsAction', 'SaveStatus',
]
