"""
Spreadsheet integration.

Readers, writers and the credential minter are chosen by configuration
(``SHEETS_READ_STRATEGY`` / ``SHEETS_WRITE_STRATEGY``) through the
``build_*`` factories below.
"""

from typing import Optional

from sheets.client import SheetsApiClient
from sheets.columns import MEMBER_COLUMNS, SheetColumn
from sheets.credentials import ServiceAccountCredentials, credentials_from_settings
from sheets.csv_parser import parse_csv
from sheets.errors import (
    SheetsError,
    FetchError,
    ParseError,
    TokenExchangeError,
    SheetWriteError,
    Unauthorized,
    UnknownError,
)
from sheets.reader import (
    SheetReader,
    SheetMatch,
    PublicCsvSheetReader,
    ApiSheetReader,
    find_by_email,
    row_to_record,
)
from sheets.token_provider import (
    TokenProvider,
    ServiceAccountTokenProvider,
    CachingTokenProvider,
)
from sheets.writer import (
    SheetIdentity,
    SheetWriter,
    AutomationSheetWriter,
    DirectCellSheetWriter,
)


def build_token_provider(settings) -> TokenProvider:
    provider = ServiceAccountTokenProvider(
        credentials_from_settings(settings),
        timeout=settings.SHEETS_HTTP_TIMEOUT,
    )
    if settings.SHEETS_TOKEN_CACHE:
        return CachingTokenProvider(provider)
    return provider


def build_api_client(settings, token_provider: Optional[TokenProvider] = None) -> SheetsApiClient:
    return SheetsApiClient(
        token_provider or build_token_provider(settings),
        settings.SPREADSHEET_ID,
        timeout=settings.SHEETS_HTTP_TIMEOUT,
    )


def build_reader(settings, api_client: Optional[SheetsApiClient] = None) -> SheetReader:
    if not settings.SPREADSHEET_ID:
        raise ParseError("SPREADSHEET_ID is not configured")

    if settings.SHEETS_READ_STRATEGY == "api":
        return ApiSheetReader(api_client or build_api_client(settings), settings.SHEET_NAME)
    if settings.SHEETS_READ_STRATEGY == "public_csv":
        return PublicCsvSheetReader(
            settings.SPREADSHEET_ID,
            gid=settings.SHEET_GID,
            timeout=settings.SHEETS_HTTP_TIMEOUT,
        )
    raise UnknownError(f"Unknown sheets read strategy: {settings.SHEETS_READ_STRATEGY}")


def build_writer(settings, reader: SheetReader, api_client: Optional[SheetsApiClient] = None) -> SheetWriter:
    if settings.SHEETS_WRITE_STRATEGY == "direct":
        return DirectCellSheetWriter(
            api_client or build_api_client(settings),
            settings.SHEET_NAME,
            reader,
            atomic=settings.SHEETS_ATOMIC_WRITES,
        )
    if settings.SHEETS_WRITE_STRATEGY == "automation":
        if not settings.SHEETS_AUTOMATION_URL:
            raise ParseError("SHEETS_AUTOMATION_URL is not configured")
        return AutomationSheetWriter(
            settings.SHEETS_AUTOMATION_URL,
            timeout=settings.SHEETS_HTTP_TIMEOUT,
        )
    raise UnknownError(f"Unknown sheets write strategy: {settings.SHEETS_WRITE_STRATEGY}")


__all__ = [
    'MEMBER_COLUMNS', 'SheetColumn', 'parse_csv',
    'ServiceAccountCredentials', 'credentials_from_settings',
    'SheetsError', 'FetchError', 'ParseError', 'TokenExchangeError',
    'SheetWriteError', 'Unauthorized', 'UnknownError',
    'SheetReader', 'SheetMatch', 'PublicCsvSheetReader', 'ApiSheetReader',
    'find_by_email', 'row_to_record',
    'TokenProvider', 'ServiceAccountTokenProvider', 'CachingTokenProvider',
    'SheetsApiClient', 'SheetIdentity', 'SheetWriter',
    'AutomationSheetWriter', 'DirectCellSheetWriter',
    'build_token_provider', 'build_api_client', 'build_reader', 'build_writer',
]
