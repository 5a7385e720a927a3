"""Error taxonomy for the spreadsheet integration."""


class SheetsError(Exception):
    """Base error raised when a spreadsheet operation cannot complete."""

    status_code = 500


class FetchError(SheetsError):
    """Network failure or non-2xx response from the spreadsheet host."""


class ParseError(SheetsError):
    """Malformed service account credentials."""


class TokenExchangeError(SheetsError):
    """The token endpoint rejected the signed assertion or returned no token."""


class SheetWriteError(SheetsError):
    """A row update was refused or could not be delivered."""


class Unauthorized(SheetsError):
    """The addressed row does not belong to the caller's email."""

    status_code = 403

    def __init__(self, message: str = "Unauthorized: Email mismatch"):
        super().__init__(message)


class UnknownError(SheetsError):
    """Fallback for failures without a more specific type."""

    def __init__(self, message: str = "Unknown error"):
        super().__init__(message)
