"""
Service account credential loading for the authenticated Sheets API.

The bundle is the JSON key file Google issues for a service account.
It can be supplied inline (``GOOGLE_SERVICE_ACCOUNT_JSON``), as a file
path (``GOOGLE_SERVICE_ACCOUNT_FILE``) or as discrete variables
(``GOOGLE_CLIENT_EMAIL`` / ``GOOGLE_PRIVATE_KEY``).
"""

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Optional

from sheets.errors import ParseError

DEFAULT_TOKEN_URI = "https://oauth2.googleapis.com/token"

REQUIRED_FIELDS = ("client_email", "private_key")


@dataclass(frozen=True)
class ServiceAccountCredentials:
    """Signing identity used to mint Sheets access tokens."""
    client_email: str
    private_key: str
    token_uri: str = DEFAULT_TOKEN_URI
    private_key_id: Optional[str] = None

    def __repr__(self) -> str:
        return f"ServiceAccountCredentials(client_email={self.client_email!r})"


def normalise_private_key(key: str) -> str:
    """Turn escaped ``\\n`` sequences and CRLFs into real newlines."""
    key = key.replace("\r\n", "\n").replace("\r", "\n")
    key = key.replace("\\n", "\n").strip()
    return key + "\n"


def credentials_from_mapping(payload: Mapping[str, Any]) -> ServiceAccountCredentials:
    missing = [
        field for field in REQUIRED_FIELDS
        if not isinstance(payload.get(field), str) or not payload[field].strip()
    ]
    if missing:
        raise ParseError(f"Service account JSON missing fields: {', '.join(missing)}")

    if payload.get("type") not in (None, "service_account"):
        raise ParseError(f"Unsupported credential type: {payload.get('type')}")

    return ServiceAccountCredentials(
        client_email=payload["client_email"].strip(),
        private_key=normalise_private_key(payload["private_key"]),
        token_uri=(payload.get("token_uri") or DEFAULT_TOKEN_URI).strip(),
        private_key_id=payload.get("private_key_id") or None,
    )


def load_service_account_info(raw: str) -> ServiceAccountCredentials:
    """Parse a service account JSON document."""
    text = (raw or "").lstrip("\ufeff").strip()
    if not text:
        raise ParseError("Service account JSON is empty")

    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ParseError(f"Service account JSON parse error: {exc.msg}") from exc

    if not isinstance(payload, dict):
        raise ParseError("Service account JSON must be an object")

    return credentials_from_mapping(payload)


def load_service_account_file(path: Path) -> ServiceAccountCredentials:
    try:
        raw = Path(path).expanduser().read_text(encoding="utf-8-sig")
    except OSError as exc:
        raise ParseError(f"Cannot read service account file: {exc}") from exc
    return load_service_account_info(raw)


def credentials_from_settings(settings) -> ServiceAccountCredentials:
    """Resolve the configured credential source, inline JSON first."""
    if settings.GOOGLE_SERVICE_ACCOUNT_JSON:
        return load_service_account_info(settings.GOOGLE_SERVICE_ACCOUNT_JSON)

    if settings.GOOGLE_SERVICE_ACCOUNT_FILE:
        return load_service_account_file(Path(settings.GOOGLE_SERVICE_ACCOUNT_FILE))

    return credentials_from_mapping({
        "client_email": settings.GOOGLE_CLIENT_EMAIL,
        "private_key": settings.GOOGLE_PRIVATE_KEY,
        "token_uri": settings.GOOGLE_TOKEN_URI,
    })
