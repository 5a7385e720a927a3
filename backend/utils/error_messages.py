"""
Friendly Error Messages

Maps provider error messages to the localized text shown to members.

Error Response Format:
{
    "error": "Invalid login credentials",
    "message": "電郵或密碼不正確"
}
"""

from typing import Optional

GENERIC_MESSAGE = "發生錯誤，請稍後再試"

# Matched as case-insensitive substrings, first hit wins
FRIENDLY_MESSAGES = (
    ("invalid login credentials", "電郵或密碼不正確"),
    ("already registered", "此電郵已註冊"),
    ("email not confirmed", "請先確認您的電郵"),
    ("password should be at least", "密碼最少需要6個字元"),
    ("unauthorized: email mismatch", "無權限修改此資料"),
    ("not authenticated", "請先登入"),
)


def friendly_message(message: Optional[str]) -> str:
    """Return the localized text for ``message``, or the generic fallback."""
    if not message:
        return GENERIC_MESSAGE

    lowered = message.lower()
    for needle, text in FRIENDLY_MESSAGES:
        if needle in lowered:
            return text
    return GENERIC_MESSAGE


def error_response(message: str) -> dict:
    """Build the ``{error, message}`` body returned by the auth endpoints."""
    return {
        "error": message,
        "message": friendly_message(message)
    }
