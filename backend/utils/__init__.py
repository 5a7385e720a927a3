"""
Utils Package

Provides utility modules for:
- error_messages: Localized member-facing error texts
"""

from .error_messages import (
    friendly_message,
    error_response,
    GENERIC_MESSAGE,
)

__all__ = [
    'friendly_message',
    'error_response',
    'GENERIC_MESSAGE',
]
