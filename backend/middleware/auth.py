"""
Authentication Middleware and Dependencies

Provides:
- get_current_user: Extract and validate member from JWT token
- get_current_user_required: Same, raising 401 when absent or invalid
"""

from typing import Optional
import logging

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from services.auth import decode_token, AuthUser, AuthService
from sentry_integration import set_user
from logging_config import set_request_user

logger = logging.getLogger(__name__)

# Security scheme
security = HTTPBearer(auto_error=False)


# ==================== DEPENDENCIES ====================

async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: AsyncSession = Depends(get_db)
) -> Optional[AuthUser]:
    """
    Extract current member from JWT token.
    Returns None if no token, invalid token, or revoked session.
    """
    if not credentials:
        return None

    token_data = decode_token(credentials.credentials)
    if not token_data:
        return None

    if not await AuthService(db).is_session_active(token_data.session_id, token_data.user_id):
        return None

    return AuthUser(
        id=token_data.user_id,
        email=token_data.email,
        session_id=token_data.session_id
    )


async def get_current_user_required(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: AsyncSession = Depends(get_db)
) -> AuthUser:
    """
    Extract current member from JWT token.
    Raises 401 if no token, invalid token, or revoked session.
    """
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"}
        )

    token_data = decode_token(credentials.credentials)
    if not token_data:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"}
        )

    if not await AuthService(db).is_session_active(token_data.session_id, token_data.user_id):
        logger.warning(f"Rejected token for revoked or expired session: {token_data.email}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Session has ended",
            headers={"WWW-Authenticate": "Bearer"}
        )

    set_user(token_data.user_id, token_data.email)
    set_request_user(token_data.email)

    return AuthUser(
        id=token_data.user_id,
        email=token_data.email,
        session_id=token_data.session_id
    )
