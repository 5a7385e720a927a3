from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from database import get_db
from services.auth import (
    AuthService,
    AuthError,
    Credentials,
    Token,
    AuthUser,
)
from middleware.auth import get_current_user_required
from utils.error_messages import error_response

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/auth", tags=["Authentication"])


def _auth_error(exc: AuthError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=error_response(exc.message))


# ==================== PUBLIC ENDPOINTS ====================

@router.post("/sign-up", status_code=status.HTTP_201_CREATED)
async def sign_up(
    credentials: Credentials,
    db: AsyncSession = Depends(get_db)
):
    """
    Register a member account.

    An empty member profile is created alongside the account so the
    dashboard has a database record to edit.
    """
    try:
        user = await AuthService(db).sign_up(credentials.email, credentials.password)
    except AuthError as exc:
        return _auth_error(exc)

    return {"user": user.model_dump()}


@router.post("/sign-in", response_model=Token)
async def sign_in(
    credentials: Credentials,
    db: AsyncSession = Depends(get_db)
):
    """
    Authenticate a member and return a bearer token.

    Example:
    ```json
    {
      "email": "member@example.com",
      "password": "secret123"
    }
    ```
    """
    try:
        return await AuthService(db).sign_in(credentials.email, credentials.password)
    except AuthError as exc:
        return _auth_error(exc)


# ==================== AUTHENTICATED ENDPOINTS ====================

@router.post("/sign-out")
async def sign_out(
    current_user: AuthUser = Depends(get_current_user_required),
    db: AsyncSession = Depends(get_db)
):
    """Revoke the session behind the current token."""
    revoked = await AuthService(db).sign_out(current_user.session_id)
    logger.info(f"Sign-out for {current_user.email} (revoked={revoked})")
    return {"success": True}


@router.get("/me")
async def get_me(current_user: AuthUser = Depends(get_current_user_required)):
    """Return the signed-in member."""
    return {
        "id": current_user.id,
        "email": current_user.email,
    }
