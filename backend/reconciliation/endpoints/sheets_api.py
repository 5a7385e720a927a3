"""
Member Sheet Sync Endpoint

Single JSON entrypoint used by the member dashboard:
- POST /api/google-sheets {"action": "read", "email": ...}
- POST /api/google-sheets {"action": "update", "email": ..., "rowIndex": ..., "data": {...}}
- OPTIONS /api/google-sheets - CORS preflight

Errors are returned as {"error": message}.
"""

import logging

from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from config import get_settings
from database import get_db
from middleware.auth import get_current_user_required
from models import RecordSource, SaveStatus, SheetsAction, SheetsRequest
from reconciliation.services.reconciliation_service import MemberReconciler
from services.auth import AuthUser
from services.members import MemberStore
from sheets import SheetsError, Unauthorized, build_api_client, build_reader, build_writer
from sheets.reader import normalise_email

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Member Sheet Sync"])

INVALID_ACTION = "Invalid action"
MISSING_DATA = "Update data is required"


def _error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


# ==================== Dependencies ====================

async def get_reconciler(db: AsyncSession = Depends(get_db)) -> MemberReconciler:
    """Wire the reconciler from configuration for one request."""
    settings = get_settings()
    api_client = None
    if settings.SHEETS_READ_STRATEGY == "api" or settings.SHEETS_WRITE_STRATEGY == "direct":
        api_client = build_api_client(settings)

    reader = build_reader(settings, api_client=api_client)
    writer = build_writer(settings, reader, api_client=api_client)
    return MemberReconciler(MemberStore(db), reader, writer)


# ==================== Endpoints ====================

@router.options("/google-sheets")
async def google_sheets_preflight():
    """CORS preflight; the CORS middleware adds the headers."""
    return Response(status_code=status.HTTP_200_OK)


@router.post("/google-sheets")
async def google_sheets(
    request: Request,
    current_user: AuthUser = Depends(get_current_user_required),
    reconciler: MemberReconciler = Depends(get_reconciler),
):
    """
    Read or update the signed-in member's record.

    The body email must match the signed-in member.
    """
    try:
        body = await request.json()
    except ValueError as e:
        logger.warning(f"Rejected request body that is not JSON: {e}")
        return _error("Request body must be JSON", status.HTTP_500_INTERNAL_SERVER_ERROR)

    try:
        payload = SheetsRequest.model_validate(body)
    except ValidationError as e:
        logger.warning(f"Rejected invalid request body: {e.error_count()} errors")
        return _error(f"Invalid request: {e.errors()[0]['msg']}", status.HTTP_400_BAD_REQUEST)

    if payload.action not in (SheetsAction.read.value, SheetsAction.update.value):
        logger.warning(f"Rejected unknown action: {payload.action}")
        return _error(INVALID_ACTION, status.HTTP_400_BAD_REQUEST)

    if not payload.email:
        return _error("Email is required", status.HTTP_400_BAD_REQUEST)

    if payload.action == SheetsAction.update.value and payload.data is None:
        logger.warning(f"Rejected update without data for {current_user.email}")
        return _error(MISSING_DATA, status.HTTP_400_BAD_REQUEST)

    if normalise_email(payload.email) != normalise_email(current_user.email):
        logger.warning(f"Body email does not match signed-in member {current_user.email}")
        return _error(Unauthorized().args[0], status.HTTP_403_FORBIDDEN)

    try:
        if payload.action == SheetsAction.read.value:
            return await _read(reconciler, current_user)
        return await _update(reconciler, current_user, payload)
    except SheetsError as e:
        logger.error(f"Sheet sync {payload.action} failed for {current_user.email}: {e}")
        return _error(str(e) or type(e).__name__, e.status_code)


async def _read(reconciler: MemberReconciler, user: AuthUser):
    record = await reconciler.get_record(user.id, user.email)
    if record.source == RecordSource.empty:
        return {"found": False}

    logger.info(f"Resolved record for {user.email} from {record.source.value}")
    return {"found": True, "userData": record.to_user_data()}


async def _update(reconciler: MemberReconciler, user: AuthUser, payload: SheetsRequest):
    result = await reconciler.save_record(user.id, user.email, payload.data, row_index=payload.row_index)

    if result.status == SaveStatus.error:
        return _error(result.detail or "Database write failed", status.HTTP_500_INTERNAL_SERVER_ERROR)

    if result.status == SaveStatus.partial_ok:
        return {"success": True, "syncWarning": result.detail}

    return {"success": True}
