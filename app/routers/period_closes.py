"""
Finance Tracker - Period Close Router

Close and reopen financial months. Closed months reject every write to
revenues, expenses and invoices dated inside them.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import Settings, get_settings
from app.database import get_async_session
from app.dependencies import get_current_active_user, get_request_context, require_roles
from app.models.user import User, UserRole
from app.schemas.period_close import PeriodCloseRequest, PeriodReopenRequest
from app.services.audit_service import RequestContext
from app.services.period_close_service import PeriodCloseService
from app.utils.serialization import snapshot_model


router = APIRouter(prefix="/period-closes", tags=["Period Close"])

period_admin = require_roles(UserRole.CEO, UserRole.ADMIN)


@router.get("", summary="List financial periods")
async def list_periods(
    year: Optional[int] = Query(None, ge=1900, le=9999),
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    periods = await PeriodCloseService(db).list_periods(year)
    return {"success": True, "data": [snapshot_model(p) for p in periods]}


@router.post("/close", summary="Close a financial period")
async def close_period(
    payload: PeriodCloseRequest,
    current_user: User = Depends(period_admin),
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_async_session),
    settings: Settings = Depends(get_settings),
):
    period = await PeriodCloseService(db, settings).close_period(
        payload.year, payload.month, current_user, notes=payload.notes, ctx=ctx,
    )
    return {
        "success": True,
        "message": f"Financial period {payload.month}/{payload.year} closed",
        "data": period,
    }


@router.post("/reopen", summary="Reopen a financial period")
async def reopen_period(
    payload: PeriodReopenRequest,
    current_user: User = Depends(period_admin),
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_async_session),
    settings: Settings = Depends(get_settings),
):
    period = await PeriodCloseService(db, settings).reopen_period(
        payload.year, payload.month, current_user, ctx=ctx,
    )
    return {
        "success": True,
        "message": f"Financial period {payload.month}/{payload.year} reopened",
        "data": period,
    }
