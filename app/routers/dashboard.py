"""
Finance Tracker - Dashboard Router

Executive summary across business units.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_async_session
from app.dependencies import get_current_active_user
from app.models.user import User
from app.services.dashboard_service import DashboardService
from app.utils.serialization import to_jsonable


router = APIRouter(prefix="/dashboard", tags=["Dashboard"])


@router.get("/summary", summary="Revenue, expense and net per business unit")
async def get_summary(
    year: Optional[int] = Query(None, ge=1900, le=9999),
    month: Optional[int] = Query(None, ge=1, le=12),
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    summary = await DashboardService(db).get_summary(year=year, month=month)
    # Money as strings, never floats
    return {"success": True, "data": to_jsonable(summary)}
