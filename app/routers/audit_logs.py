"""
Finance Tracker - Audit Log Router

Read-only access to the audit trail for executives.
"""

import datetime as dt
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_async_session
from app.dependencies import require_roles
from app.models.audit import AuditAction
from app.models.user import User, UserRole
from app.services.audit_service import AuditService, serialize_audit_log


router = APIRouter(prefix="/audit-logs", tags=["Audit Trail"])

audit_reader = require_roles(UserRole.CEO, UserRole.ADMIN)


@router.get("", summary="Search the audit trail")
async def list_audit_logs(
    module: Optional[str] = Query(None, description="e.g. expenses, approvals"),
    action: Optional[AuditAction] = Query(None),
    user_id: Optional[uuid.UUID] = Query(None),
    entity_id: Optional[str] = Query(None),
    start_date: Optional[dt.date] = Query(None),
    end_date: Optional[dt.date] = Query(None),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
    current_user: User = Depends(audit_reader),
    db: AsyncSession = Depends(get_async_session),
):
    logs = await AuditService(db).list_logs(
        module=module,
        action=action,
        user_id=user_id,
        entity_id=entity_id,
        start_date=start_date,
        end_date=end_date,
        skip=skip,
        limit=limit,
    )
    return {"success": True, "data": [serialize_audit_log(log) for log in logs]}


@router.get("/history/{module}/{entity_id}", summary="Change history of one record")
async def get_entity_history(
    module: str,
    entity_id: str,
    current_user: User = Depends(audit_reader),
    db: AsyncSession = Depends(get_async_session),
):
    history = await AuditService(db).get_entity_history(module, entity_id)
    return {"success": True, "data": history}
