"""
Finance Tracker - Approvals Router

Executive review of flagged financial records.
"""

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import Settings, get_settings
from app.database import get_async_session
from app.dependencies import get_current_active_user, get_request_context
from app.models.user import User
from app.schemas.approval import ApprovalActionRequest
from app.services.approval_workflow import ApprovalWorkflowService, serialize_approval
from app.services.audit_service import RequestContext
from app.utils.error_handling import AuthorizationException


router = APIRouter(prefix="/approvals", tags=["Approvals"])


def _ensure_approver(user: User, settings: Settings) -> None:
    if user.role.value != settings.approver_role:
        raise AuthorizationException("Access denied", required_permission=settings.approver_role)


@router.get("/pending", summary="List pending approval requests")
async def list_pending(
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_async_session),
    settings: Settings = Depends(get_settings),
):
    """Only the approver role sees the queue."""
    _ensure_approver(current_user, settings)

    pending = await ApprovalWorkflowService(db, settings).list_pending()
    return {"success": True, "data": pending}


@router.get("/{approval_id}", summary="Get an approval request")
async def get_approval(
    approval_id: uuid.UUID,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_async_session),
    settings: Settings = Depends(get_settings),
):
    approval = await ApprovalWorkflowService(db, settings).get(approval_id)

    # Requesters may follow their own requests
    if approval.requested_by_id != current_user.id:
        _ensure_approver(current_user, settings)

    return {"success": True, "data": serialize_approval(approval)}


@router.post("/{approval_id}/action", summary="Approve or reject a request")
async def resolve_approval(
    approval_id: uuid.UUID,
    payload: ApprovalActionRequest,
    current_user: User = Depends(get_current_active_user),
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_async_session),
    settings: Settings = Depends(get_settings),
):
    result = await ApprovalWorkflowService(db, settings).resolve(
        approval_id,
        actor=current_user,
        action=payload.action,
        comments=payload.comments,
        ctx=ctx,
    )
    return {
        "success": True,
        "message": f"Request {payload.action} successfully",
        "data": result,
    }
