"""
Finance Tracker - Notifications Router

API endpoints for the current user's notifications.

Features:
- List recent notifications
- Unread count
- Mark as read (single/all)
"""

import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_async_session
from app.dependencies import get_current_active_user
from app.models.user import User
from app.services.notification_service import NotificationService, serialize_notification
from app.utils.error_handling import NotFoundException


router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get("", summary="List notifications")
async def list_notifications(
    unread_only: bool = Query(False, description="Only unread notifications"),
    limit: int = Query(20, ge=1, le=200),
    offset: int = Query(0, ge=0),
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    """List notifications for the current user, newest first."""
    service = NotificationService(db)

    notifications, total = await service.get_user_notifications(
        user_id=current_user.id,
        unread_only=unread_only,
        limit=limit,
        offset=offset,
    )
    unread_count = await service.get_unread_count(current_user.id)

    return {
        "success": True,
        "data": [serialize_notification(n) for n in notifications],
        "total": total,
        "unread_count": unread_count,
    }


@router.get("/unread-count", summary="Get unread notification count")
async def get_unread_count(
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    unread_count = await NotificationService(db).get_unread_count(current_user.id)
    return {"success": True, "data": {"unread_count": unread_count}}


@router.put("/read-all", summary="Mark all notifications as read")
async def mark_all_as_read(
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    updated = await NotificationService(db).mark_all_as_read(current_user.id)
    return {
        "success": True,
        "message": "All notifications marked as read",
        "data": {"updated": updated},
    }


@router.put("/{notification_id}/read", summary="Mark a notification as read")
async def mark_as_read(
    notification_id: uuid.UUID,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    marked = await NotificationService(db).mark_as_read(notification_id, current_user.id)
    if not marked:
        raise NotFoundException("Notification", notification_id)
    return {"success": True, "message": "Notification marked as read"}
