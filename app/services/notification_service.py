"""
Finance Tracker - Notification Service

In-app notifications for users. Enqueueing is best-effort: callers fire it
after their own work has committed and a failure is only logged.
"""

import uuid
import logging
from typing import List, Optional, Tuple, Union

from sqlalchemy import select, update, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.base import utcnow
from app.models.notification import Notification, NotificationType
from app.utils.side_effects import best_effort

logger = logging.getLogger(__name__)


class NotificationService:
    """Service for managing user notifications."""

    def __init__(self, db: AsyncSession):
        self.db = db

    @best_effort("notification enqueue", default=False)
    async def enqueue(
        self,
        user_id: uuid.UUID,
        title: str,
        message: str,
        notification_type: Union[NotificationType, str] = NotificationType.INFO,
        link: Optional[str] = None,
    ) -> bool:
        """
        Queue a notification for a user.

        Returns:
            True if stored, False if the write failed
        """
        notification = Notification(
            user_id=user_id,
            notification_type=NotificationType(notification_type),
            title=title,
            message=message,
            link=link,
            is_read=False,
        )

        self.db.add(notification)
        await self.db.commit()

        logger.info(f"Notification created for user {user_id}: {title}")
        return True

    async def get_user_notifications(
        self,
        user_id: uuid.UUID,
        unread_only: bool = False,
        limit: int = 20,
        offset: int = 0,
    ) -> Tuple[List[Notification], int]:
        """
        Get notifications for a user, newest first.

        Returns:
            Tuple of (notifications, total_count)
        """
        query = select(Notification).where(Notification.user_id == user_id)
        count_query = select(func.count(Notification.id)).where(Notification.user_id == user_id)

        if unread_only:
            query = query.where(Notification.is_read == False)  # noqa: E712
            count_query = count_query.where(Notification.is_read == False)  # noqa: E712

        total = (await self.db.execute(count_query)).scalar() or 0

        query = (
            query
            .order_by(Notification.created_at.desc())
            .limit(limit)
            .offset(offset)
        )

        result = await self.db.execute(query)
        return list(result.scalars().all()), total

    async def get_unread_count(self, user_id: uuid.UUID) -> int:
        """Get count of unread notifications for a user."""
        result = await self.db.execute(
            select(func.count(Notification.id))
            .where(Notification.user_id == user_id)
            .where(Notification.is_read == False)  # noqa: E712
        )
        return result.scalar() or 0

    async def mark_as_read(
        self,
        notification_id: uuid.UUID,
        user_id: uuid.UUID,
    ) -> bool:
        """
        Mark a single notification as read.

        Only the recipient can mark it; returns False if no such
        notification belongs to the user.
        """
        result = await self.db.execute(
            select(Notification)
            .where(Notification.id == notification_id)
            .where(Notification.user_id == user_id)
        )
        notification = result.scalar_one_or_none()

        if not notification:
            return False

        notification.mark_as_read()
        await self.db.commit()
        return True

    async def mark_all_as_read(self, user_id: uuid.UUID) -> int:
        """Mark all of a user's notifications as read. Returns the count updated."""
        result = await self.db.execute(
            update(Notification)
            .where(Notification.user_id == user_id)
            .where(Notification.is_read == False)  # noqa: E712
            .values(is_read=True, read_at=utcnow())
        )
        await self.db.commit()

        return result.rowcount


def serialize_notification(notification: Notification) -> dict:
    """API representation of a notification."""
    return {
        "id": str(notification.id),
        "type": notification.notification_type.value,
        "title": notification.title,
        "message": notification.message,
        "link": notification.link,
        "is_read": notification.is_read,
        "read_at": notification.read_at.isoformat() if notification.read_at else None,
        "created_at": notification.created_at.isoformat() if notification.created_at else None,
    }
