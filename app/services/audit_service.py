"""
Finance Tracker - Audit Trail Service

Append-only audit logging for financial records.

Writes happen after the primary mutation has committed and are
best-effort: a failure is logged and swallowed, never surfaced to the
caller.
"""

import uuid
import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Dict, List, Optional, Union

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.audit import AuditLog, AuditAction
from app.utils.serialization import to_jsonable
from app.utils.side_effects import best_effort

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RequestContext:
    """Who is asking and from where; attached to audit entries."""
    request_id: Optional[str] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None


def _day_start(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


class AuditService:
    """Service for recording and querying the audit trail."""

    def __init__(self, db: AsyncSession):
        self.db = db

    @best_effort("audit log write")
    async def record(
        self,
        user_id: Optional[uuid.UUID],
        action: Union[AuditAction, str],
        module: str,
        entity_id: Optional[Union[uuid.UUID, str]],
        old_values: Optional[Dict[str, Any]] = None,
        new_values: Optional[Dict[str, Any]] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> Optional[AuditLog]:
        """
        Append one audit entry and commit it.

        Args:
            user_id: User who performed the action
            action: Type of action performed
            module: Logical area (e.g. 'expenses', 'approvals')
            entity_id: ID of the affected record
            old_values: Snapshot before the change (update/delete)
            new_values: Snapshot after the change (create/update)
            ip_address: Client IP address
            user_agent: Client user agent

        Returns:
            The stored entry, or None if the write failed
        """
        audit_log = AuditLog(
            user_id=user_id,
            action=AuditAction(action),
            module=module,
            entity_id=str(entity_id) if entity_id is not None else None,
            old_values=to_jsonable(old_values) if old_values is not None else None,
            new_values=to_jsonable(new_values) if new_values is not None else None,
            ip_address=ip_address,
            user_agent=user_agent,
        )

        self.db.add(audit_log)
        await self.db.commit()

        logger.debug(f"Audit {audit_log.action.value} on {module}:{audit_log.entity_id} by {user_id}")
        return audit_log

    async def record_with_context(
        self,
        ctx: RequestContext,
        user_id: Optional[uuid.UUID],
        action: Union[AuditAction, str],
        module: str,
        entity_id: Optional[Union[uuid.UUID, str]],
        old_values: Optional[Dict[str, Any]] = None,
        new_values: Optional[Dict[str, Any]] = None,
    ) -> Optional[AuditLog]:
        """Shortcut that pulls ip address and user agent from a request context."""
        return await self.record(
            user_id=user_id,
            action=action,
            module=module,
            entity_id=entity_id,
            old_values=old_values,
            new_values=new_values,
            ip_address=ctx.ip_address,
            user_agent=ctx.user_agent,
        )

    @staticmethod
    def _calculate_changes(
        old_values: Optional[Dict[str, Any]],
        new_values: Optional[Dict[str, Any]],
    ) -> Dict[str, Any]:
        """Calculate what changed between old and new values."""
        old_values = old_values or {}
        new_values = new_values or {}
        changes = {}

        for key in sorted(set(old_values) | set(new_values)):
            old_val = old_values.get(key)
            new_val = new_values.get(key)

            if old_val != new_val:
                changes[key] = {
                    "old": old_val,
                    "new": new_val,
                }

        return changes

    async def list_logs(
        self,
        module: Optional[str] = None,
        action: Optional[AuditAction] = None,
        user_id: Optional[uuid.UUID] = None,
        entity_id: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[AuditLog]:
        """
        Get audit logs with optional filtering, newest first.

        Args:
            module: Filter by module
            action: Filter by action type
            user_id: Filter by user
            entity_id: Filter by affected record
            start_date: Filter by date range start (inclusive)
            end_date: Filter by date range end (inclusive)
            skip: Pagination offset
            limit: Pagination limit
        """
        query = select(AuditLog)

        if module:
            query = query.where(AuditLog.module == module)

        if action:
            query = query.where(AuditLog.action == action)

        if user_id:
            query = query.where(AuditLog.user_id == user_id)

        if entity_id:
            query = query.where(AuditLog.entity_id == entity_id)

        if start_date:
            query = query.where(AuditLog.created_at >= _day_start(start_date))

        if end_date:
            query = query.where(AuditLog.created_at < _day_start(end_date + timedelta(days=1)))

        query = query.order_by(AuditLog.created_at.desc()).offset(skip).limit(limit)

        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get_entity_history(
        self,
        module: str,
        entity_id: str,
    ) -> List[Dict[str, Any]]:
        """
        Get complete history of changes for a specific record.

        Returns chronological list of all changes made to the record.
        """
        logs = await self.list_logs(module=module, entity_id=entity_id, limit=1000)

        history = []
        for log in reversed(logs):  # Oldest first
            entry = {
                "id": str(log.id),
                "timestamp": log.created_at.isoformat() if log.created_at else None,
                "action": log.action.value,
                "user_id": str(log.user_id) if log.user_id else None,
            }

            if log.action == AuditAction.CREATE:
                entry["values"] = log.new_values
            elif log.action == AuditAction.UPDATE:
                entry["changes"] = self._calculate_changes(log.old_values, log.new_values)
            elif log.action == AuditAction.DELETE:
                entry["deleted_values"] = log.old_values

            history.append(entry)

        return history


def serialize_audit_log(log: AuditLog) -> Dict[str, Any]:
    """API representation of an audit entry."""
    return {
        "id": str(log.id),
        "user_id": str(log.user_id) if log.user_id else None,
        "action": log.action.value,
        "module": log.module,
        "entity_id": log.entity_id,
        "old_values": log.old_values,
        "new_values": log.new_values,
        "ip_address": log.ip_address,
        "user_agent": log.user_agent,
        "created_at": log.created_at.isoformat() if log.created_at else None,
    }
