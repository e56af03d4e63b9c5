"""
Finance Tracker - Audit Log Model

Immutable audit log for tracking all data changes.

- Before/After snapshots (old_values / new_values)
- IP address and user agent of the requester
- Tolerates dangling user/entity references

This table should have no UPDATE or DELETE permissions.
"""

import uuid
import enum
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import JSON, DateTime, Enum, String, Text, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base
from app.models.base import utcnow


class AuditAction(str, enum.Enum):
    """Audit action types."""
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    LOGIN = "login"
    LOGOUT = "logout"
    OTHER = "other"


class AuditLog(Base):
    """
    Append-only record of who did what to which entity.
    """
    
    __tablename__ = "audit_logs"
    
    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    
    # User Context (no foreign key, audit survives user removal)
    user_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        nullable=True,
        index=True,
    )
    
    action: Mapped[AuditAction] = mapped_column(
        Enum(AuditAction),
        nullable=False,
        index=True,
    )
    
    module: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        index=True,
        comment="Logical area (expenses, revenues, approvals, ...)",
    )
    entity_id: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
        index=True,
        comment="ID of the affected record",
    )
    
    # ===========================================
    # BEFORE/AFTER SNAPSHOTS
    # none_as_null stores absent snapshots as SQL NULL, not JSON 'null'
    # ===========================================
    
    old_values: Mapped[Optional[Any]] = mapped_column(
        JSON(none_as_null=True),
        nullable=True,
        comment="Previous values (for UPDATE/DELETE)",
    )
    new_values: Mapped[Optional[Any]] = mapped_column(
        JSON(none_as_null=True),
        nullable=True,
        comment="New values (for CREATE/UPDATE)",
    )
    
    # Request Context
    ip_address: Mapped[Optional[str]] = mapped_column(String(45), nullable=True)
    user_agent: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    
    # Timestamp (immutable)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
        index=True,
    )
    
    def __repr__(self) -> str:
        return f"<AuditLog(id={self.id}, action={self.action.value}, module={self.module})>"
