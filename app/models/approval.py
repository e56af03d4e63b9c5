"""
Finance Tracker - Approval Request Model

An approval request represents a financial record waiting for executive
sign-off. It references the record by (entity_type, entity_id) and never
owns it.

Lifecycle: pending -> approved | rejected (terminal, never reopened).
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import DateTime, Index, String, Text, Uuid, text, Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import BaseModel
from app.models.entity_ref import EntityKind, EntityRef


class ApprovalStatus(str, Enum):
    """Approval request status."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ApprovalRequest(BaseModel):
    """Record awaiting executive sign-off."""
    
    __tablename__ = "approvals"
    __table_args__ = (
        Index("ix_approvals_entity", "entity_type", "entity_id", "status"),
        # At most one pending request per record
        Index(
            "uq_approvals_pending_entity",
            "entity_type",
            "entity_id",
            unique=True,
            postgresql_where=text("status = 'PENDING'"),
            sqlite_where=text("status = 'PENDING'"),
        ),
    )
    
    entity_type: Mapped[EntityKind] = mapped_column(
        SQLEnum(EntityKind),
        nullable=False,
    )
    entity_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    
    requested_by_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        nullable=True,
        index=True,
    )
    
    status: Mapped[ApprovalStatus] = mapped_column(
        SQLEnum(ApprovalStatus),
        default=ApprovalStatus.PENDING,
        nullable=False,
        index=True,
    )
    
    # Reason at creation, decision comments at resolution
    comments: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    
    action_by_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)
    resolved_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    
    @property
    def entity_ref(self) -> EntityRef:
        return EntityRef(kind=self.entity_type, id=self.entity_id)
    
    @property
    def is_pending(self) -> bool:
        return self.status == ApprovalStatus.PENDING
    
    def __repr__(self) -> str:
        return f"<ApprovalRequest(id={self.id}, entity={self.entity_type.value}:{self.entity_id}, status={self.status.value})>"
