"""
Finance Tracker - Period Close Model

A (year, month) pair whose financial records are frozen once closed.
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import DateTime, Integer, Text, UniqueConstraint, Uuid, Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import BaseModel


class PeriodStatus(str, Enum):
    """Financial period status."""
    OPEN = "open"
    CLOSED = "closed"


class PeriodClose(BaseModel):
    """Close state of one financial month."""
    
    __tablename__ = "period_closes"
    __table_args__ = (
        UniqueConstraint("year", "month", name="uq_period_closes_year_month"),
    )
    
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    month: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[PeriodStatus] = mapped_column(
        SQLEnum(PeriodStatus),
        default=PeriodStatus.OPEN,
        nullable=False,
    )
    
    closed_by_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)
    closed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    
    @property
    def label(self) -> str:
        return f"{self.month}/{self.year}"
    
    def __repr__(self) -> str:
        return f"<PeriodClose({self.label}, status={self.status.value})>"
