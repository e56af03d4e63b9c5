"""
Finance Tracker - Business Unit Model

A business unit is a revenue segment (a store, a school, a course line)
whose transactions are tracked separately.
"""

from sqlalchemy import Boolean, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import BaseModel


class BusinessUnit(BaseModel):
    """Organizational segment owning revenues, expenses and invoices."""
    
    __tablename__ = "business_units"
    
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    code: Mapped[str] = mapped_column(
        String(50),
        unique=True,
        nullable=False,
        comment="Short code, e.g. URBANFIT, OFFICE",
    )
    description: Mapped[str] = mapped_column(Text, default="", nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
