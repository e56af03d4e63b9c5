"""
Finance Tracker - Transaction Models

Revenue, expense and invoice records. Each belongs to exactly one business
unit and carries an approval status set by the approval policy at creation
time and changed once when an executive resolves the approval request.

Amounts are stored as NUMERIC(15, 2) and handled as Decimal throughout.
"""

import datetime as dt
import uuid
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import Date, ForeignKey, Numeric, String, Text, Uuid, Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import BaseModel, AuditMixin


class EntryApprovalStatus(str, Enum):
    """Approval status carried by a financial record."""
    NA = "na"                # No approval required
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class PaymentStatus(str, Enum):
    """Payment status for revenues."""
    PAID = "paid"
    PENDING = "pending"
    PARTIAL = "partial"


class ExpenseType(str, Enum):
    """Cost behaviour of an expense."""
    FIXED = "fixed"
    VARIABLE = "variable"


class InvoiceStatus(str, Enum):
    """Invoice lifecycle status."""
    DRAFT = "draft"
    SENT = "sent"
    PAID = "paid"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"


class LedgerEntryMixin(AuditMixin):
    """Columns shared by every financial record."""

    business_unit_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("business_units.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    amount: Mapped[Decimal] = mapped_column(
        Numeric(precision=15, scale=2),
        nullable=False,
    )
    category: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False, index=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    approval_status: Mapped[EntryApprovalStatus] = mapped_column(
        SQLEnum(EntryApprovalStatus),
        default=EntryApprovalStatus.NA,
        nullable=False,
        index=True,
    )


class Revenue(BaseModel, LedgerEntryMixin):
    """Money earned by a business unit."""

    __tablename__ = "revenues"

    payment_status: Mapped[PaymentStatus] = mapped_column(
        SQLEnum(PaymentStatus),
        default=PaymentStatus.PAID,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Revenue(id={self.id}, amount={self.amount}, category={self.category})>"


class Expense(BaseModel, LedgerEntryMixin):
    """Money spent by a business unit."""

    __tablename__ = "expenses"

    expense_type: Mapped[ExpenseType] = mapped_column(
        SQLEnum(ExpenseType),
        default=ExpenseType.VARIABLE,
        nullable=False,
    )
    vendor: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    receipt_number: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    payment_method: Mapped[str] = mapped_column(String(50), default="cash", nullable=False)

    def __repr__(self) -> str:
        return f"<Expense(id={self.id}, amount={self.amount}, category={self.category})>"


class Invoice(BaseModel, LedgerEntryMixin):
    """Invoice raised by a business unit against a client."""

    __tablename__ = "invoices"

    invoice_number: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    client_name: Mapped[str] = mapped_column(String(255), nullable=False)
    due_date: Mapped[Optional[dt.date]] = mapped_column(Date, nullable=True)
    status: Mapped[InvoiceStatus] = mapped_column(
        SQLEnum(InvoiceStatus),
        default=InvoiceStatus.DRAFT,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Invoice(id={self.id}, number={self.invoice_number})>"
