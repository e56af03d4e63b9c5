"""
Finance Tracker - Ledger Schemas

Pydantic schemas for revenue, expense and invoice requests.

Amounts are Decimals validated as strictly positive; whether a record is
an inflow or an outflow follows from its kind and category, never from
the sign.
"""

import datetime as dt
from decimal import Decimal
from typing import ClassVar, FrozenSet, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator

from app.models.transaction import ExpenseType, InvoiceStatus, PaymentStatus


# ===========================================
# CREATE SCHEMAS
# ===========================================

class LedgerEntryCreate(BaseModel):
    """Fields shared by every financial record."""
    business_unit_id: UUID
    amount: Decimal = Field(..., gt=0, max_digits=15, decimal_places=2)
    category: str = Field(..., min_length=1, max_length=100)
    date: dt.date
    description: Optional[str] = Field(None, max_length=2000)


class RevenueCreate(LedgerEntryCreate):
    payment_status: PaymentStatus = PaymentStatus.PAID


class ExpenseCreate(LedgerEntryCreate):
    expense_type: ExpenseType = ExpenseType.VARIABLE
    vendor: Optional[str] = Field(None, max_length=255)
    receipt_number: Optional[str] = Field(None, max_length=100)
    payment_method: str = Field("cash", max_length=50)


class InvoiceCreate(LedgerEntryCreate):
    invoice_number: str = Field(..., min_length=1, max_length=50)
    client_name: str = Field(..., min_length=1, max_length=255)
    due_date: Optional[dt.date] = None
    status: InvoiceStatus = InvoiceStatus.DRAFT


# ===========================================
# UPDATE SCHEMAS
# Unknown fields are rejected rather than silently dropped. An explicit
# null clears an optional column and is rejected for required ones.
# ===========================================

class LedgerEntryUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    clearable_fields: ClassVar[FrozenSet[str]] = frozenset({"description"})

    amount: Optional[Decimal] = Field(None, gt=0, max_digits=15, decimal_places=2)
    category: Optional[str] = Field(None, min_length=1, max_length=100)
    date: Optional[dt.date] = None
    description: Optional[str] = Field(None, max_length=2000)

    @model_validator(mode="after")
    def reject_null_required_fields(self):
        nulled = sorted(
            name for name in self.model_fields_set
            if getattr(self, name) is None and name not in self.clearable_fields
        )
        if nulled:
            raise ValueError(f"Fields cannot be cleared: {', '.join(nulled)}")
        return self


class RevenueUpdate(LedgerEntryUpdate):
    payment_status: Optional[PaymentStatus] = None


class ExpenseUpdate(LedgerEntryUpdate):
    clearable_fields: ClassVar[FrozenSet[str]] = frozenset({"description", "vendor", "receipt_number"})

    expense_type: Optional[ExpenseType] = None
    vendor: Optional[str] = Field(None, max_length=255)
    receipt_number: Optional[str] = Field(None, max_length=100)
    payment_method: Optional[str] = Field(None, max_length=50)


class InvoiceUpdate(LedgerEntryUpdate):
    clearable_fields: ClassVar[FrozenSet[str]] = frozenset({"description", "due_date"})

    client_name: Optional[str] = Field(None, min_length=1, max_length=255)
    due_date: Optional[dt.date] = None
    status: Optional[InvoiceStatus] = None
