"""
Finance Tracker - Schemas Package

Pydantic schemas for request/response validation.
"""

from app.schemas.approval import ApprovalActionRequest
from app.schemas.auth import LoginRequest
from app.schemas.ledger import (
    LedgerEntryCreate,
    LedgerEntryUpdate,
    RevenueCreate,
    RevenueUpdate,
    ExpenseCreate,
    ExpenseUpdate,
    InvoiceCreate,
    InvoiceUpdate,
)
from app.schemas.period_close import PeriodCloseRequest, PeriodReopenRequest

__all__ = [
    "ApprovalActionRequest",
    "LoginRequest",
    "LedgerEntryCreate",
    "LedgerEntryUpdate",
    "RevenueCreate",
    "RevenueUpdate",
    "ExpenseCreate",
    "ExpenseUpdate",
    "InvoiceCreate",
    "InvoiceUpdate",
    "PeriodCloseRequest",
    "PeriodReopenRequest",
]
