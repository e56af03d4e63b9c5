"""
Finance Tracker - SQLAlchemy Models Package

This package contains all database models for the application.
"""

from app.models.base import BaseModel, TimestampMixin, AuditMixin
from app.models.user import User, UserRole
from app.models.business_unit import BusinessUnit
from app.models.transaction import (
    Revenue,
    Expense,
    Invoice,
    EntryApprovalStatus,
    PaymentStatus,
    ExpenseType,
    InvoiceStatus,
)
from app.models.entity_ref import EntityKind, EntityRef, resolve_entity_model
from app.models.approval import ApprovalRequest, ApprovalStatus
from app.models.period_close import PeriodClose, PeriodStatus
from app.models.audit import AuditLog, AuditAction
from app.models.notification import Notification, NotificationType


__all__ = [
    # Base
    "BaseModel",
    "TimestampMixin",
    "AuditMixin",
    # Users & business units
    "User",
    "UserRole",
    "BusinessUnit",
    # Financial records
    "Revenue",
    "Expense",
    "Invoice",
    "EntryApprovalStatus",
    "PaymentStatus",
    "ExpenseType",
    "InvoiceStatus",
    # Approvals
    "EntityKind",
    "EntityRef",
    "resolve_entity_model",
    "ApprovalRequest",
    "ApprovalStatus",
    # Period close
    "PeriodClose",
    "PeriodStatus",
    # Audit & notifications
    "AuditLog",
    "AuditAction",
    "Notification",
    "NotificationType",
]
