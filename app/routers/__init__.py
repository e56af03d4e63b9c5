"""
Finance Tracker - Routers Package

FastAPI route handlers.

Routers:
- auth: Login and current user
- ledger: Revenues, expenses and invoices (full write pipeline)
- approvals: Executive approval queue and decisions
- notifications: In-app notifications
- period_closes: Close/reopen financial months
- audit_logs: Audit trail (read-only)
- dashboard: Per business unit summary
"""

from app.routers import (
    approvals,
    audit_logs,
    auth,
    dashboard,
    ledger,
    notifications,
    period_closes,
)

__all__ = [
    "approvals",
    "audit_logs",
    "auth",
    "dashboard",
    "ledger",
    "notifications",
    "period_closes",
]
