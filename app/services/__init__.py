"""
Finance Tracker - Services Package

Business logic services.
"""

from app.services.approval_policy import ApprovalDecision, ApprovalPolicy, approval_policy
from app.services.approval_workflow import ApprovalWorkflowService
from app.services.audit_service import AuditService, RequestContext
from app.services.auth_service import AuthService
from app.services.dashboard_service import DashboardService
from app.services.ledger_service import ALLOWED_UPDATE_FIELDS, LedgerService
from app.services.notification_service import NotificationService
from app.services.period_close_service import PeriodCloseService
from app.services.write_pipeline import WritePipeline

__all__ = [
    "ApprovalDecision",
    "ApprovalPolicy",
    "approval_policy",
    "ApprovalWorkflowService",
    "AuditService",
    "RequestContext",
    "AuthService",
    "DashboardService",
    "ALLOWED_UPDATE_FIELDS",
    "LedgerService",
    "NotificationService",
    "PeriodCloseService",
    "WritePipeline",
]
