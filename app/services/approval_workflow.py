"""
Approval Workflow Service
Executive sign-off for flagged financial records

Lifecycle of an approval request:
- opened as pending when a write is flagged by the approval policy
- resolved once by the approver role (approved or rejected)
- terminal afterwards; a second resolution is a conflict

Resolution updates the approval row and the record's approval_status in a
single transaction. The approval row is claimed with a conditional UPDATE
(``WHERE status = 'pending'``) so two concurrent resolutions cannot both win.
"""

from typing import Any, Dict, List, Optional, Union
from uuid import UUID
import logging

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update

from app.config import Settings, settings as default_settings
from app.models.approval import ApprovalRequest, ApprovalStatus
from app.models.audit import AuditAction
from app.models.base import utcnow
from app.models.entity_ref import EntityRef, resolve_entity_model
from app.models.notification import NotificationType
from app.models.transaction import EntryApprovalStatus
from app.models.user import User
from app.services.audit_service import AuditService, RequestContext
from app.services.notification_service import NotificationService
from app.utils.error_handling import (
    AuthorizationException,
    ConflictException,
    ErrorCode,
    NotFoundException,
    TransactionException,
    ValidationException,
)

logger = logging.getLogger(__name__)

APPROVALS_MODULE = "approvals"
APPROVALS_LINK = "/approvals"

RESOLUTIONS = (ApprovalStatus.APPROVED, ApprovalStatus.REJECTED)


class ApprovalWorkflowService:
    """
    Single-approver workflow for financial records
    """

    def __init__(self, db: AsyncSession, settings: Optional[Settings] = None):
        self.db = db
        self.settings = settings or default_settings

    # ===========================================
    # OPENING REQUESTS
    # ===========================================

    async def get_pending_for_entity(self, ref: EntityRef) -> Optional[ApprovalRequest]:
        """Return the open request for a record, if any."""
        result = await self.db.execute(
            select(ApprovalRequest)
            .where(ApprovalRequest.entity_type == ref.kind)
            .where(ApprovalRequest.entity_id == ref.id)
            .where(ApprovalRequest.status == ApprovalStatus.PENDING)
            .order_by(ApprovalRequest.created_at.asc())
        )
        return result.scalars().first()

    async def open_request(
        self,
        ref: EntityRef,
        requested_by_id: Optional[UUID],
        reason: Optional[str],
    ) -> ApprovalRequest:
        """
        Open a pending request inside the caller's unit of work.

        Nothing is committed here; the caller commits the request together
        with the record it guards. A record that already has a pending
        request keeps it and no second one is created.

        Raises:
            ConflictException: If a concurrent write opened a pending
                request for the same record first
        """
        existing = await self.get_pending_for_entity(ref)
        if existing is not None:
            logger.info(f"Reusing pending approval {existing.id} for {ref}")
            return existing

        request = ApprovalRequest(
            entity_type=ref.kind,
            entity_id=ref.id,
            requested_by_id=requested_by_id,
            status=ApprovalStatus.PENDING,
            comments=reason,
        )
        self.db.add(request)
        try:
            await self.db.flush()
        except IntegrityError as e:
            await self.db.rollback()
            logger.warning(f"Pending approval for {ref} was opened concurrently: {e}")
            raise ConflictException(
                "An approval request is already pending for this record",
                resource_type="approval",
                code=ErrorCode.DUPLICATE_ENTRY,
            )

        logger.info(f"Opened approval request {request.id} for {ref}: {reason}")
        return request

    # ===========================================
    # QUERIES
    # ===========================================

    async def get(self, approval_id: UUID) -> ApprovalRequest:
        """Fetch one request or raise NotFoundException."""
        approval = await self.db.get(ApprovalRequest, approval_id)
        if approval is None:
            raise NotFoundException("Approval request", approval_id, message="Approval request not found")
        return approval

    async def list_pending(self) -> List[Dict[str, Any]]:
        """Pending requests, oldest first, with the requester's name."""
        result = await self.db.execute(
            select(ApprovalRequest, User.full_name)
            .outerjoin(User, ApprovalRequest.requested_by_id == User.id)
            .where(ApprovalRequest.status == ApprovalStatus.PENDING)
            .order_by(ApprovalRequest.created_at.asc())
        )
        return [
            {**serialize_approval(approval), "requester_name": requester_name}
            for approval, requester_name in result.all()
        ]

    async def list_for_entity(self, ref: EntityRef) -> List[ApprovalRequest]:
        """Every request ever opened for a record, oldest first."""
        result = await self.db.execute(
            select(ApprovalRequest)
            .where(ApprovalRequest.entity_type == ref.kind)
            .where(ApprovalRequest.entity_id == ref.id)
            .order_by(ApprovalRequest.created_at.asc())
        )
        return list(result.scalars().all())

    # ===========================================
    # RESOLUTION
    # ===========================================

    async def resolve(
        self,
        approval_id: UUID,
        actor: User,
        action: Union[ApprovalStatus, str],
        comments: Optional[str] = None,
        ctx: Optional[RequestContext] = None,
    ) -> Dict[str, Any]:
        """
        Approve or reject a pending request.

        Raises:
            ValidationException: action is not approved/rejected
            AuthorizationException: actor does not hold the approver role
            NotFoundException: unknown request, or the record is gone
            ConflictException: request already resolved
            TransactionException: the atomic update failed and was rolled back
        """
        try:
            decision = ApprovalStatus(action)
        except ValueError:
            decision = None
        if decision not in RESOLUTIONS:
            raise ValidationException(
                "Action must be 'approved' or 'rejected'",
                field="action",
            )

        actor_id = actor.id
        if actor.role.value != self.settings.approver_role:
            raise AuthorizationException("Access denied", required_permission=self.settings.approver_role)

        approval = await self.get(approval_id)
        ref = approval.entity_ref
        requested_by_id = approval.requested_by_id

        try:
            model = resolve_entity_model(ref.kind)
        except ValueError:
            raise NotFoundException("Record", ref.id, message=f"Unknown record type: {ref.kind}")

        exists = await self.db.execute(select(model.id).where(model.id == ref.id))
        if exists.first() is None:
            raise NotFoundException(ref.kind.value.title(), ref.id)

        if not approval.is_pending:
            raise ConflictException(
                f"Approval request already {approval.status.value}",
                resource_type="approval",
                code=ErrorCode.ALREADY_PROCESSED,
            )

        try:
            claimed = await self.db.execute(
                update(ApprovalRequest)
                .where(ApprovalRequest.id == approval_id)
                .where(ApprovalRequest.status == ApprovalStatus.PENDING)
                .values(
                    status=decision,
                    action_by_id=actor_id,
                    comments=comments,
                    resolved_at=utcnow(),
                )
            )
            if claimed.rowcount == 0:
                raise ConflictException(
                    "Approval request was already resolved",
                    resource_type="approval",
                    code=ErrorCode.ALREADY_PROCESSED,
                )

            await self._set_entity_status(ref, EntryApprovalStatus(decision.value))
            await self.db.commit()
        except ConflictException:
            await self.db.rollback()
            raise
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Approval {approval_id} resolution rolled back: {e}")
            raise TransactionException("approval resolution", original_error=e)

        logger.info(f"Approval {approval_id} {decision.value} by {actor_id} for {ref}")

        ctx = ctx or RequestContext()
        await AuditService(self.db).record_with_context(
            ctx,
            user_id=actor_id,
            action=AuditAction.UPDATE,
            module=APPROVALS_MODULE,
            entity_id=approval_id,
            new_values={"status": decision.value, "comments": comments},
        )

        if requested_by_id:
            await NotificationService(self.db).enqueue(
                user_id=requested_by_id,
                notification_type=(
                    NotificationType.SUCCESS if decision == ApprovalStatus.APPROVED
                    else NotificationType.ERROR
                ),
                title=f"Request {'Approved' if decision == ApprovalStatus.APPROVED else 'Rejected'}",
                message=f"Your {ref.kind.value} request (#{ref.id}) was {decision.value} by CEO.",
                link=APPROVALS_LINK,
            )

        return {
            "approval_id": str(approval_id),
            "status": decision.value,
            "entity_type": ref.kind.value,
            "entity_id": str(ref.id),
        }

    async def _set_entity_status(self, ref: EntityRef, status: EntryApprovalStatus) -> None:
        """Mirror the decision onto the guarded record."""
        model = resolve_entity_model(ref.kind)
        await self.db.execute(
            update(model)
            .where(model.id == ref.id)
            .values(approval_status=status)
        )


def serialize_approval(approval: ApprovalRequest) -> Dict[str, Any]:
    """API representation of an approval request."""
    return {
        "id": str(approval.id),
        "entity_type": approval.entity_type.value,
        "entity_id": str(approval.entity_id),
        "requested_by_id": str(approval.requested_by_id) if approval.requested_by_id else None,
        "status": approval.status.value,
        "comments": approval.comments,
        "action_by_id": str(approval.action_by_id) if approval.action_by_id else None,
        "resolved_at": approval.resolved_at.isoformat() if approval.resolved_at else None,
        "created_at": approval.created_at.isoformat() if approval.created_at else None,
    }
