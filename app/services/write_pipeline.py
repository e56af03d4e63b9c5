"""
Finance Tracker - Write Pipeline

Every create, update and delete of a financial record goes through the
same steps, in order:

1. period lock guard (closed months reject the write)
2. approval policy (create/update only)
3. persistence, with the approval request opened in the same commit
4. audit entry (best-effort, after commit)
"""

import uuid
import logging
from typing import Any, Dict, Mapping, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.config import Settings, settings as default_settings
from app.models.audit import AuditAction
from app.models.entity_ref import EntityKind, EntityRef
from app.models.transaction import EntryApprovalStatus
from app.models.user import User
from app.services.approval_policy import ApprovalPolicy, approval_policy
from app.services.approval_workflow import ApprovalWorkflowService
from app.services.audit_service import AuditService, RequestContext
from app.services.ledger_service import LedgerService
from app.services.period_close_service import PeriodCloseService
from app.utils.serialization import snapshot_model

logger = logging.getLogger(__name__)


class WritePipeline:
    """Composes guard, policy, persistence and audit for record writes."""

    def __init__(
        self,
        db: AsyncSession,
        settings: Optional[Settings] = None,
        policy: Optional[ApprovalPolicy] = None,
    ):
        self.db = db
        self.settings = settings or default_settings
        self.policy = policy or approval_policy
        self.guard = PeriodCloseService(db, self.settings)
        self.ledger = LedgerService(db)
        self.workflow = ApprovalWorkflowService(db, self.settings)
        self.audit = AuditService(db)

    async def create(
        self,
        kind: EntityKind,
        payload: Mapping[str, Any],
        actor: User,
        ctx: Optional[RequestContext] = None,
    ) -> Dict[str, Any]:
        """
        Record a new revenue, expense or invoice.

        Returns:
            Dict with the stored record under ``data`` and the policy outcome
            under ``approval``
        """
        actor_id = actor.id

        await self.guard.check_write_allowed("POST", payload.get("date"))

        decision = self.policy.evaluate(payload.get("amount"), payload.get("category"), "POST")

        await self.ledger.ensure_business_unit(payload.get("business_unit_id"))

        entity = self.ledger.build(kind, payload, decision.status, actor_id)
        self.db.add(entity)
        await self.db.flush()

        approval_id = None
        if decision.requires_approval:
            approval = await self.workflow.open_request(
                EntityRef(kind=kind, id=entity.id),
                requested_by_id=actor_id,
                reason=decision.reason,
            )
            approval_id = approval.id

        await self.db.commit()
        await self.db.refresh(entity)
        snapshot = snapshot_model(entity)

        logger.info(
            f"{kind.value} {entity.id} created by {actor_id} "
            f"(approval: {decision.status.value})"
        )

        await self.audit.record_with_context(
            ctx or RequestContext(),
            user_id=actor_id,
            action=AuditAction.CREATE,
            module=EntityRef(kind=kind, id=entity.id).module,
            entity_id=snapshot["id"],
            new_values=snapshot,
        )

        return self._result(snapshot, decision.as_context(), approval_id)

    async def update(
        self,
        kind: EntityKind,
        entity_id: uuid.UUID,
        changes: Mapping[str, Any],
        actor: User,
        ctx: Optional[RequestContext] = None,
    ) -> Dict[str, Any]:
        """
        Apply allowed changes to an existing record.

        A change that the policy flags moves the record back to pending and
        opens (or reuses) its approval request.
        """
        actor_id = actor.id
        ref = EntityRef(kind=kind, id=entity_id)

        record_date = None
        if self.settings.period_guard_use_record_date:
            record_date = (await self.ledger.get_or_404(kind, entity_id)).date

        await self.guard.check_write_allowed("PUT", changes.get("date"), record_date)
        if record_date is not None and changes.get("date") is not None:
            # Moving a record out of a closed month is a write to that month
            await self.guard.check_write_allowed("PUT", record_date)

        self.ledger.check_update_fields(kind, changes)

        decision = self.policy.evaluate(changes.get("amount"), changes.get("category"), "PUT")

        entity = await self.ledger.get_or_404(kind, entity_id)

        old_values = snapshot_model(entity)
        self.ledger.apply_update(kind, entity, changes, actor_id)

        approval_id = None
        if decision.requires_approval:
            entity.approval_status = EntryApprovalStatus.PENDING
            await self.db.flush()
            approval = await self.workflow.open_request(
                ref,
                requested_by_id=actor_id,
                reason=decision.reason,
            )
            approval_id = approval.id

        await self.db.commit()
        await self.db.refresh(entity)
        snapshot = snapshot_model(entity)

        logger.info(f"{kind.value} {entity_id} updated by {actor_id}")

        await self.audit.record_with_context(
            ctx or RequestContext(),
            user_id=actor_id,
            action=AuditAction.UPDATE,
            module=ref.module,
            entity_id=entity_id,
            old_values=old_values,
            new_values=snapshot,
        )

        return self._result(snapshot, decision.as_context(), approval_id)

    async def delete(
        self,
        kind: EntityKind,
        entity_id: uuid.UUID,
        actor: User,
        ctx: Optional[RequestContext] = None,
    ) -> Dict[str, Any]:
        """
        Delete a record. Its approval requests are kept as history.
        """
        actor_id = actor.id
        ref = EntityRef(kind=kind, id=entity_id)

        entity = None
        record_date = None
        if self.settings.period_guard_use_record_date:
            entity = await self.ledger.get_or_404(kind, entity_id)
            record_date = entity.date

        await self.guard.check_write_allowed("DELETE", None, record_date)

        if entity is None:
            entity = await self.ledger.get_or_404(kind, entity_id)

        old_values = snapshot_model(entity)
        await self.db.delete(entity)
        await self.db.commit()

        logger.info(f"{kind.value} {entity_id} deleted by {actor_id}")

        await self.audit.record_with_context(
            ctx or RequestContext(),
            user_id=actor_id,
            action=AuditAction.DELETE,
            module=ref.module,
            entity_id=entity_id,
            old_values=old_values,
        )

        return {"id": str(entity_id)}

    @staticmethod
    def _result(
        snapshot: Dict[str, Any],
        approval_context: Dict[str, Any],
        approval_id: Optional[uuid.UUID],
    ) -> Dict[str, Any]:
        approval = dict(approval_context)
        approval["approvalId"] = str(approval_id) if approval_id else None
        return {"data": snapshot, "approval": approval}
