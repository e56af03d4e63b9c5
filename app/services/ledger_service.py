"""
Finance Tracker - Ledger Service

Storage operations for revenues, expenses and invoices. The write pipeline
decides whether a write may happen; this service only knows how to read,
build and change the records.

Updates are restricted to an explicit allow-list of fields per record kind.
"""

import uuid
from datetime import date
from typing import Any, Dict, FrozenSet, List, Mapping, Optional

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.business_unit import BusinessUnit
from app.models.entity_ref import EntityKind, TrackedModel, resolve_entity_model
from app.models.transaction import EntryApprovalStatus
from app.utils.error_handling import NotFoundException, ValidationException


_COMMON_FIELDS = frozenset({"amount", "category", "date", "description"})

ALLOWED_UPDATE_FIELDS: Dict[EntityKind, FrozenSet[str]] = {
    EntityKind.REVENUE: _COMMON_FIELDS | {"payment_status"},
    EntityKind.EXPENSE: _COMMON_FIELDS | {
        "expense_type",
        "vendor",
        "receipt_number",
        "payment_method",
    },
    EntityKind.INVOICE: _COMMON_FIELDS | {"client_name", "due_date", "status"},
}

# Fields only settable at creation
_CREATE_ONLY_FIELDS: Dict[EntityKind, FrozenSet[str]] = {
    EntityKind.REVENUE: frozenset({"business_unit_id"}),
    EntityKind.EXPENSE: frozenset({"business_unit_id"}),
    EntityKind.INVOICE: frozenset({"business_unit_id", "invoice_number"}),
}


def allowed_create_fields(kind: EntityKind) -> FrozenSet[str]:
    return ALLOWED_UPDATE_FIELDS[kind] | _CREATE_ONLY_FIELDS[kind]


class LedgerService:
    """Service for revenue, expense and invoice records."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, kind: EntityKind, entity_id: uuid.UUID) -> Optional[TrackedModel]:
        model = resolve_entity_model(kind)
        return await self.db.get(model, entity_id)

    async def get_or_404(self, kind: EntityKind, entity_id: uuid.UUID) -> TrackedModel:
        entity = await self.get(kind, entity_id)
        if entity is None:
            raise NotFoundException(kind.value.title(), entity_id)
        return entity

    async def list_entries(
        self,
        kind: EntityKind,
        business_unit_id: Optional[uuid.UUID] = None,
        approval_status: Optional[EntryApprovalStatus] = None,
        category: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> tuple[List[TrackedModel], int]:
        """
        List records of one kind with filters, newest date first.

        Returns:
            Tuple of (records, total_count)
        """
        model = resolve_entity_model(kind)
        filters = []

        if business_unit_id:
            filters.append(model.business_unit_id == business_unit_id)
        if approval_status:
            filters.append(model.approval_status == approval_status)
        if category:
            filters.append(model.category == category)
        if start_date:
            filters.append(model.date >= start_date)
        if end_date:
            filters.append(model.date <= end_date)

        count_result = await self.db.execute(select(func.count(model.id)).where(*filters))
        total = count_result.scalar() or 0

        result = await self.db.execute(
            select(model)
            .where(*filters)
            .order_by(model.date.desc(), model.created_at.desc())
            .offset(skip)
            .limit(limit)
        )
        return list(result.scalars().all()), total

    async def ensure_business_unit(self, business_unit_id: uuid.UUID) -> BusinessUnit:
        """Load an active business unit or raise NotFoundException."""
        unit = await self.db.get(BusinessUnit, business_unit_id)
        if unit is None or not unit.is_active:
            raise NotFoundException("Business unit", business_unit_id)
        return unit

    def build(
        self,
        kind: EntityKind,
        payload: Mapping[str, Any],
        approval_status: EntryApprovalStatus,
        actor_id: Optional[uuid.UUID],
    ) -> TrackedModel:
        """Instantiate a new record from validated payload fields."""
        model = resolve_entity_model(kind)
        fields = allowed_create_fields(kind)
        values = {k: v for k, v in payload.items() if k in fields and v is not None}

        return model(
            **values,
            approval_status=approval_status,
            created_by_id=actor_id,
            updated_by_id=actor_id,
        )

    def check_update_fields(self, kind: EntityKind, changes: Mapping[str, Any]) -> None:
        """
        Reject fields outside the allow-list.

        Raises:
            ValidationException: If any field may not be updated
        """
        disallowed = sorted(set(changes) - ALLOWED_UPDATE_FIELDS[kind])
        if disallowed:
            raise ValidationException(
                f"Fields cannot be updated: {', '.join(disallowed)}",
                details={"disallowed_fields": disallowed},
            )

    def apply_update(
        self,
        kind: EntityKind,
        entity: TrackedModel,
        changes: Mapping[str, Any],
        actor_id: Optional[uuid.UUID],
    ) -> Dict[str, Any]:
        """Apply allowed changes in place. Returns what was set."""
        self.check_update_fields(kind, changes)

        for field, value in changes.items():
            setattr(entity, field, value)
        entity.updated_by_id = actor_id

        return dict(changes)
