"""
Finance Tracker - Entity References

Approval requests point at the record they guard through an
(entity_type, entity_id) pair. ``EntityKind`` enumerates the record types
that can be approved and ``resolve_entity_model`` maps each kind to its
model class.
"""

import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Type, Union

from app.models.transaction import Expense, Invoice, Revenue


class EntityKind(str, Enum):
    """Record types that can carry an approval request."""
    REVENUE = "revenue"
    EXPENSE = "expense"
    INVOICE = "invoice"


TrackedModel = Union[Revenue, Expense, Invoice]

ENTITY_MODELS: Dict[EntityKind, Type[TrackedModel]] = {
    EntityKind.REVENUE: Revenue,
    EntityKind.EXPENSE: Expense,
    EntityKind.INVOICE: Invoice,
}


@dataclass(frozen=True)
class EntityRef:
    """Soft reference to an approvable record."""
    kind: EntityKind
    id: uuid.UUID

    @property
    def model(self) -> Type[TrackedModel]:
        return resolve_entity_model(self.kind)

    @property
    def module(self) -> str:
        """Logical module name used in audit entries (e.g. 'expenses')."""
        return self.model.__tablename__

    def __str__(self) -> str:
        return f"{self.kind.value}:{self.id}"


def resolve_entity_model(kind: EntityKind) -> Type[TrackedModel]:
    """Return the model class for a kind."""
    try:
        return ENTITY_MODELS[kind]
    except KeyError:
        raise ValueError(f"Unknown entity kind: {kind!r}")
