"""
Finance Tracker - Ledger Routers

CRUD endpoints for revenues, expenses and invoices. The three routers are
built from one factory; every write runs through the WritePipeline
(period lock guard, approval policy, persistence, audit).
"""

import datetime as dt
import uuid
from typing import Optional, Type

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_async_session
from app.dependencies import (
    get_current_active_user,
    get_request_context,
    get_write_pipeline,
    get_writer,
)
from app.models.entity_ref import EntityKind, EntityRef
from app.models.transaction import EntryApprovalStatus
from app.models.user import User
from app.schemas.ledger import (
    ExpenseCreate,
    ExpenseUpdate,
    InvoiceCreate,
    InvoiceUpdate,
    RevenueCreate,
    RevenueUpdate,
)
from app.services.approval_workflow import ApprovalWorkflowService, serialize_approval
from app.services.audit_service import RequestContext
from app.services.ledger_service import LedgerService
from app.services.write_pipeline import WritePipeline
from app.utils.serialization import snapshot_model


def build_ledger_router(
    kind: EntityKind,
    prefix: str,
    tag: str,
    create_schema: Type[BaseModel],
    update_schema: Type[BaseModel],
) -> APIRouter:
    """Create the CRUD router for one record kind."""
    router = APIRouter(prefix=prefix, tags=[tag])
    label = kind.value.title()

    @router.get("", summary=f"List {tag.lower()}")
    async def list_entries(
        business_unit_id: Optional[uuid.UUID] = Query(None),
        approval_status: Optional[EntryApprovalStatus] = Query(None),
        category: Optional[str] = Query(None),
        start_date: Optional[dt.date] = Query(None),
        end_date: Optional[dt.date] = Query(None),
        skip: int = Query(0, ge=0),
        limit: int = Query(100, ge=1, le=500),
        current_user: User = Depends(get_current_active_user),
        db: AsyncSession = Depends(get_async_session),
    ):
        entries, total = await LedgerService(db).list_entries(
            kind,
            business_unit_id=business_unit_id,
            approval_status=approval_status,
            category=category,
            start_date=start_date,
            end_date=end_date,
            skip=skip,
            limit=limit,
        )
        return {
            "success": True,
            "data": [snapshot_model(entry) for entry in entries],
            "total": total,
        }

    @router.post("", status_code=status.HTTP_201_CREATED, summary=f"Record a {kind.value}")
    async def create_entry(
        payload: create_schema,
        current_user: User = Depends(get_writer),
        ctx: RequestContext = Depends(get_request_context),
        pipeline: WritePipeline = Depends(get_write_pipeline),
    ):
        result = await pipeline.create(kind, payload.model_dump(), current_user, ctx)
        return {"success": True, "message": f"{label} recorded successfully", **result}

    @router.get("/{entry_id}", summary=f"Get a {kind.value}")
    async def get_entry(
        entry_id: uuid.UUID,
        current_user: User = Depends(get_current_active_user),
        db: AsyncSession = Depends(get_async_session),
    ):
        entry = await LedgerService(db).get_or_404(kind, entry_id)
        data = snapshot_model(entry)
        approvals = await ApprovalWorkflowService(db).list_for_entity(EntityRef(kind=kind, id=entry_id))
        data["approvals"] = [serialize_approval(a) for a in approvals]
        return {"success": True, "data": data}

    @router.put("/{entry_id}", summary=f"Update a {kind.value}")
    async def update_entry(
        entry_id: uuid.UUID,
        payload: update_schema,
        current_user: User = Depends(get_writer),
        ctx: RequestContext = Depends(get_request_context),
        pipeline: WritePipeline = Depends(get_write_pipeline),
    ):
        changes = payload.model_dump(exclude_unset=True)
        result = await pipeline.update(kind, entry_id, changes, current_user, ctx)
        return {"success": True, "message": f"{label} updated successfully", **result}

    @router.delete("/{entry_id}", summary=f"Delete a {kind.value}")
    async def delete_entry(
        entry_id: uuid.UUID,
        current_user: User = Depends(get_writer),
        ctx: RequestContext = Depends(get_request_context),
        pipeline: WritePipeline = Depends(get_write_pipeline),
    ):
        result = await pipeline.delete(kind, entry_id, current_user, ctx)
        return {"success": True, "message": f"{label} deleted successfully", "data": result}

    return router


revenues_router = build_ledger_router(
    EntityKind.REVENUE, "/revenues", "Revenues", RevenueCreate, RevenueUpdate,
)
expenses_router = build_ledger_router(
    EntityKind.EXPENSE, "/expenses", "Expenses", ExpenseCreate, ExpenseUpdate,
)
invoices_router = build_ledger_router(
    EntityKind.INVOICE, "/invoices", "Invoices", InvoiceCreate, InvoiceUpdate,
)
