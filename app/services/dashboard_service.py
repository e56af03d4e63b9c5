"""
Finance Tracker - Dashboard Service

Per business unit revenue/expense totals for the CEO dashboard.

Only records that count in the books are summed: approval status
``approved`` or ``na``. Pending records of every approvable kind (revenues,
expenses and invoices) are reported separately.
"""

import calendar
import uuid
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.business_unit import BusinessUnit
from app.models.transaction import EntryApprovalStatus, Expense, Invoice, Revenue
from app.utils.error_handling import ErrorCode, ValidationException

COUNTED_STATUSES = (EntryApprovalStatus.APPROVED, EntryApprovalStatus.NA)

PENDING_MODELS = (Revenue, Expense, Invoice)

TWO_PLACES = Decimal("0.01")


def _money(value: Any) -> Decimal:
    if value is None:
        return Decimal("0.00")
    return Decimal(str(value)).quantize(TWO_PLACES)


def period_bounds(year: Optional[int], month: Optional[int]) -> Tuple[Optional[date], Optional[date]]:
    """Date range for a year, a month of a year, or all time."""
    if month is not None and year is None:
        raise ValidationException("A month filter requires a year", field="year", code=ErrorCode.INVALID_PERIOD)
    if month is not None and not 1 <= month <= 12:
        raise ValidationException(f"Invalid month: {month}", field="month", code=ErrorCode.INVALID_PERIOD)
    if year is None:
        return None, None
    if month is None:
        return date(year, 1, 1), date(year, 12, 31)
    return date(year, month, 1), date(year, month, calendar.monthrange(year, month)[1])


class DashboardService:
    """Aggregates for the executive dashboard."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _totals_by_unit(self, model, start, end, statuses) -> Dict[uuid.UUID, Tuple[Decimal, int]]:
        query = (
            select(
                model.business_unit_id,
                func.coalesce(func.sum(model.amount), 0),
                func.count(model.id),
            )
            .where(model.approval_status.in_(statuses))
            .group_by(model.business_unit_id)
        )
        if start:
            query = query.where(model.date >= start)
        if end:
            query = query.where(model.date <= end)

        result = await self.db.execute(query)
        return {unit_id: (_money(total), count) for unit_id, total, count in result.all()}

    async def get_summary(self, year: Optional[int] = None, month: Optional[int] = None) -> Dict[str, Any]:
        """
        Revenue, expense and net per active business unit.

        Args:
            year: Restrict to a year
            month: Restrict to a month of ``year``
        """
        start, end = period_bounds(year, month)

        units_result = await self.db.execute(
            select(BusinessUnit)
            .where(BusinessUnit.is_active == True)  # noqa: E712
            .order_by(BusinessUnit.name)
        )
        units = list(units_result.scalars().all())

        revenue = await self._totals_by_unit(Revenue, start, end, COUNTED_STATUSES)
        expense = await self._totals_by_unit(Expense, start, end, COUNTED_STATUSES)
        pending = [
            await self._totals_by_unit(model, start, end, (EntryApprovalStatus.PENDING,))
            for model in PENDING_MODELS
        ]

        zero = (Decimal("0.00"), 0)
        rows: List[Dict[str, Any]] = []
        for unit in units:
            unit_revenue = revenue.get(unit.id, zero)[0]
            unit_expense = expense.get(unit.id, zero)[0]
            unit_pending = [totals.get(unit.id, zero) for totals in pending]
            rows.append({
                "business_unit_id": str(unit.id),
                "name": unit.name,
                "code": unit.code,
                "revenue": unit_revenue,
                "expenses": unit_expense,
                "net": unit_revenue - unit_expense,
                "pending_approval_count": sum(count for _, count in unit_pending),
                "pending_approval_amount": sum((amount for amount, _ in unit_pending), Decimal("0.00")),
            })

        total_revenue = sum((r["revenue"] for r in rows), Decimal("0.00"))
        total_expenses = sum((r["expenses"] for r in rows), Decimal("0.00"))

        return {
            "period": {
                "year": year,
                "month": month,
                "start": start.isoformat() if start else None,
                "end": end.isoformat() if end else None,
            },
            "totals": {
                "revenue": total_revenue,
                "expenses": total_expenses,
                "net": total_revenue - total_expenses,
                "pending_approval_count": sum(r["pending_approval_count"] for r in rows),
                "pending_approval_amount": sum((r["pending_approval_amount"] for r in rows), Decimal("0.00")),
            },
            "business_units": rows,
        }
