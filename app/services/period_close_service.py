"""
Finance Tracker - Period Close Service

Guards writes against closed financial months and lets executives close
and reopen months.

Guard rules:
- only POST, PUT and DELETE are checked
- the target date is the payload date; PUT/DELETE without one fall back to
  today (or to the stored record's date when PERIOD_GUARD_USE_RECORD_DATE
  is enabled, in which case an update is also checked against the month
  the record currently sits in)
- a lookup failure lets the write through and logs a warning
"""

import datetime as dt
import logging
from typing import Any, Dict, List, Optional, Union

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import Settings, settings as default_settings
from app.models.audit import AuditAction
from app.models.base import utcnow
from app.models.period_close import PeriodClose, PeriodStatus
from app.models.user import User, UserRole
from app.services.audit_service import AuditService, RequestContext
from app.utils.error_handling import (
    AuthorizationException,
    ConflictException,
    ErrorCode,
    NotFoundException,
    PeriodClosedException,
    ValidationException,
)
from app.utils.serialization import snapshot_model

logger = logging.getLogger(__name__)

GUARDED_METHODS = frozenset({"POST", "PUT", "DELETE"})
PERIOD_ADMIN_ROLES = frozenset({UserRole.CEO, UserRole.ADMIN})


def coerce_date(value: Any) -> Optional[dt.date]:
    """Accept a date, datetime or ISO string; anything else yields None."""
    if value is None:
        return None
    if isinstance(value, dt.datetime):
        return value.date()
    if isinstance(value, dt.date):
        return value
    if isinstance(value, str):
        try:
            return dt.date.fromisoformat(value.strip()[:10])
        except ValueError:
            return None
    return None


class PeriodCloseService:
    """Service for financial period locking."""

    def __init__(self, db: AsyncSession, settings: Optional[Settings] = None):
        self.db = db
        self.settings = settings or default_settings

    # ===========================================
    # GUARD
    # ===========================================

    def resolve_target_date(
        self,
        method: str,
        target_date: Union[dt.date, str, None],
        record_date: Optional[dt.date] = None,
        today: Optional[dt.date] = None,
    ) -> Optional[dt.date]:
        """Pick the date whose period a write would touch."""
        method = method.upper()
        if method not in GUARDED_METHODS:
            return None

        if target_date is not None:
            # An unparseable payload date is not checked
            return coerce_date(target_date)

        if method in ("PUT", "DELETE"):
            if self.settings.period_guard_use_record_date and record_date is not None:
                return record_date
            return today or dt.date.today()

        return None

    async def check_write_allowed(
        self,
        method: str,
        target_date: Union[dt.date, str, None],
        record_date: Optional[dt.date] = None,
    ) -> None:
        """
        Reject a write that lands in a closed period.

        Raises:
            PeriodClosedException: If the resolved (year, month) is closed
        """
        resolved = self.resolve_target_date(method, target_date, record_date)
        if resolved is None:
            return

        try:
            closed = await self.is_period_closed(resolved.year, resolved.month)
        except SQLAlchemyError as e:
            logger.warning(f"Period close check failed, allowing write: {e}")
            await self.db.rollback()
            return

        if closed:
            raise PeriodClosedException(year=resolved.year, month=resolved.month)

    async def is_period_closed(self, year: int, month: int) -> bool:
        """True if a closed row exists for the period."""
        result = await self.db.execute(
            select(PeriodClose.id)
            .where(PeriodClose.year == year)
            .where(PeriodClose.month == month)
            .where(PeriodClose.status == PeriodStatus.CLOSED)
        )
        return result.first() is not None

    # ===========================================
    # ADMINISTRATION
    # ===========================================

    async def get_period(self, year: int, month: int) -> Optional[PeriodClose]:
        result = await self.db.execute(
            select(PeriodClose)
            .where(PeriodClose.year == year)
            .where(PeriodClose.month == month)
        )
        return result.scalar_one_or_none()

    async def list_periods(self, year: Optional[int] = None) -> List[PeriodClose]:
        """List known periods, most recent first."""
        query = select(PeriodClose)
        if year is not None:
            query = query.where(PeriodClose.year == year)
        query = query.order_by(PeriodClose.year.desc(), PeriodClose.month.desc())

        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def close_period(
        self,
        year: int,
        month: int,
        actor: User,
        notes: Optional[str] = None,
        ctx: Optional[RequestContext] = None,
    ) -> Dict[str, Any]:
        """
        Close a month for modifications.

        Raises:
            AuthorizationException: If the actor may not close periods
            ValidationException: If the month is out of range
            ConflictException: If the period is already closed
        """
        self._ensure_period_admin(actor)
        self._validate_period(year, month)

        period = await self.get_period(year, month)
        old_values = None
        action = AuditAction.CREATE

        if period is None:
            period = PeriodClose(year=year, month=month)
            self.db.add(period)
        elif period.status == PeriodStatus.CLOSED:
            raise ConflictException(
                f"Financial period {month}/{year} is already closed",
                resource_type="period_close",
                code=ErrorCode.ALREADY_PROCESSED,
            )
        else:
            old_values = snapshot_model(period)
            action = AuditAction.UPDATE

        period.status = PeriodStatus.CLOSED
        period.closed_by_id = actor.id
        period.closed_at = utcnow()
        period.notes = notes

        await self.db.commit()
        await self.db.refresh(period)
        snapshot = snapshot_model(period)

        logger.info(f"Period {month}/{year} closed by {actor.username}")

        await self._audit(actor, action, period.id, old_values, snapshot, ctx)
        return snapshot

    async def reopen_period(
        self,
        year: int,
        month: int,
        actor: User,
        ctx: Optional[RequestContext] = None,
    ) -> Dict[str, Any]:
        """
        Reopen a closed month.

        Raises:
            AuthorizationException: If the actor may not reopen periods
            NotFoundException: If the period was never closed
            ConflictException: If the period is not currently closed
        """
        self._ensure_period_admin(actor)
        self._validate_period(year, month)

        period = await self.get_period(year, month)
        if period is None:
            raise NotFoundException("Financial period", f"{month}/{year}")
        if period.status != PeriodStatus.CLOSED:
            raise ConflictException(
                f"Financial period {month}/{year} is not closed",
                resource_type="period_close",
            )

        old_values = snapshot_model(period)
        period.status = PeriodStatus.OPEN

        await self.db.commit()
        await self.db.refresh(period)
        snapshot = snapshot_model(period)

        logger.info(f"Period {month}/{year} reopened by {actor.username}")

        await self._audit(actor, AuditAction.UPDATE, period.id, old_values, snapshot, ctx)
        return snapshot

    async def _audit(self, actor, action, period_id, old_values, new_values, ctx):
        ctx = ctx or RequestContext()
        await AuditService(self.db).record_with_context(
            ctx,
            user_id=actor.id,
            action=action,
            module=PeriodClose.__tablename__,
            entity_id=period_id,
            old_values=old_values,
            new_values=new_values,
        )

    @staticmethod
    def _ensure_period_admin(actor: User) -> None:
        if actor.role not in PERIOD_ADMIN_ROLES:
            raise AuthorizationException(
                "Only executives can close or reopen financial periods",
                required_permission="period_close",
            )

    @staticmethod
    def _validate_period(year: int, month: int) -> None:
        if not 1 <= month <= 12:
            raise ValidationException(
                f"Invalid month: {month}",
                field="month",
                code=ErrorCode.INVALID_PERIOD,
            )
        if not 1900 <= year <= 9999:
            raise ValidationException(
                f"Invalid year: {year}",
                field="year",
                code=ErrorCode.INVALID_PERIOD,
            )
