"""
Finance Tracker - Test Configuration

Pytest fixtures and configuration.

Every test gets a fresh in-memory SQLite database (aiosqlite + StaticPool,
so all sessions share the single connection).
"""

import os

# Settings are read at import time; these must be set before importing the app
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-not-for-production")
os.environ.setdefault("APP_ENV", "testing")
os.environ.setdefault("DATABASE_URL_ASYNC", "sqlite+aiosqlite://")

from datetime import date  # noqa: E402
from decimal import Decimal  # noqa: E402
from typing import AsyncGenerator, Optional  # noqa: E402

import pytest_asyncio  # noqa: E402
from httpx import AsyncClient, ASGITransport  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from app.config import Settings, get_settings  # noqa: E402
from app.database import Base, get_async_session  # noqa: E402
import app.models  # noqa: E402,F401
from app.models.business_unit import BusinessUnit  # noqa: E402
from app.models.period_close import PeriodClose, PeriodStatus  # noqa: E402
from app.models.transaction import EntryApprovalStatus, Expense  # noqa: E402
from app.models.user import User, UserRole  # noqa: E402
from app.utils.security import create_access_token, get_password_hash  # noqa: E402
from main import app  # noqa: E402


TEST_DATABASE_URL = "sqlite+aiosqlite://"
TEST_PASSWORD = "TestPassword123!"

# Hash once; bcrypt is deliberately slow
_TEST_PASSWORD_HASH = get_password_hash(TEST_PASSWORD)


@pytest_asyncio.fixture(scope="function")
async def db_engine():
    """Fresh in-memory database per test."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a database session for each test."""
    session_factory = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture(scope="function")
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Create a test client with database session override."""

    async def override_get_session():
        yield db_session

    app.dependency_overrides[get_async_session] = override_get_session

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def record_date_settings() -> AsyncGenerator[Settings, None]:
    """Settings with the stored-record date fallback enabled for PUT/DELETE."""
    custom = get_settings().model_copy(update={"period_guard_use_record_date": True})
    app.dependency_overrides[get_settings] = lambda: custom
    yield custom
    app.dependency_overrides.pop(get_settings, None)


# ===========================================
# DATA FIXTURES
# ===========================================

async def make_user(
    db: AsyncSession,
    username: str,
    role: UserRole,
    full_name: Optional[str] = None,
    is_active: bool = True,
) -> User:
    user = User(
        username=username,
        email=f"{username}@example.com",
        full_name=full_name or username.title(),
        hashed_password=_TEST_PASSWORD_HASH,
        role=role,
        is_active=is_active,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


def auth_headers_for(user: User) -> dict:
    token = create_access_token({"sub": str(user.id), "role": user.role.value})
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def ceo_user(db_session: AsyncSession) -> User:
    return await make_user(db_session, "ceo", UserRole.CEO, full_name="Chief Executive")


@pytest_asyncio.fixture
async def admin_user(db_session: AsyncSession) -> User:
    return await make_user(db_session, "admin", UserRole.ADMIN)


@pytest_asyncio.fixture
async def accountant_user(db_session: AsyncSession) -> User:
    return await make_user(db_session, "accountant", UserRole.ACCOUNTANT, full_name="Ada Accountant")


@pytest_asyncio.fixture
async def viewer_user(db_session: AsyncSession) -> User:
    return await make_user(db_session, "viewer", UserRole.VIEWER)


@pytest_asyncio.fixture
async def ceo_headers(ceo_user: User) -> dict:
    return auth_headers_for(ceo_user)


@pytest_asyncio.fixture
async def admin_headers(admin_user: User) -> dict:
    return auth_headers_for(admin_user)


@pytest_asyncio.fixture
async def accountant_headers(accountant_user: User) -> dict:
    return auth_headers_for(accountant_user)


@pytest_asyncio.fixture
async def viewer_headers(viewer_user: User) -> dict:
    return auth_headers_for(viewer_user)


@pytest_asyncio.fixture
async def business_unit(db_session: AsyncSession) -> BusinessUnit:
    """Create an active business unit."""
    unit = BusinessUnit(
        name="Urban Fit",
        code="URBANFIT",
        description="Gym and fitness studio",
        is_active=True,
    )
    db_session.add(unit)
    await db_session.commit()
    await db_session.refresh(unit)
    return unit


async def _close_period(db: AsyncSession, year: int, month: int, closed_by: Optional[User] = None) -> PeriodClose:
    """Insert a closed period row directly."""
    period = PeriodClose(
        year=year,
        month=month,
        status=PeriodStatus.CLOSED,
        closed_by_id=closed_by.id if closed_by else None,
    )
    db.add(period)
    await db.commit()
    await db.refresh(period)
    return period


async def _make_expense(
    db: AsyncSession,
    business_unit: BusinessUnit,
    amount: str = "500.00",
    category: str = "Office Supplies",
    on: date = date(2025, 3, 15),
    approval_status: EntryApprovalStatus = EntryApprovalStatus.NA,
    created_by: Optional[User] = None,
) -> Expense:
    """Insert an expense directly, bypassing the write pipeline."""
    expense = Expense(
        business_unit_id=business_unit.id,
        amount=Decimal(amount),
        category=category,
        date=on,
        approval_status=approval_status,
        created_by_id=created_by.id if created_by else None,
    )
    db.add(expense)
    await db.commit()
    await db.refresh(expense)
    return expense


@pytest_asyncio.fixture
async def close_month(db_session: AsyncSession):
    """Factory: ``await close_month(2025, 3)`` inserts a closed period."""

    async def _close(year: int, month: int, closed_by: Optional[User] = None) -> PeriodClose:
        return await _close_period(db_session, year, month, closed_by)

    return _close


@pytest_asyncio.fixture
async def expense_factory(db_session: AsyncSession, business_unit: BusinessUnit):
    """Factory: ``await expense_factory(amount="20000.00")`` inserts an expense."""

    async def _create(**kwargs) -> Expense:
        return await _make_expense(db_session, business_unit, **kwargs)

    return _create


@pytest_asyncio.fixture
async def user_factory(db_session: AsyncSession):
    """Factory: ``await user_factory("ops", UserRole.MANAGER)`` creates a user."""

    async def _create(username: str, role: UserRole, **kwargs) -> User:
        return await make_user(db_session, username, role, **kwargs)

    return _create


@pytest_asyncio.fixture
async def headers_for():
    """Factory returning Bearer headers for a user."""
    return auth_headers_for
