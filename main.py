"""
Finance Tracker - FastAPI Application Entry Point

This is the main entry point for the FastAPI application.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

from app.config import settings
from app.database import (
    close_db,
    create_engine_from_settings,
    create_session_factory,
    init_db,
)
from app.utils.error_handling import (
    RequestContextMiddleware,
    setup_exception_handlers,
)

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.debug else getattr(logging, settings.log_level.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


async def seed_bootstrap_ceo(session_factory):
    """
    Create the bootstrap CEO account when credentials are configured.
    This ensures there is always an approver on a fresh database.
    """
    from app.models.user import UserRole
    from app.services.auth_service import AuthService

    if not (settings.bootstrap_ceo_username and settings.bootstrap_ceo_password):
        return

    async with session_factory() as session:
        service = AuthService(session)
        if await service.get_user_by_login(settings.bootstrap_ceo_username):
            return
        user = await service.create_user(
            username=settings.bootstrap_ceo_username,
            password=settings.bootstrap_ceo_password,
            full_name="Chief Executive",
            role=UserRole.CEO,
        )
        logger.info(f"Bootstrap CEO ready: {user.username}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for FastAPI.
    Owns the engine and session factory for the life of the process.
    """
    # Startup
    logger.info(f"Starting {settings.app_name}...")
    logger.info(f"Environment: {settings.app_env}")

    engine = create_engine_from_settings(settings)
    app.state.engine = engine
    app.state.session_factory = create_session_factory(engine)

    # Initialize database (dev/SQLite only - production schemas are managed separately)
    if settings.is_development or settings.is_sqlite:
        await init_db(engine)
        logger.info("Database tables initialized")

    try:
        await seed_bootstrap_ceo(app.state.session_factory)
    except Exception as e:
        logger.warning(f"Bootstrap CEO seeding skipped: {e}")

    yield

    # Shutdown
    logger.info(f"Shutting down {settings.app_name}...")
    await close_db(engine)
    logger.info("Database connections closed")


# Create FastAPI application
app = FastAPI(
    title=settings.app_name,
    description="Multi business unit revenue and expense tracking with executive approvals, period close and audit trail",
    version="1.0.0",
    docs_url="/api/docs" if settings.is_development else None,
    redoc_url="/api/redoc" if settings.is_development else None,
    lifespan=lifespan,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID"],
)

# Request id + access log (outermost, so every response carries X-Request-ID)
app.add_middleware(RequestContextMiddleware)

# Register exception handlers
setup_exception_handlers(app)


# ===========================================
# API ROUTES
# ===========================================

@app.get("/api")
async def api_info():
    """API information endpoint."""
    return {
        "name": settings.app_name,
        "version": "1.0.0",
        "status": "running",
        "environment": settings.app_env,
        "api_docs": "/api/docs" if settings.is_development else "disabled",
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    session_factory = getattr(app.state, "session_factory", None)
    database = "unknown"
    if session_factory is not None:
        try:
            async with session_factory() as session:
                await session.execute(text("SELECT 1"))
            database = "connected"
        except Exception as e:
            logger.warning(f"Health check database probe failed: {e}")
            database = "unavailable"

    return {
        "status": "healthy",
        "database": database,
    }


# ===========================================
# INCLUDE ROUTERS
# ===========================================

from app.routers import (  # noqa: E402
    approvals,
    audit_logs,
    auth,
    dashboard,
    ledger,
    notifications,
    period_closes,
)

API_PREFIX = f"/api/{settings.api_version}"

app.include_router(auth.router, prefix=API_PREFIX)
app.include_router(ledger.revenues_router, prefix=API_PREFIX)
app.include_router(ledger.expenses_router, prefix=API_PREFIX)
app.include_router(ledger.invoices_router, prefix=API_PREFIX)
app.include_router(approvals.router, prefix=API_PREFIX)
app.include_router(notifications.router, prefix=API_PREFIX)
app.include_router(period_closes.router, prefix=API_PREFIX)
app.include_router(audit_logs.router, prefix=API_PREFIX)
app.include_router(dashboard.router, prefix=API_PREFIX)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=5000,
        reload=settings.is_development,
    )
