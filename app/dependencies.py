"""
Finance Tracker - FastAPI Dependencies

Shared dependencies for authentication, database sessions, and RBAC.

This module provides dependency injection for:
1. Database sessions
2. Current user authentication
3. Role-based access control
4. Request context (request id, client ip, user agent) for audit entries
5. The write pipeline used by the ledger routes
"""

import uuid
from typing import Optional

from fastapi import Depends, HTTPException, status, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import Settings, get_settings
from app.database import get_async_session
from app.models.user import User, UserRole
from app.services.audit_service import RequestContext
from app.services.write_pipeline import WritePipeline
from app.utils.error_handling import AuthenticationException, ErrorCode, get_request_id
from app.utils.security import verify_access_token


# HTTP Bearer token security
security = HTTPBearer(auto_error=False)


def _invalid_token(message: str) -> AuthenticationException:
    return AuthenticationException(
        message,
        code=ErrorCode.TOKEN_INVALID,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_async_session),
) -> User:
    """
    Get the current authenticated user from the Bearer JWT.

    Raises:
        AuthenticationException: If the token is invalid or expired (TOKEN_INVALID)
        HTTPException: If no credentials are sent or the user no longer exists
    """
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    payload = verify_access_token(credentials.credentials)

    if not payload:
        raise _invalid_token("Invalid or expired token")

    user_id = payload.get("sub")
    if not user_id:
        raise _invalid_token("Invalid token payload")

    try:
        user_uuid = uuid.UUID(user_id)
    except ValueError:
        raise _invalid_token("Invalid user ID in token")

    user = await db.get(User, user_uuid)

    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
        )

    return user


async def get_current_active_user(
    current_user: User = Depends(get_current_user),
) -> User:
    """Get current user and verify they are active."""
    if not current_user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is deactivated",
        )
    return current_user


def require_roles(*roles: UserRole):
    """
    Dependency factory restricting a route to the given roles.

    Usage:
        @router.get("/audit-logs", dependencies=[Depends(require_roles(UserRole.CEO))])
    """
    allowed = set(roles)

    async def role_checker(
        current_user: User = Depends(get_current_active_user),
    ) -> User:
        if current_user.role not in allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Access denied",
            )
        return current_user

    return role_checker


async def get_writer(
    current_user: User = Depends(get_current_active_user),
) -> User:
    """Current user, provided they may record financial data."""
    if not current_user.can_write:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Read-only users cannot modify financial records",
        )
    return current_user


def get_request_context(request: Request) -> RequestContext:
    """Collect the request metadata stored with audit entries."""
    return RequestContext(
        request_id=get_request_id(request),
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
    )


def get_write_pipeline(
    db: AsyncSession = Depends(get_async_session),
    settings: Settings = Depends(get_settings),
) -> WritePipeline:
    return WritePipeline(db, settings)
