"""
Finance Tracker - Authentication Router

API endpoints for login and the current user's profile.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_async_session
from app.dependencies import get_current_active_user, get_request_context
from app.models.user import User
from app.schemas.auth import LoginRequest
from app.services.audit_service import RequestContext
from app.services.auth_service import AuthService, serialize_user
from app.utils.error_handling import AuthenticationException, ErrorCode


router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post("/login", summary="Login and receive an access token")
async def login(
    payload: LoginRequest,
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_async_session),
):
    auth_service = AuthService(db)

    user = await auth_service.authenticate_user(payload.username, payload.password)
    if not user:
        raise AuthenticationException("Invalid username or password")

    if not user.is_active:
        raise AuthenticationException(
            "User account is deactivated",
            code=ErrorCode.ACCOUNT_DISABLED,
        )

    tokens = auth_service.create_tokens(user)
    profile = await auth_service.record_login(user, ctx)

    return {"success": True, "data": {**tokens, "user": profile}}


@router.get("/me", summary="Current user profile")
async def get_me(current_user: User = Depends(get_current_active_user)):
    return {"success": True, "data": serialize_user(current_user)}
