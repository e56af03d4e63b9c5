"""
Finance Tracker - Authentication Service

Business logic for user login and account creation.
"""

import uuid
import logging
from typing import Optional

from sqlalchemy import select, or_
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.models.audit import AuditAction
from app.models.base import utcnow
from app.models.user import User, UserRole
from app.services.audit_service import AuditService, RequestContext
from app.utils.error_handling import ConflictException, ErrorCode
from app.utils.security import (
    create_access_token,
    get_password_hash,
    verify_password,
)

logger = logging.getLogger(__name__)


class AuthService:
    """Service for authentication operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_user_by_login(self, login: str) -> Optional[User]:
        """Get user by username or email address."""
        login = login.strip()
        result = await self.db.execute(
            select(User).where(
                or_(User.username == login, User.email == login.lower())
            )
        )
        return result.scalars().first()

    async def get_user_by_id(self, user_id: uuid.UUID) -> Optional[User]:
        """Get user by ID."""
        return await self.db.get(User, user_id)

    async def authenticate_user(self, login: str, password: str) -> Optional[User]:
        """
        Authenticate user with username (or email) and password.

        Returns:
            User if authentication successful, None otherwise
        """
        user = await self.get_user_by_login(login)

        if not user:
            return None

        if not verify_password(password, user.hashed_password):
            return None

        return user

    async def create_user(
        self,
        username: str,
        password: str,
        full_name: str,
        role: UserRole = UserRole.VIEWER,
        email: Optional[str] = None,
    ) -> User:
        """Create a user account."""
        existing = await self.get_user_by_login(username)
        if existing:
            raise ConflictException(
                f"User '{username}' already exists",
                resource_type="user",
                code=ErrorCode.DUPLICATE_ENTRY,
            )

        user = User(
            username=username,
            email=email.lower() if email else None,
            full_name=full_name,
            hashed_password=get_password_hash(password),
            role=role,
            is_active=True,
        )
        self.db.add(user)
        await self.db.commit()
        await self.db.refresh(user)

        logger.info(f"Created user {username} with role {role.value}")
        return user

    def create_tokens(self, user: User) -> dict:
        """
        Create an access token for user.

        Returns:
            Dictionary with access_token, token_type, expires_in
        """
        token_data = {
            "sub": str(user.id),
            "role": user.role.value,
        }

        return {
            "access_token": create_access_token(token_data),
            "token_type": "bearer",
            "expires_in": settings.access_token_expire_minutes * 60,
        }

    async def record_login(self, user: User, ctx: Optional[RequestContext] = None) -> dict:
        """
        Stamp last_login and audit the login.

        Returns:
            Serialized user captured before the audit write
        """
        user.last_login = utcnow()
        await self.db.commit()
        await self.db.refresh(user)
        profile = serialize_user(user)

        await AuditService(self.db).record_with_context(
            ctx or RequestContext(),
            user_id=user.id,
            action=AuditAction.LOGIN,
            module="auth",
            entity_id=user.id,
            new_values={"username": user.username},
        )
        return profile


def serialize_user(user: User) -> dict:
    """Public representation of a user (never includes the password hash)."""
    return {
        "id": str(user.id),
        "username": user.username,
        "email": user.email,
        "full_name": user.full_name,
        "role": user.role.value,
        "is_active": user.is_active,
        "last_login": user.last_login.isoformat() if user.last_login else None,
    }
