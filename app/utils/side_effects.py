"""
Finance Tracker - Post-commit Side Effects

Audit entries and notifications are written after the primary mutation has
committed. They must never change the outcome of the request, so every
such call goes through ``best_effort``: on failure the session is rolled
back, the error is logged and a default value is returned.
"""

import functools
import logging
from typing import Any, Awaitable, Callable, TypeVar

from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def best_effort(operation: str, default: Any = None):
    """
    Decorate an async service method whose failure must be swallowed.

    The decorated method's instance must expose its session as ``self.db``.
    """

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @functools.wraps(func)
        async def wrapper(self, *args, **kwargs):
            try:
                return await func(self, *args, **kwargs)
            except Exception as e:
                logger.error(f"{operation} failed: {e}", exc_info=True)
                try:
                    await self.db.rollback()
                except SQLAlchemyError as rollback_error:
                    logger.warning(f"Rollback after failed {operation} also failed: {rollback_error}")
                return default

        return wrapper

    return decorator
