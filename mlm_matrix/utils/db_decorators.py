"""
Transaction decorators for service methods.

A decorated coroutine finds its AsyncSession, runs, and on failure rolls the
session back before re-raising, so a failed placement or posting never
leaves a half-written unit of work in the session.
"""

from collections.abc import Callable
from functools import wraps
from typing import Any, TypeVar

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession


T = TypeVar("T")


def _find_session(args: tuple[Any, ...], kwargs: dict[str, Any]) -> AsyncSession | None:
    """
    Session of a decorated call.

    Checked in order: the `session` keyword, a session passed as first
    positional argument, `self.session` of a service method.
    """
    session = kwargs.get('session')
    if session is not None:
        return session

    if args:
        first = args[0]
        if isinstance(first, AsyncSession):
            return first
        owned = getattr(first, 'session', None)
        if isinstance(owned, AsyncSession):
            return owned

    return None


async def _rollback(session: AsyncSession, func_name: str, error: Exception) -> None:
    try:
        await session.rollback()
        logger.info(
            f"Session rolled back after {type(error).__name__} in {func_name}"
        )
    except Exception as rollback_error:
        # Original error is re-raised by the caller
        logger.error(
            f"Rollback failed in {func_name}: {rollback_error}",
            exc_info=True
        )


def with_rollback_on_error(func: Callable[..., T]) -> Callable[..., T]:
    """
    Roll the session back when the wrapped coroutine raises.

    The wrapped method commits on its own; this only guarantees the session
    is clean again after an error.

    The rollback expires every instance loaded in the session, including
    ones the caller passed in or loaded earlier. Touching their attributes
    afterwards triggers a lazy load, which fails outside a greenlet
    (MissingGreenlet). Read ids and other values you need before the call.

    Example:
        class MatrixPlacementEngine:
            @with_rollback_on_error
            async def find_or_create_position(self, sponsor_id, new_user_id):
                ...
                await self.session.commit()
    """
    @wraps(func)
    async def wrapper(*args: Any, **kwargs: Any) -> T:
        session = _find_session(args, kwargs)

        if session is None:
            logger.warning(
                f"{func.__name__}: no AsyncSession found, running without "
                f"rollback protection"
            )
            return await func(*args, **kwargs)

        try:
            return await func(*args, **kwargs)
        except Exception as e:
            await _rollback(session, func.__name__, e)
            raise

    return wrapper


def with_auto_commit(func: Callable[..., T]) -> Callable[..., T]:
    """
    Commit after the wrapped coroutine returns, roll back if it raises.

    Example:
        @with_auto_commit
        async def refresh_network_caches(self, user_id):
            await self.user_repo.update(user_id, downline_count=...)
    """
    @wraps(func)
    async def wrapper(*args: Any, **kwargs: Any) -> T:
        session = _find_session(args, kwargs)

        if session is None:
            logger.warning(
                f"{func.__name__}: no AsyncSession found, running without "
                f"commit or rollback"
            )
            return await func(*args, **kwargs)

        try:
            result = await func(*args, **kwargs)
            await session.commit()
        except Exception as e:
            await _rollback(session, func.__name__, e)
            raise

        logger.debug(f"Committed {func.__name__}")
        return result

    return wrapper
