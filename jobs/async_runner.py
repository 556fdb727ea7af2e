"""
Bridge between synchronous dramatiq actors and the async matrix services.

Dramatiq runs actors on worker threads. Each thread keeps one event loop for
its lifetime and opens a throwaway engine per task, so asyncpg/aiosqlite
connections are always used on the loop that created them.
"""

import asyncio
import threading
from collections.abc import AsyncIterator, Coroutine
from contextlib import asynccontextmanager
from typing import Any, TypeVar

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from mlm_matrix.database import create_db_engine, create_session_maker

T = TypeVar("T")

_worker_state = threading.local()


def get_event_loop() -> asyncio.AbstractEventLoop:
    """Event loop owned by the calling worker thread (created on first use)."""
    loop = getattr(_worker_state, "loop", None)
    if loop is not None and not loop.is_closed():
        return loop

    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    _worker_state.loop = loop
    logger.debug(
        f"Event loop created for worker thread {threading.current_thread().name}"
    )
    return loop


def run_async(coro: Coroutine[Any, Any, T]) -> T:
    """
    Drive a coroutine to completion on the thread's loop.

    Must not be called from a thread that is already running a loop.
    """
    return get_event_loop().run_until_complete(coro)


@asynccontextmanager
async def create_local_session(
    database_url: str | None = None,
) -> AsyncIterator[AsyncSession]:
    """
    Session on a task-scoped engine, disposed when the block exits.

    Args:
        database_url: Override for settings.database_url

    Yields:
        AsyncSession
    """
    engine = create_db_engine(database_url)
    try:
        async with create_session_maker(engine)() as session:
            yield session
    finally:
        await engine.dispose()
