"""
Database engine and session factories.

PostgreSQL (asyncpg) in production. On SQLite (aiosqlite) every transaction
is opened with BEGIN IMMEDIATE so concurrent writers are serialized and
foreign keys are enforced.
"""

from functools import lru_cache

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from mlm_matrix.config.settings import settings


def _configure_sqlite(engine: AsyncEngine) -> None:
    """Take over transaction control from pysqlite."""
    sync_engine = engine.sync_engine

    @event.listens_for(sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        # Disable the driver's implicit BEGIN, we emit our own
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def create_db_engine(
    database_url: str | None = None,
    echo: bool | None = None,
) -> AsyncEngine:
    """
    Create async engine.

    Args:
        database_url: Override for settings.database_url
        echo: Override for settings.database_echo

    Returns:
        Configured AsyncEngine
    """
    url = database_url or settings.database_url
    echo = settings.database_echo if echo is None else echo

    if url.startswith("sqlite"):
        engine = create_async_engine(
            url,
            echo=echo,
            poolclass=NullPool,
            connect_args={"timeout": 30},
        )
        _configure_sqlite(engine)
        return engine

    return create_async_engine(
        url,
        echo=echo,
        pool_pre_ping=True,
    )


def create_session_maker(
    engine: AsyncEngine | None = None,
) -> async_sessionmaker[AsyncSession]:
    """Create session maker bound to the engine."""
    if engine is None:
        engine = get_engine()
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@lru_cache(maxsize=1)
def get_engine() -> AsyncEngine:
    """Process-wide engine built from settings."""
    return create_db_engine()


@lru_cache(maxsize=1)
def get_session_maker() -> async_sessionmaker[AsyncSession]:
    """Process-wide session maker built from settings."""
    return create_session_maker(get_engine())
