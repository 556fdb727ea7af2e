#!/usr/bin/env python3
"""Initialize database tables."""

import asyncio

from loguru import logger

from mlm_matrix.database import create_db_engine
from mlm_matrix.models import Base
from mlm_matrix.utils.logging import setup_logging

# Configure logger for script
setup_logging(level="INFO", log_file="")


async def init_database() -> None:
    """Create all database tables (development and tests; production uses alembic)."""
    logger.info("Connecting to database...")
    engine = create_db_engine(echo=False)

    async with engine.begin() as conn:
        logger.info("Creating tables (checkfirst=True)...")
        await conn.run_sync(
            Base.metadata.create_all,
            checkfirst=True
        )

    await engine.dispose()
    logger.success("Database tables created successfully!")


if __name__ == "__main__":
    asyncio.run(init_database())
