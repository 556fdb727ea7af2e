#!/usr/bin/env python3
"""Seed the default membership tier table."""

import asyncio

from loguru import logger

from mlm_matrix.database import create_db_engine, create_session_maker
from mlm_matrix.repositories.membership_tier_repository import (
    MembershipTierRepository,
)
from mlm_matrix.utils.logging import setup_logging

# Configure logger for script
setup_logging(level="INFO", log_file="")


async def seed_membership_tiers() -> int:
    """Insert missing default tiers. Existing tiers keep their rates."""
    engine = create_db_engine(echo=False)
    session_maker = create_session_maker(engine)

    try:
        async with session_maker() as session:
            created = await MembershipTierRepository(session).seed_defaults()
            await session.commit()
    finally:
        await engine.dispose()

    logger.success(f"Membership tiers seeded: {created} created")
    return created


if __name__ == "__main__":
    asyncio.run(seed_membership_tiers())
