"""Pytest configuration and shared fixtures for all tests."""

import itertools
import os
import sys
from decimal import Decimal
from pathlib import Path

# Minimal environment for Settings before any project import
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./test_matrix.db")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("LOG_LEVEL", "DEBUG")

# Add project root to PYTHONPATH
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

import pytest
import pytest_asyncio
from unittest.mock import AsyncMock, MagicMock

from mlm_matrix.database import create_db_engine, create_session_maker
from mlm_matrix.models import Base, Investment, MatrixPosition, MembershipTier, User
from mlm_matrix.models.enums import InvestmentStatus
from mlm_matrix.repositories.investment_repository import InvestmentRepository
from mlm_matrix.repositories.membership_tier_repository import (
    MembershipTierRepository,
)
from mlm_matrix.repositories.user_repository import UserRepository
from mlm_matrix.services.matrix import MatrixPlacementEngine


@pytest.fixture
def mock_session():
    """Mock AsyncSession for tests without a database."""
    session = AsyncMock()
    session.execute = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.flush = AsyncMock()
    session.add = MagicMock()
    session.refresh = AsyncMock()
    return session


@pytest.fixture
def database_url(tmp_path) -> str:
    """Temporary SQLite database, one file per test."""
    return f"sqlite+aiosqlite:///{tmp_path / 'matrix.db'}"


@pytest_asyncio.fixture
async def db_engine(database_url):
    """Engine with all tables created."""
    engine = create_db_engine(database_url, echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(db_engine):
    """Session factory bound to the test engine."""
    return create_session_maker(db_engine)


@pytest_asyncio.fixture
async def session(session_maker):
    """Database session for one test."""
    async with session_maker() as session:
        yield session


@pytest_asyncio.fixture
async def tiers(session) -> dict[str, MembershipTier]:
    """Default membership tiers, keyed by name."""
    repo = MembershipTierRepository(session)
    await repo.seed_defaults()
    tiers = {tier.name: tier for tier in await repo.get_active_tiers()}
    # Release the SQLite write lock taken by the read above
    await session.commit()
    return tiers


@pytest.fixture
def make_user(session, tiers):
    """
    Factory for committed users.

    Usage:
        user = await make_user(tier="Gold", referrer=sponsor)
    """
    counter = itertools.count(1)

    async def _make_user(
        tier: str | None = "Elite",
        referrer: User | None = None,
        is_active: bool = True,
        username: str | None = None,
    ) -> User:
        user = await UserRepository(session).create(
            username=username or f"member{next(counter)}",
            membership_tier_id=tiers[tier].id if tier else None,
            referrer_id=referrer.id if referrer else None,
            is_active=is_active,
        )
        await session.commit()
        return user

    return _make_user


@pytest.fixture
def make_investment(session):
    """Factory for committed investments."""

    async def _make_investment(
        user: User,
        amount: Decimal | str = "10000",
        status: InvestmentStatus = InvestmentStatus.ACTIVE,
    ) -> Investment:
        investment = await InvestmentRepository(session).create(
            user_id=user.id,
            amount=Decimal(amount),
            status=status.value,
        )
        await session.commit()
        return investment

    return _make_investment


@pytest.fixture
def placement_engine(session) -> MatrixPlacementEngine:
    """Placement engine on the test session."""
    return MatrixPlacementEngine(session)


@pytest.fixture
def place(placement_engine):
    """Place a user under a sponsor and return the position."""

    async def _place(sponsor: User, user: User) -> MatrixPosition:
        result = await placement_engine.find_or_create_position(
            sponsor.id, user.id
        )
        return result.position

    return _place


@pytest_asyncio.fixture
async def root_user(make_user, placement_engine) -> User:
    """Elite user placed as a network root."""
    user = await make_user(tier="Elite", username="root")
    await placement_engine.create_root_position(user.id)
    return user
