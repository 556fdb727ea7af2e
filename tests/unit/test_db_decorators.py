"""
Unit tests for database decorators.
"""

from unittest.mock import AsyncMock

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from mlm_matrix.utils.db_decorators import with_auto_commit, with_rollback_on_error


class Service:
    """Service holding its session, like the matrix services."""

    def __init__(self, session):
        self.session = session

    @with_rollback_on_error
    async def fail(self):
        raise ValueError("boom")

    @with_rollback_on_error
    async def succeed(self):
        return 42

    @with_auto_commit
    async def write(self):
        return "written"


@pytest.fixture
def session():
    """Mock session that passes isinstance checks."""
    return AsyncMock(spec=AsyncSession)


class TestRollbackOnError:
    """Test with_rollback_on_error."""

    @pytest.mark.asyncio
    async def test_rollback_and_reraise(self, session):
        """Session of self is rolled back, error propagates."""
        with pytest.raises(ValueError):
            await Service(session).fail()

        session.rollback.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_no_rollback_on_success(self, session):
        """Successful calls are untouched."""
        assert await Service(session).succeed() == 42
        session.rollback.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_session_as_first_argument(self, session):
        """Plain functions receive the session positionally."""

        @with_rollback_on_error
        async def task(db_session):
            raise RuntimeError("fail")

        with pytest.raises(RuntimeError):
            await task(session)

        session.rollback.assert_awaited_once()


class TestAutoCommit:
    """Test with_auto_commit."""

    @pytest.mark.asyncio
    async def test_commit_on_success(self, session):
        """Commit after the wrapped call."""
        assert await Service(session).write() == "written"
        session.commit.assert_awaited_once()
