"""
User repository.

Data access layer for User model.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from mlm_matrix.models.user import User
from mlm_matrix.repositories.base import BaseRepository


class UserRepository(BaseRepository[User]):
    """User repository with specific queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize user repository."""
        super().__init__(User, session)

    async def get_by_ids(self, user_ids: list[int]) -> dict[int, User]:
        """
        Load several users in a single query.

        Args:
            user_ids: User IDs

        Returns:
            Dict mapping user ID to user (missing IDs are absent)
        """
        if not user_ids:
            return {}

        stmt = select(User).where(User.id.in_(user_ids))
        result = await self.session.execute(stmt)
        return {user.id: user for user in result.unique().scalars().all()}
