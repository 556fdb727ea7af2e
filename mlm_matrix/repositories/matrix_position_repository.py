"""
Matrix position repository.

Data access layer for MatrixPosition model. All adjacency questions
(children of a sponsor, positions on a level below a frontier) are answered
with indexed queries on (sponsor_id, level); no tree is kept in memory.
"""

from collections.abc import Iterable
from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from mlm_matrix.models.enums import PlacementType
from mlm_matrix.models.matrix_position import MatrixPosition
from mlm_matrix.repositories.base import BaseRepository


class MatrixPositionRepository(BaseRepository[MatrixPosition]):
    """Matrix position repository with adjacency queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize matrix position repository."""
        super().__init__(MatrixPosition, session)

    async def get_active_for_user(
        self, user_id: int
    ) -> MatrixPosition | None:
        """
        Get the user's active position.

        Args:
            user_id: User ID

        Returns:
            Active position or None if the user is unplaced
        """
        stmt = select(MatrixPosition).where(
            MatrixPosition.user_id == user_id,
            MatrixPosition.is_active.is_(True),
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_current_for_user(
        self, user_id: int
    ) -> MatrixPosition | None:
        """
        Get the active position, else the most recently placed inactive one.

        Used by upline walks, which must climb through deactivated positions.

        Args:
            user_id: User ID

        Returns:
            Position or None if the user was never placed
        """
        stmt = (
            select(MatrixPosition)
            .where(MatrixPosition.user_id == user_id)
            .order_by(
                MatrixPosition.is_active.desc(),
                MatrixPosition.placed_at.desc(),
                MatrixPosition.id.desc(),
            )
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_active_children(
        self, sponsor_id: int, child_level: int
    ) -> list[MatrixPosition]:
        """
        Get active children of a sponsor, ordered by slot.

        Args:
            sponsor_id: Sponsor user ID
            child_level: Sponsor's level + 1

        Returns:
            Up to three positions
        """
        stmt = (
            select(MatrixPosition)
            .where(
                MatrixPosition.sponsor_id == sponsor_id,
                MatrixPosition.level == child_level,
                MatrixPosition.is_active.is_(True),
            )
            .order_by(MatrixPosition.position)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_occupied_slots(
        self, sponsor_id: int, child_level: int
    ) -> set[int]:
        """
        Get slot numbers taken under a sponsor.

        Args:
            sponsor_id: Sponsor user ID
            child_level: Sponsor's level + 1

        Returns:
            Set of occupied slot numbers
        """
        stmt = select(MatrixPosition.position).where(
            MatrixPosition.sponsor_id == sponsor_id,
            MatrixPosition.level == child_level,
            MatrixPosition.is_active.is_(True),
        )
        result = await self.session.execute(stmt)
        return {row[0] for row in result.all()}

    async def get_active_below(
        self, sponsor_ids: Iterable[int], level: int
    ) -> list[MatrixPosition]:
        """
        Get active positions on a level whose sponsor is in the frontier.

        Args:
            sponsor_ids: User IDs of the previous level
            level: Absolute level to load

        Returns:
            Positions ordered by sponsor then slot
        """
        sponsor_ids = list(sponsor_ids)
        if not sponsor_ids:
            return []

        stmt = (
            select(MatrixPosition)
            .where(
                MatrixPosition.sponsor_id.in_(sponsor_ids),
                MatrixPosition.level == level,
                MatrixPosition.is_active.is_(True),
            )
            .order_by(MatrixPosition.sponsor_id, MatrixPosition.position)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_active_user_ids_below(
        self, sponsor_ids: Iterable[int], level: int
    ) -> list[int]:
        """
        Same as get_active_below, but only returns user IDs.

        Args:
            sponsor_ids: User IDs of the previous level
            level: Absolute level to load

        Returns:
            List of user IDs
        """
        sponsor_ids = list(sponsor_ids)
        if not sponsor_ids:
            return []

        stmt = select(MatrixPosition.user_id).where(
            MatrixPosition.sponsor_id.in_(sponsor_ids),
            MatrixPosition.level == level,
            MatrixPosition.is_active.is_(True),
        )
        result = await self.session.execute(stmt)
        return [row[0] for row in result.all()]

    async def count_spillover_received(self, user_id: int) -> int:
        """
        Count active spillover positions placed directly under the user.

        Args:
            user_id: Sponsor user ID

        Returns:
            Count of positions
        """
        stmt = select(func.count(MatrixPosition.id)).where(
            MatrixPosition.sponsor_id == user_id,
            MatrixPosition.placement_type == PlacementType.SPILLOVER.value,
            MatrixPosition.is_active.is_(True),
        )
        result = await self.session.execute(stmt)
        return result.scalar() or 0

    async def count_spillover_given(self, user_id: int) -> int:
        """
        Count active positions that overflowed from the user's window.

        Args:
            user_id: Original sponsor user ID

        Returns:
            Count of positions
        """
        stmt = select(func.count(MatrixPosition.id)).where(
            MatrixPosition.spillover_from_id == user_id,
            MatrixPosition.is_active.is_(True),
        )
        result = await self.session.execute(stmt)
        return result.scalar() or 0

    async def deactivate(
        self, position: MatrixPosition, when: datetime
    ) -> MatrixPosition:
        """
        Soft-disable a position. Its slot becomes free.

        Args:
            position: Active position
            when: Deactivation timestamp

        Returns:
            Updated position
        """
        position.is_active = False
        position.deactivated_at = when
        await self.session.flush()
        return position
