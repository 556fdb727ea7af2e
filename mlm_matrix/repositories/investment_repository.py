"""
Investment repository.

Data access layer for Investment model.
"""

from collections.abc import Iterable
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from mlm_matrix.models.investment import Investment
from mlm_matrix.repositories.base import BaseRepository
from mlm_matrix.utils.money import round_money


class InvestmentRepository(BaseRepository[Investment]):
    """Investment repository with aggregate queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize investment repository."""
        super().__init__(Investment, session)

    async def sum_eligible_amount(
        self,
        user_ids: Iterable[int],
        statuses: Iterable[str],
    ) -> Decimal:
        """
        Sum investment amounts of the given users.

        Args:
            user_ids: Investor IDs
            statuses: Investment statuses to include

        Returns:
            Total amount rounded to minor units
        """
        user_ids = list(user_ids)
        statuses = list(statuses)
        if not user_ids or not statuses:
            return round_money(0)

        stmt = select(
            func.coalesce(func.sum(Investment.amount), 0)
        ).where(
            Investment.user_id.in_(user_ids),
            Investment.status.in_(statuses),
        )
        result = await self.session.execute(stmt)
        return round_money(result.scalar() or 0)
