"""
Commission repository.

Data access layer for CommissionRecord model.
"""

from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from mlm_matrix.config.business_constants import MATRIX_DEPTH
from mlm_matrix.models.commission_record import CommissionRecord
from mlm_matrix.models.enums import CommissionStatus
from mlm_matrix.repositories.base import BaseRepository
from mlm_matrix.utils.money import round_money


class CommissionRepository(BaseRepository[CommissionRecord]):
    """Commission record repository."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize commission repository."""
        super().__init__(CommissionRecord, session)

    async def get_for_investment(
        self, investment_id: int
    ) -> list[CommissionRecord]:
        """
        Get all commission records of an investment.

        Args:
            investment_id: Investment ID

        Returns:
            Records ordered by level
        """
        stmt = (
            select(CommissionRecord)
            .where(CommissionRecord.investment_id == investment_id)
            .order_by(CommissionRecord.level, CommissionRecord.id)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_existing_keys(
        self, investment_id: int
    ) -> set[tuple[int, int]]:
        """
        Get (referrer_id, level) pairs already posted for an investment.

        Args:
            investment_id: Investment ID

        Returns:
            Set of idempotency keys
        """
        stmt = select(
            CommissionRecord.referrer_id, CommissionRecord.level
        ).where(CommissionRecord.investment_id == investment_id)
        result = await self.session.execute(stmt)
        return {(row.referrer_id, row.level) for row in result.all()}

    async def get_total_earnings(
        self,
        referrer_id: int,
        status: CommissionStatus = CommissionStatus.PAID,
    ) -> Decimal:
        """
        Sum commission amounts of a referrer by status.

        Args:
            referrer_id: Earner user ID
            status: Commission status to include

        Returns:
            Total amount
        """
        stmt = select(
            func.coalesce(func.sum(CommissionRecord.amount), 0)
        ).where(
            CommissionRecord.referrer_id == referrer_id,
            CommissionRecord.status == status.value,
        )
        result = await self.session.execute(stmt)
        return round_money(result.scalar() or 0)

    async def get_earnings_by_level(
        self,
        referrer_id: int,
        status: CommissionStatus = CommissionStatus.PAID,
    ) -> dict[int, Decimal]:
        """
        Get commission totals for all levels in a single query.

        Args:
            referrer_id: Earner user ID
            status: Commission status to include

        Returns:
            Dict mapping level to total {1: ..., 2: ..., 3: ...}
        """
        stmt = (
            select(
                CommissionRecord.level,
                func.sum(CommissionRecord.amount).label("total"),
            )
            .where(
                CommissionRecord.referrer_id == referrer_id,
                CommissionRecord.status == status.value,
            )
            .group_by(CommissionRecord.level)
        )
        result = await self.session.execute(stmt)

        # All levels present, default to 0
        earnings = {
            level: round_money(0) for level in range(1, MATRIX_DEPTH + 1)
        }
        for row in result.all():
            earnings[row.level] = round_money(row.total or 0)

        return earnings
