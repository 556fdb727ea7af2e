"""
Matrix statistics module.

Occupancy of a user's 3-level window and matrix earnings metrics.
"""

from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from mlm_matrix.config.business_constants import MATRIX_DEPTH
from mlm_matrix.models.enums import CommissionStatus
from mlm_matrix.repositories.commission_repository import CommissionRepository
from mlm_matrix.repositories.matrix_position_repository import (
    MatrixPositionRepository,
)
from mlm_matrix.services.matrix.network_traversal import NetworkTraversal
from mlm_matrix.utils.money import round_money


class MatrixStatisticsManager:
    """Manages matrix statistics and performance metrics."""

    def __init__(
        self,
        session: AsyncSession,
        traversal: NetworkTraversal | None = None,
    ) -> None:
        """Initialize statistics manager."""
        self.session = session
        self.traversal = traversal or NetworkTraversal(session)
        self.position_repo: MatrixPositionRepository = self.traversal.position_repo
        self.commission_repo = CommissionRepository(session)

    async def get_matrix_statistics(self, user_id: int) -> dict:
        """
        Get occupancy of the user's matrix window.

        Args:
            user_id: User ID

        Returns:
            Dict with active_positions, level_counts, available_positions,
            completion_percentage and max_capacity
        """
        level_counts = await self.traversal.calculate_downline_counts(
            user_id, MATRIX_DEPTH
        )
        capacity = self.traversal.get_matrix_capacity(MATRIX_DEPTH)
        active_positions = sum(level_counts.values())

        return {
            "active_positions": active_positions,
            "level_counts": level_counts,
            "available_positions": capacity - active_positions,
            "completion_percentage": round(
                active_positions / capacity * 100, 2
            ),
            "max_capacity": capacity,
        }

    async def get_performance_metrics(self, user_id: int) -> dict:
        """
        Get matrix earnings and spillover metrics.

        Args:
            user_id: User ID

        Returns:
            Dict with paid/pending earnings, earnings by level, spillover
            counts and average paid earnings per downline member
        """
        level_counts = await self.traversal.calculate_downline_counts(
            user_id, MATRIX_DEPTH
        )
        downline_size = sum(level_counts.values())

        paid = await self.commission_repo.get_total_earnings(
            user_id, CommissionStatus.PAID
        )
        pending = await self.commission_repo.get_total_earnings(
            user_id, CommissionStatus.PENDING
        )
        by_level = await self.commission_repo.get_earnings_by_level(
            user_id, CommissionStatus.PAID
        )

        spillover_received = await self.position_repo.count_spillover_received(
            user_id
        )
        spillover_given = await self.position_repo.count_spillover_given(user_id)

        if downline_size:
            average = round_money(paid / downline_size)
        else:
            average = round_money(Decimal("0"))

        return {
            "total_matrix_earnings": paid,
            "pending_matrix_earnings": pending,
            "earnings_by_level": by_level,
            "downline_size": downline_size,
            "spillover_received": spillover_received,
            "spillover_given": spillover_given,
            "average_earnings_per_member": average,
        }
