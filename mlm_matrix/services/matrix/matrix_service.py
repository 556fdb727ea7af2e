"""
Referral matrix service.

Entry point used by the investment workflow: places the investor (and any
unplaced referrers above them) and posts matrix commissions. Also exposes
the read side (views, statistics, metrics) behind a single object.
"""

from dataclasses import dataclass, field
from decimal import Decimal

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from mlm_matrix.config.business_constants import MATRIX_DEPTH
from mlm_matrix.config.settings import settings
from mlm_matrix.models.commission_record import CommissionRecord
from mlm_matrix.models.matrix_position import MatrixPosition
from mlm_matrix.models.user import User
from mlm_matrix.repositories.investment_repository import InvestmentRepository
from mlm_matrix.repositories.matrix_position_repository import (
    MatrixPositionRepository,
)
from mlm_matrix.repositories.user_repository import UserRepository
from mlm_matrix.services.matrix.commission_calculator import (
    CommissionCalculator,
)
from mlm_matrix.services.matrix.network_traversal import (
    MatrixTree,
    NetworkTraversal,
)
from mlm_matrix.services.matrix.placement_engine import (
    MatrixPlacementEngine,
    PlacementResult,
    SlotChoice,
)
from mlm_matrix.services.matrix.statistics import MatrixStatisticsManager
from mlm_matrix.services.matrix.tier_rates import TierRateTable
from mlm_matrix.utils.datetime_utils import Clock, utc_now
from mlm_matrix.utils.exceptions import (
    InvestmentNotEligibleError,
    InvestmentNotFoundError,
    MatrixIntegrityError,
    ParticipantInactiveError,
    ParticipantNotFoundError,
    SponsorInactiveError,
)
from mlm_matrix.utils.money import ZERO


@dataclass
class InvestmentProcessingResult:
    """Result of processing one investment."""

    investment_id: int
    placement: PlacementResult
    commissions: list[CommissionRecord] = field(default_factory=list)

    @property
    def total_commission(self) -> Decimal:
        return sum((record.amount for record in self.commissions), ZERO)


class ReferralMatrixService:
    """Facade over placement, traversal, commissions and statistics."""

    def __init__(
        self,
        session: AsyncSession,
        clock: Clock = utc_now,
        rate_table: TierRateTable | None = None,
    ) -> None:
        """
        Initialize referral matrix service.

        Args:
            session: Async database session
            clock: Timestamp source for placements
            rate_table: Fixed rate table (loaded from the database if None)
        """
        self.session = session
        self.user_repo = UserRepository(session)
        self.position_repo = MatrixPositionRepository(session)
        self.investment_repo = InvestmentRepository(session)

        self.engine = MatrixPlacementEngine(
            session,
            position_repo=self.position_repo,
            user_repo=self.user_repo,
            clock=clock,
        )
        self.traversal = NetworkTraversal(
            session,
            position_repo=self.position_repo,
            user_repo=self.user_repo,
            investment_repo=self.investment_repo,
        )
        self.calculator = CommissionCalculator(
            session,
            rate_table=rate_table,
            traversal=self.traversal,
            position_repo=self.position_repo,
            user_repo=self.user_repo,
            investment_repo=self.investment_repo,
        )
        self.statistics = MatrixStatisticsManager(session, self.traversal)

    async def ensure_placed(self, user_id: int) -> PlacementResult:
        """
        Make sure a user has an active matrix position.

        Climbs the referrer chain to the nearest placed ancestor, then places
        the unplaced users top-down. A chain that ends without a placed
        ancestor starts a new network at its top user.

        Args:
            user_id: User ID

        Returns:
            PlacementResult of the user

        Raises:
            ParticipantInactiveError: user is inactive or was deactivated
            SponsorInactiveError: a referrer in the chain is inactive or
                was deactivated
        """
        existing = await self.position_repo.get_active_for_user(user_id)
        if existing:
            return PlacementResult(position=existing, created=False)

        user = await self.user_repo.get_by_id(user_id)
        if user is None:
            raise ParticipantNotFoundError(user_id)
        if not user.is_active:
            raise ParticipantInactiveError(user_id)
        if await self.position_repo.get_current_for_user(user_id):
            raise ParticipantInactiveError(user_id)

        unplaced, anchor = await self._collect_unplaced_chain(user)

        if anchor is None:
            top = unplaced.pop()
            result = await self.engine.create_root_position(top.id)
            sponsor_id = top.id
            logger.info(
                f"User {top.id} starts a new matrix network",
                extra={"user_id": top.id, "requested_user_id": user_id},
            )
        else:
            sponsor_id = anchor.user_id

        # Top-down: each user is placed under the one above it
        while unplaced:
            member = unplaced.pop()
            result = await self.engine.find_or_create_position(
                sponsor_id, member.id
            )
            sponsor_id = member.id

        return result

    async def process_investment(
        self, investment_id: int
    ) -> InvestmentProcessingResult:
        """
        Place the investor if needed and post matrix commissions.

        Args:
            investment_id: Investment ID

        Returns:
            InvestmentProcessingResult with placement and commission records
        """
        investment = await self.investment_repo.get_by_id(investment_id)
        if investment is None:
            raise InvestmentNotFoundError(investment_id)
        if investment.status not in settings.get_eligible_statuses():
            raise InvestmentNotEligibleError(investment_id, investment.status)

        placement = await self.ensure_placed(investment.user_id)
        commissions = await self.calculator.post_commissions(investment_id)

        result = InvestmentProcessingResult(
            investment_id=investment_id,
            placement=placement,
            commissions=commissions,
        )
        logger.info(
            f"Investment {investment_id} processed",
            extra={
                "investment_id": investment_id,
                "user_id": investment.user_id,
                "placed": placement.created,
                "commissions": len(commissions),
                "total_commission": str(result.total_commission),
            },
        )
        return result

    async def find_or_create_position(
        self, sponsor_id: int, new_user_id: int
    ) -> PlacementResult:
        """Place a user under a sponsor (see MatrixPlacementEngine)."""
        return await self.engine.find_or_create_position(sponsor_id, new_user_id)

    async def post_commissions(
        self, investment_id: int
    ) -> list[CommissionRecord]:
        """Post commissions of an investment (see CommissionCalculator)."""
        return await self.calculator.post_commissions(investment_id)

    async def deactivate_position(self, user_id: int) -> MatrixPosition | None:
        """Soft-disable the user's active position."""
        return await self.engine.deactivate_position(user_id)

    async def find_next_available_slot(self, sponsor_id: int) -> SlotChoice | None:
        """Preview the next placement under a sponsor."""
        return await self.engine.find_next_available_slot(sponsor_id)

    async def build_matrix_view(
        self, user_id: int, max_level: int | None = None
    ) -> MatrixTree:
        """Matrix below a user."""
        return await self.traversal.build_matrix_view(user_id, max_level)

    async def get_matrix_statistics(self, user_id: int) -> dict:
        """Occupancy of the user's window."""
        return await self.statistics.get_matrix_statistics(user_id)

    async def get_performance_metrics(self, user_id: int) -> dict:
        """Matrix earnings and spillover metrics."""
        return await self.statistics.get_performance_metrics(user_id)

    async def get_spillover_beneficiaries(self, user_id: int) -> list[int]:
        """Upline members of a placement."""
        return await self.traversal.get_spillover_beneficiaries(user_id)

    async def get_matrix_depth(
        self, user_id: int, limit: int = MATRIX_DEPTH
    ) -> int:
        """Deepest filled level below a user."""
        return await self.traversal.get_matrix_depth(user_id, limit)

    async def refresh_network_caches(self, user_id: int) -> tuple[int, Decimal]:
        """Recompute downline_count / downline_volume of a user."""
        return await self.traversal.refresh_network_caches(user_id)

    async def _collect_unplaced_chain(
        self, user: User
    ) -> tuple[list[User], MatrixPosition | None]:
        """
        Walk referrer_id links from an unplaced user.

        Validates every referrer on the way, so nothing is written when the
        chain contains an inactive or deactivated member.

        Returns:
            (unplaced users ordered bottom-up starting with user,
             active position of the nearest placed ancestor or None)
        """
        chain = [user]
        visited = {user.id}
        current = user

        while current.referrer_id is not None:
            referrer_id = current.referrer_id
            if referrer_id in visited:
                raise MatrixIntegrityError(
                    f"Referrer chain of user {user.id} loops at user {referrer_id}"
                )
            visited.add(referrer_id)

            referrer = await self.user_repo.get_by_id(referrer_id)
            if referrer is None:
                break
            if not referrer.is_active:
                raise SponsorInactiveError(referrer_id)

            anchor = await self.position_repo.get_current_for_user(referrer_id)
            if anchor is not None:
                if not anchor.is_active:
                    # Deactivated members keep their slot and are never re-placed
                    raise SponsorInactiveError(referrer_id)
                return chain, anchor

            chain.append(referrer)
            current = referrer

        return chain, None
