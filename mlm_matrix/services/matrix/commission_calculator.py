"""
Commission calculator.

Computes matrix commissions for an investment by walking up to three
sponsors above the investor's position, and posts them idempotently.

Formula per level:
    amount = investment.amount * tier_rate(level) * multiplier(level) / 100
with multipliers 1.0 / 0.8 / 0.6, rounded half-up to minor units.
"""

from dataclasses import asdict, dataclass
from decimal import Decimal
from typing import Any

from loguru import logger
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from mlm_matrix.config.business_constants import MATRIX_DEPTH
from mlm_matrix.config.settings import settings
from mlm_matrix.models.commission_record import CommissionRecord
from mlm_matrix.models.enums import CommissionStatus, CommissionType
from mlm_matrix.models.investment import Investment
from mlm_matrix.repositories.commission_repository import CommissionRepository
from mlm_matrix.repositories.investment_repository import InvestmentRepository
from mlm_matrix.repositories.matrix_position_repository import (
    MatrixPositionRepository,
)
from mlm_matrix.repositories.membership_tier_repository import (
    MembershipTierRepository,
)
from mlm_matrix.repositories.user_repository import UserRepository
from mlm_matrix.services.matrix.network_traversal import NetworkTraversal
from mlm_matrix.services.matrix.tier_rates import TierRateTable
from mlm_matrix.utils.db_decorators import with_rollback_on_error
from mlm_matrix.utils.exceptions import (
    InvestmentNotEligibleError,
    InvestmentNotFoundError,
)
from mlm_matrix.utils.money import ZERO, calculate_commission_amount


@dataclass(frozen=True)
class CommissionLineItem:
    """One commission owed to one sponsor for one investment."""

    referrer_id: int
    referee_id: int
    investment_id: int
    level: int
    amount: Decimal
    percentage_applied: Decimal
    position_multiplier: Decimal
    matrix_position: int
    tier_name: str

    @property
    def key(self) -> tuple[int, int]:
        """Idempotency key within the investment."""
        return self.referrer_id, self.level

    def to_record_data(self) -> dict[str, Any]:
        """Column values for a pending CommissionRecord."""
        data = asdict(self)
        data["status"] = CommissionStatus.PENDING.value
        data["commission_type"] = CommissionType.MATRIX.value
        return data


class CommissionCalculator:
    """Calculates and posts matrix commissions."""

    def __init__(
        self,
        session: AsyncSession,
        rate_table: TierRateTable | None = None,
        traversal: NetworkTraversal | None = None,
        position_repo: MatrixPositionRepository | None = None,
        user_repo: UserRepository | None = None,
        commission_repo: CommissionRepository | None = None,
        investment_repo: InvestmentRepository | None = None,
    ) -> None:
        """
        Initialize commission calculator.

        Args:
            session: Async database session
            rate_table: Fixed rate table; loaded from membership_tiers if None
            traversal: Upline walker
            position_repo: Position store
            user_repo: User store
            commission_repo: Commission store
            investment_repo: Investment store
        """
        self.session = session
        self.position_repo = position_repo or MatrixPositionRepository(session)
        self.user_repo = user_repo or UserRepository(session)
        self.commission_repo = commission_repo or CommissionRepository(session)
        self.investment_repo = investment_repo or InvestmentRepository(session)
        self.tier_repo = MembershipTierRepository(session)
        self.traversal = traversal or NetworkTraversal(
            session,
            position_repo=self.position_repo,
            user_repo=self.user_repo,
            investment_repo=self.investment_repo,
        )
        self._rate_table = rate_table

    async def get_rate_table(self) -> TierRateTable:
        """Rate table in effect (loaded once per calculator)."""
        if self._rate_table is None:
            tiers = await self.tier_repo.get_active_tiers()
            if tiers:
                self._rate_table = TierRateTable.from_models(tiers)
            else:
                logger.warning(
                    "No active membership tiers, using built-in tier table"
                )
                self._rate_table = TierRateTable.default()
        return self._rate_table

    async def calculate_commissions(
        self, investment: Investment
    ) -> list[CommissionLineItem]:
        """
        Compute commission line items for an investment. Read only.

        Inactive or ineligible sponsors are skipped without stopping the
        walk, so the level of a line item is always its distance from the
        investor.

        Args:
            investment: Investment triggering commissions

        Returns:
            Line items ordered by level (empty if the investor is unplaced)
        """
        if investment.amount <= ZERO:
            return []

        position = await self.position_repo.get_active_for_user(
            investment.user_id
        )
        if position is None:
            logger.debug(
                "Investor has no matrix position, no commissions",
                extra={
                    "investment_id": investment.id,
                    "user_id": investment.user_id,
                },
            )
            return []

        rate_table = await self.get_rate_table()
        upline = await self.traversal.get_upline(position, MATRIX_DEPTH)
        sponsors = await self.user_repo.get_by_ids(
            [member.user_id for member in upline]
        )

        items: list[CommissionLineItem] = []
        for member in upline:
            sponsor = sponsors.get(member.user_id)
            skip_reason = None

            if sponsor is None:
                skip_reason = "sponsor not found"
            elif not sponsor.is_active:
                skip_reason = "sponsor inactive"
            elif member.position is None or not member.position.is_active:
                skip_reason = "sponsor position inactive"
            elif sponsor.membership_tier is None:
                skip_reason = "sponsor has no membership tier"
            elif not rate_table.is_eligible(
                sponsor.membership_tier.name, member.level
            ):
                skip_reason = "tier not eligible at level"

            if skip_reason:
                logger.debug(
                    f"Skipping sponsor {member.user_id} at level {member.level}: "
                    f"{skip_reason}",
                    extra={
                        "investment_id": investment.id,
                        "sponsor_id": member.user_id,
                        "level": member.level,
                    },
                )
                continue

            tier_name = sponsor.membership_tier.name
            rate = rate_table.rate_for(tier_name, member.level)
            multiplier = rate_table.position_multiplier(member.level)
            amount = calculate_commission_amount(
                investment.amount, rate, multiplier
            )
            if amount <= ZERO:
                continue

            items.append(
                CommissionLineItem(
                    referrer_id=member.user_id,
                    referee_id=investment.user_id,
                    investment_id=investment.id,
                    level=member.level,
                    amount=amount,
                    percentage_applied=rate,
                    position_multiplier=multiplier,
                    matrix_position=position.position,
                    tier_name=tier_name,
                )
            )

        return items

    @with_rollback_on_error
    async def post_commissions(
        self, investment_id: int
    ) -> list[CommissionRecord]:
        """
        Create pending commission records for an investment.

        Idempotent: already posted (referrer, level) pairs are skipped, so
        a second call returns the same records without creating any.

        Args:
            investment_id: Investment ID

        Returns:
            All commission records of the investment, ordered by level

        Raises:
            InvestmentNotFoundError: investment does not exist
            InvestmentNotEligibleError: status does not trigger commissions
        """
        investment = await self.investment_repo.get_by_id(investment_id)
        if investment is None:
            raise InvestmentNotFoundError(investment_id)
        if investment.status not in settings.get_eligible_statuses():
            raise InvestmentNotEligibleError(investment_id, investment.status)

        items = await self.calculate_commissions(investment)
        existing_keys = await self.commission_repo.get_existing_keys(
            investment_id
        )

        created = 0
        for item in items:
            if item.key in existing_keys:
                logger.debug(
                    "Duplicate commission skipped",
                    extra={
                        "investment_id": investment_id,
                        "referrer_id": item.referrer_id,
                        "level": item.level,
                    },
                )
                continue

            try:
                async with self.session.begin_nested():
                    await self.commission_repo.create(**item.to_record_data())
            except IntegrityError:
                # Posted concurrently
                logger.info(
                    "Duplicate commission rejected by storage, skipped",
                    extra={
                        "investment_id": investment_id,
                        "referrer_id": item.referrer_id,
                        "level": item.level,
                    },
                )
                continue
            created += 1

        await self.session.commit()

        records = await self.commission_repo.get_for_investment(investment_id)
        if created:
            logger.info(
                f"Posted {created} matrix commissions for investment "
                f"{investment_id}",
                extra={
                    "investment_id": investment_id,
                    "total": str(sum((r.amount for r in records), ZERO)),
                },
            )
        return records
