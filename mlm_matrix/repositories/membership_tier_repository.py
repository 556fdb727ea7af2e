"""
Membership tier repository.

Data access layer for MembershipTier model.
"""

from loguru import logger
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from mlm_matrix.config.business_constants import (
    DEFAULT_MEMBERSHIP_TIERS,
    TierDefinition,
)
from mlm_matrix.models.membership_tier import MembershipTier
from mlm_matrix.repositories.base import BaseRepository


class MembershipTierRepository(BaseRepository[MembershipTier]):
    """Membership tier repository."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize membership tier repository."""
        super().__init__(MembershipTier, session)

    async def get_by_name(self, name: str) -> MembershipTier | None:
        """Get tier by name."""
        return await self.get_by(name=name)

    async def get_active_tiers(self) -> list[MembershipTier]:
        """
        Get active tiers ordered by tier order.

        Returns:
            Tiers from lowest to highest
        """
        stmt = (
            select(MembershipTier)
            .where(MembershipTier.is_active.is_(True))
            .order_by(MembershipTier.order)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def seed_defaults(
        self,
        definitions: tuple[TierDefinition, ...] = DEFAULT_MEMBERSHIP_TIERS,
    ) -> int:
        """
        Insert tiers that do not exist yet. Existing rows are left untouched.

        Args:
            definitions: Tier definitions to seed

        Returns:
            Number of tiers created
        """
        created = 0
        for definition in definitions:
            if await self.get_by_name(definition.name):
                continue
            await self.create(**definition._asdict())
            created += 1
            logger.info(
                f"Seeded membership tier {definition.name}",
                extra={"tier": definition.name, "order": definition.order},
            )
        return created
