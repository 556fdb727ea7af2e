"""
Tier rate table.

Maps (tier, level) to a referral percentage and decides whether a tier is
paid at a level. Position multipliers are tier independent.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal

from mlm_matrix.config.business_constants import (
    DEFAULT_MEMBERSHIP_TIERS,
    MATRIX_DEPTH,
    POSITION_MULTIPLIERS,
    TierDefinition,
)
from mlm_matrix.models.membership_tier import MembershipTier


ZERO_RATE = Decimal("0")


@dataclass(frozen=True)
class TierRates:
    """Referral rates of one membership tier."""

    name: str
    order: int
    rates: dict[int, Decimal]  # level -> percent
    max_commission_level: int

    def rate_for(self, level: int) -> Decimal:
        """Percent paid at a level (0 outside the tier's range)."""
        if level < 1 or level > self.max_commission_level:
            return ZERO_RATE
        return self.rates.get(level, ZERO_RATE)


class TierRateTable:
    """
    Lookup table of tier rates keyed by tier name.

    Built from the membership_tiers rows at calculation time, so rate
    changes take effect for future postings only.
    """

    def __init__(self, tiers: Iterable[TierRates]) -> None:
        self._tiers = {tier.name: tier for tier in tiers}

    @classmethod
    def from_models(cls, tiers: Iterable[MembershipTier]) -> "TierRateTable":
        """Build the table from active MembershipTier rows."""
        return cls(
            TierRates(
                name=tier.name,
                order=tier.order,
                rates={
                    1: tier.direct_referral_rate,
                    2: tier.level2_rate,
                    3: tier.level3_rate,
                },
                max_commission_level=tier.max_commission_level,
            )
            for tier in tiers
            if tier.is_active
        )

    @classmethod
    def from_definitions(
        cls, definitions: Iterable[TierDefinition]
    ) -> "TierRateTable":
        """Build the table from TierDefinition tuples."""
        return cls(
            TierRates(
                name=definition.name,
                order=definition.order,
                rates={
                    1: definition.direct_referral_rate,
                    2: definition.level2_rate,
                    3: definition.level3_rate,
                },
                max_commission_level=definition.max_commission_level,
            )
            for definition in definitions
        )

    @classmethod
    def default(cls) -> "TierRateTable":
        """Table with the built-in tier configuration."""
        return cls.from_definitions(DEFAULT_MEMBERSHIP_TIERS)

    @property
    def tier_names(self) -> list[str]:
        """Tier names ordered from lowest to highest tier."""
        return [
            tier.name
            for tier in sorted(self._tiers.values(), key=lambda t: t.order)
        ]

    def get(self, tier_name: str) -> TierRates | None:
        """Get rates of a tier, None for unknown tiers."""
        return self._tiers.get(tier_name)

    def rate_for(self, tier_name: str, level: int) -> Decimal:
        """
        Get the referral percentage for a tier at a level.

        Args:
            tier_name: Membership tier name
            level: Commission level (1-3)

        Returns:
            Percent (0-100), 0 for unknown tiers or levels out of range
        """
        tier = self._tiers.get(tier_name)
        if tier is None:
            return ZERO_RATE
        return tier.rate_for(level)

    def max_level(self, tier_name: str) -> int:
        """Deepest level a tier is paid for, 0 for unknown tiers."""
        tier = self._tiers.get(tier_name)
        return tier.max_commission_level if tier else 0

    def is_eligible(self, tier_name: str, level: int) -> bool:
        """
        Check whether a tier earns matrix commission at a level.

        Args:
            tier_name: Membership tier name
            level: Commission level (1-3)

        Returns:
            True if level is within the tier's range and its rate is positive
        """
        if level < 1 or level > MATRIX_DEPTH:
            return False
        return self.rate_for(tier_name, level) > ZERO_RATE

    @staticmethod
    def position_multiplier(level: int) -> Decimal:
        """
        Get the position multiplier for a level.

        Args:
            level: Commission level (1-3)

        Returns:
            1.0, 0.8 or 0.6; 0 outside the matrix depth
        """
        return POSITION_MULTIPLIERS.get(level, ZERO_RATE)

    def __len__(self) -> int:
        return len(self._tiers)

    def __contains__(self, tier_name: object) -> bool:
        return tier_name in self._tiers
