"""
Business logic constants for the matrix engine.

Central location for matrix geometry, commission multipliers and the
default membership tier table. Has no imports from the rest of the package
so that settings, models and services can all depend on it.
"""

from decimal import Decimal
from typing import NamedTuple


# 3x3 matrix geometry
MATRIX_WIDTH = 3  # children per position
MATRIX_DEPTH = 3  # levels below a sponsor covered by views, spillover and commissions

# Level of a network root (a position with no sponsor)
ROOT_LEVEL = 0

# Position multipliers: decaying value of indirect recruitment, tier independent
POSITION_MULTIPLIERS: dict[int, Decimal] = {
    1: Decimal("1.0"),  # direct referrals get the full rate
    2: Decimal("0.8"),  # level 2 gets 80% of the rate
    3: Decimal("0.6"),  # level 3 gets 60% of the rate
}

# Currency: 100 minor units per major unit (ngwee per Kwacha)
CURRENCY_CODE = "ZMW"
CURRENCY_SYMBOL = "K"
MINOR_UNITS_PER_MAJOR = 100

# Placement retry budget when two writers race for the same slot
PLACEMENT_MAX_ATTEMPTS = 3

# Investment statuses that trigger commission posting
DEFAULT_ELIGIBLE_INVESTMENT_STATUSES = ("active", "paid")


class TierDefinition(NamedTuple):
    """Default membership tier configuration."""

    name: str
    order: int
    min_investment: Decimal
    direct_referral_rate: Decimal  # percent, level 1
    level2_rate: Decimal  # percent
    level3_rate: Decimal  # percent
    max_commission_level: int  # deepest level this tier is paid for


# Seed values for membership_tiers (scripts/seed_membership_tiers.py)
DEFAULT_MEMBERSHIP_TIERS: tuple[TierDefinition, ...] = (
    TierDefinition(
        name="Bronze",
        order=1,
        min_investment=Decimal("500"),
        direct_referral_rate=Decimal("5"),
        level2_rate=Decimal("0"),
        level3_rate=Decimal("0"),
        max_commission_level=1,
    ),
    TierDefinition(
        name="Silver",
        order=2,
        min_investment=Decimal("2500"),
        direct_referral_rate=Decimal("10"),
        level2_rate=Decimal("6"),
        level3_rate=Decimal("4"),
        max_commission_level=2,
    ),
    TierDefinition(
        name="Gold",
        order=3,
        min_investment=Decimal("5000"),
        direct_referral_rate=Decimal("12"),
        level2_rate=Decimal("6"),
        level3_rate=Decimal("4"),
        max_commission_level=3,
    ),
    TierDefinition(
        name="Diamond",
        order=4,
        min_investment=Decimal("10000"),
        direct_referral_rate=Decimal("12"),
        level2_rate=Decimal("8"),
        level3_rate=Decimal("5"),
        max_commission_level=3,
    ),
    TierDefinition(
        name="Elite",
        order=5,
        min_investment=Decimal("25000"),
        direct_referral_rate=Decimal("15"),
        level2_rate=Decimal("10"),
        level3_rate=Decimal("6"),
        max_commission_level=3,
    ),
)
