"""
Unit tests for the tier rate table.

Tests cover:
- Rate lookup per tier and level
- Tier-defined eligibility (max commission level)
- Position multipliers
- Building the table from database rows
"""

from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from mlm_matrix.services.matrix import TierRateTable


class TestRateLookup:
    """Test referral rate lookup."""

    @pytest.mark.parametrize(
        "tier,level,expected",
        [
            ("Bronze", 1, Decimal("5")),
            ("Silver", 1, Decimal("10")),
            ("Silver", 2, Decimal("6")),
            ("Gold", 3, Decimal("4")),
            ("Diamond", 2, Decimal("8")),
            ("Elite", 1, Decimal("15")),
            ("Elite", 3, Decimal("6")),
        ],
    )
    def test_rate_for_tier_and_level(self, rate_table, tier, level, expected):
        """Rates come from the tier definition."""
        assert rate_table.rate_for(tier, level) == expected

    def test_rate_beyond_max_level_is_zero(self, rate_table):
        """Silver is paid down to level 2 only."""
        assert rate_table.rate_for("Silver", 3) == Decimal("0")
        assert rate_table.rate_for("Bronze", 2) == Decimal("0")

    def test_unknown_tier_has_no_rate(self, rate_table):
        """Unknown tiers are never paid."""
        assert rate_table.rate_for("Platinum", 1) == Decimal("0")
        assert rate_table.max_level("Platinum") == 0
        assert "Platinum" not in rate_table

    def test_tier_names_ordered(self, rate_table):
        """Tier names come back from lowest to highest."""
        assert rate_table.tier_names == [
            "Bronze", "Silver", "Gold", "Diamond", "Elite"
        ]
        assert len(rate_table) == 5


class TestEligibility:
    """Test tier-defined level eligibility."""

    def test_all_tiers_eligible_at_level_1(self, rate_table):
        """Every tier earns on direct referrals."""
        for name in rate_table.tier_names:
            assert rate_table.is_eligible(name, 1) is True

    def test_level_2_excludes_bronze(self, rate_table):
        """Bronze is not paid at level 2."""
        assert rate_table.is_eligible("Bronze", 2) is False
        assert rate_table.is_eligible("Silver", 2) is True

    def test_level_3_requires_gold_or_above(self, rate_table):
        """Only Gold, Diamond and Elite are paid at level 3."""
        assert rate_table.is_eligible("Silver", 3) is False
        assert rate_table.is_eligible("Gold", 3) is True
        assert rate_table.is_eligible("Elite", 3) is True

    @pytest.mark.parametrize("level", [0, 4, -1])
    def test_levels_outside_matrix_not_eligible(self, rate_table, level):
        """Only levels 1-3 exist."""
        assert rate_table.is_eligible("Elite", level) is False


class TestPositionMultipliers:
    """Test position multipliers."""

    def test_multipliers_decay_by_level(self):
        """1.0 / 0.8 / 0.6 regardless of tier."""
        assert TierRateTable.position_multiplier(1) == Decimal("1.0")
        assert TierRateTable.position_multiplier(2) == Decimal("0.8")
        assert TierRateTable.position_multiplier(3) == Decimal("0.6")

    def test_multiplier_outside_matrix_is_zero(self):
        """No multiplier beyond level 3."""
        assert TierRateTable.position_multiplier(4) == Decimal("0")


class TestFromModels:
    """Test building the table from MembershipTier rows."""

    def _tier(self, name, order, rates, max_level, is_active=True):
        tier = MagicMock()
        tier.name = name
        tier.order = order
        tier.direct_referral_rate = Decimal(rates[0])
        tier.level2_rate = Decimal(rates[1])
        tier.level3_rate = Decimal(rates[2])
        tier.max_commission_level = max_level
        tier.is_active = is_active
        return tier

    def test_rows_become_rates(self):
        """Database rates override the built-in table."""
        table = TierRateTable.from_models([
            self._tier("Starter", 1, ("7.5", "0", "0"), 1),
            self._tier("Leader", 2, ("12", "9", "3"), 3),
        ])

        assert table.rate_for("Starter", 1) == Decimal("7.5")
        assert table.rate_for("Leader", 3) == Decimal("3")
        assert table.is_eligible("Starter", 2) is False

    def test_inactive_rows_skipped(self):
        """Inactive tiers are not in the table."""
        table = TierRateTable.from_models([
            self._tier("Legacy", 1, ("20", "20", "20"), 3, is_active=False),
        ])

        assert "Legacy" not in table
        assert table.is_eligible("Legacy", 1) is False
