"""
Unit tests for matrix commission calculation.

Tests cover:
- Amounts per level (rate * multiplier)
- Skipping inactive / ineligible sponsors without stopping the walk
- Unplaced investors
- Line item snapshot fields
"""

from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from mlm_matrix.services.matrix import CommissionCalculator, UplineMember


def make_position(user_id: int, slot: int = 2, is_active: bool = True):
    """Mock matrix position."""
    position = MagicMock()
    position.user_id = user_id
    position.position = slot
    position.is_active = is_active
    return position


@pytest.fixture
def position_repo():
    """Position store with a placed investor (user 100, slot 2)."""
    repo = AsyncMock()
    repo.get_active_for_user = AsyncMock(return_value=make_position(100, slot=2))
    return repo


@pytest.fixture
def traversal():
    """Upline walker returning sponsors 10 (L1), 20 (L2), 30 (L3)."""
    walker = AsyncMock()
    walker.get_upline = AsyncMock(return_value=[
        UplineMember(level=1, user_id=10, position=make_position(10)),
        UplineMember(level=2, user_id=20, position=make_position(20)),
        UplineMember(level=3, user_id=30, position=make_position(30)),
    ])
    return walker


@pytest.fixture
def user_repo():
    """User store, sponsors set per test."""
    return AsyncMock()


@pytest.fixture
def calculator(mock_session, rate_table, traversal, position_repo, user_repo):
    """CommissionCalculator with mocked stores."""
    return CommissionCalculator(
        mock_session,
        rate_table=rate_table,
        traversal=traversal,
        position_repo=position_repo,
        user_repo=user_repo,
        commission_repo=AsyncMock(),
        investment_repo=AsyncMock(),
    )


class TestCommissionAmounts:
    """Test amounts per level."""

    @pytest.mark.asyncio
    async def test_elite_chain(self, calculator, user_repo, make_sponsor, mock_investment):
        """10,000 with Elite sponsors: 1500 / 800 / 360."""
        user_repo.get_by_ids = AsyncMock(return_value={
            10: make_sponsor(10, "Elite"),
            20: make_sponsor(20, "Elite"),
            30: make_sponsor(30, "Elite"),
        })

        items = await calculator.calculate_commissions(mock_investment)

        assert [(i.referrer_id, i.level, i.amount) for i in items] == [
            (10, 1, Decimal("1500.00")),
            (20, 2, Decimal("800.00")),
            (30, 3, Decimal("360.00")),
        ]

    @pytest.mark.asyncio
    async def test_line_item_snapshot(self, calculator, user_repo, make_sponsor, mock_investment):
        """Rate, multiplier, slot and tier are recorded."""
        user_repo.get_by_ids = AsyncMock(return_value={
            10: make_sponsor(10, "Gold"),
            20: make_sponsor(20, "Gold"),
            30: make_sponsor(30, "Gold"),
        })

        items = await calculator.calculate_commissions(mock_investment)
        level2 = items[1]

        assert level2.percentage_applied == Decimal("6")
        assert level2.position_multiplier == Decimal("0.8")
        assert level2.amount == Decimal("480.00")
        assert level2.matrix_position == 2
        assert level2.tier_name == "Gold"
        assert level2.referee_id == 100
        assert level2.investment_id == 1

        data = level2.to_record_data()
        assert data["status"] == "pending"
        assert data["commission_type"] == "matrix"


class TestSkippedSponsors:
    """Test sponsors that earn nothing."""

    @pytest.mark.asyncio
    async def test_ineligible_tier_skipped_walk_continues(
        self, calculator, user_repo, make_sponsor, mock_investment
    ):
        """Bronze at level 2 earns nothing, Elite at level 3 still earns."""
        user_repo.get_by_ids = AsyncMock(return_value={
            10: make_sponsor(10, "Silver"),
            20: make_sponsor(20, "Bronze"),
            30: make_sponsor(30, "Elite"),
        })

        items = await calculator.calculate_commissions(mock_investment)

        assert [(i.referrer_id, i.level) for i in items] == [(10, 1), (30, 3)]

    @pytest.mark.asyncio
    async def test_silver_not_paid_at_level_3(
        self, calculator, user_repo, make_sponsor, mock_investment
    ):
        """Silver's max commission level is 2."""
        user_repo.get_by_ids = AsyncMock(return_value={
            10: make_sponsor(10, "Silver"),
            20: make_sponsor(20, "Silver"),
            30: make_sponsor(30, "Silver"),
        })

        items = await calculator.calculate_commissions(mock_investment)

        assert [i.level for i in items] == [1, 2]
        assert items[1].amount == Decimal("480.00")  # 10,000 * 6% * 0.8

    @pytest.mark.asyncio
    async def test_inactive_user_and_position_skipped(
        self, calculator, user_repo, traversal, make_sponsor, mock_investment
    ):
        """Deactivated users and positions are climbed through, not paid."""
        traversal.get_upline = AsyncMock(return_value=[
            UplineMember(level=1, user_id=10, position=make_position(10, is_active=False)),
            UplineMember(level=2, user_id=20, position=make_position(20)),
            UplineMember(level=3, user_id=30, position=make_position(30)),
        ])
        user_repo.get_by_ids = AsyncMock(return_value={
            10: make_sponsor(10, "Elite"),
            20: make_sponsor(20, "Elite", is_active=False),
            30: make_sponsor(30, "Elite"),
        })

        items = await calculator.calculate_commissions(mock_investment)

        assert [(i.referrer_id, i.level) for i in items] == [(30, 3)]

    @pytest.mark.asyncio
    async def test_sponsor_without_tier_skipped(
        self, calculator, user_repo, make_sponsor, mock_investment
    ):
        """No tier, no commission."""
        user_repo.get_by_ids = AsyncMock(return_value={
            10: make_sponsor(10, tier=None),
            20: make_sponsor(20, "Elite"),
            30: make_sponsor(30, "Elite"),
        })

        items = await calculator.calculate_commissions(mock_investment)

        assert [i.referrer_id for i in items] == [20, 30]


class TestNoCommissions:
    """Test investments that produce nothing."""

    @pytest.mark.asyncio
    async def test_unplaced_investor(self, calculator, position_repo, traversal, mock_investment):
        """No position means no commissions and no upline walk."""
        position_repo.get_active_for_user = AsyncMock(return_value=None)

        assert await calculator.calculate_commissions(mock_investment) == []
        traversal.get_upline.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_zero_amount(self, calculator, mock_investment):
        """Zero investments pay nothing."""
        mock_investment.amount = Decimal("0")

        assert await calculator.calculate_commissions(mock_investment) == []

    @pytest.mark.asyncio
    async def test_root_investor(self, calculator, traversal, user_repo, mock_investment):
        """A network root has no upline."""
        traversal.get_upline = AsyncMock(return_value=[])
        user_repo.get_by_ids = AsyncMock(return_value={})

        assert await calculator.calculate_commissions(mock_investment) == []
