"""
Shared fixtures for unit tests.

This module provides common fixtures used across multiple test modules:
- Default tier rate table
- Mock investment and sponsor objects
"""

from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from mlm_matrix.services.matrix import TierRateTable


@pytest.fixture
def rate_table():
    """
    Tier rate table with the built-in tiers.

    Returns:
        TierRateTable: Bronze, Silver, Gold, Diamond, Elite
    """
    return TierRateTable.default()


@pytest.fixture
def mock_investment():
    """
    Create mock investment object with default values.

    Default values:
    - id: 1
    - user_id: 100 (investor)
    - amount: 10000
    - status: active

    Returns:
        MagicMock: Mock investment object
    """
    investment = MagicMock()
    investment.id = 1
    investment.user_id = 100
    investment.amount = Decimal("10000")
    investment.status = "active"
    return investment


@pytest.fixture
def make_sponsor():
    """Factory for mock sponsor users with a tier name."""

    def _make_sponsor(user_id: int, tier: str | None = "Elite", is_active: bool = True):
        sponsor = MagicMock()
        sponsor.id = user_id
        sponsor.is_active = is_active
        if tier is None:
            sponsor.membership_tier = None
        else:
            sponsor.membership_tier = MagicMock()
            sponsor.membership_tier.name = tier
        return sponsor

    return _make_sponsor
