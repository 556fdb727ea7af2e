"""
Unit tests for money helpers.

Tests cover:
- Minor unit conversion with half-up rounding
- Commission formula
- Display formatting
"""

from decimal import Decimal

import pytest

from mlm_matrix.utils.money import (
    calculate_commission_amount,
    format_money,
    from_minor_units,
    round_money,
    to_decimal,
    to_minor_units,
)


class TestMinorUnits:
    """Test conversion to and from minor units."""

    def test_to_minor_units(self):
        """Major units times 100."""
        assert to_minor_units(Decimal("1500")) == 150000
        assert to_minor_units("0.01") == 1

    def test_half_up_rounding(self):
        """Half a minor unit rounds away from zero."""
        assert to_minor_units(Decimal("0.005")) == 1
        assert to_minor_units(Decimal("0.004")) == 0
        assert to_minor_units(Decimal("49.9995")) == 5000

    def test_from_minor_units_has_two_places(self):
        """Result is quantized to cents."""
        assert from_minor_units(150000) == Decimal("1500.00")
        assert str(from_minor_units(5)) == "0.05"

    def test_float_input_goes_through_str(self):
        """0.8 stays 0.8."""
        assert to_decimal(0.8) == Decimal("0.8")
        assert round_money(0.125) == Decimal("0.13")


class TestCommissionAmount:
    """Test commission formula."""

    def test_direct_commission(self):
        """10,000 at 15% with multiplier 1.0."""
        amount = calculate_commission_amount(
            Decimal("10000"), Decimal("15"), Decimal("1.0")
        )
        assert amount == Decimal("1500.00")

    def test_multiplier_applied(self):
        """Level 2 and 3 get 80% and 60% of the rate."""
        assert calculate_commission_amount(
            Decimal("10000"), Decimal("10"), Decimal("0.8")
        ) == Decimal("800.00")
        assert calculate_commission_amount(
            Decimal("10000"), Decimal("6"), Decimal("0.6")
        ) == Decimal("360.00")

    def test_rounding_to_minor_units(self):
        """333.33 * 15% = 49.9995, rounds to 50.00."""
        amount = calculate_commission_amount(
            Decimal("333.33"), Decimal("15"), Decimal("1.0")
        )
        assert amount == Decimal("50.00")

    @pytest.mark.parametrize(
        "amount,rate,multiplier",
        [
            ("0", "15", "1.0"),
            ("-100", "15", "1.0"),
            ("1000", "0", "1.0"),
            ("1000", "15", "0"),
        ],
    )
    def test_non_positive_inputs_give_zero(self, amount, rate, multiplier):
        """No negative or phantom commissions."""
        result = calculate_commission_amount(
            Decimal(amount), Decimal(rate), Decimal(multiplier)
        )
        assert result == Decimal("0.00")

    def test_sub_cent_commission_rounds_to_zero(self):
        """0.02 at 5% * 0.6 is below half a cent."""
        assert calculate_commission_amount(
            Decimal("0.02"), Decimal("5"), Decimal("0.6")
        ) == Decimal("0.00")


class TestFormatting:
    """Test display formatting."""

    def test_format_money(self):
        """Currency symbol, thousands separator, two places."""
        assert format_money(Decimal("1500")) == "K1,500.00"
        assert format_money(Decimal("0.5"), symbol="$") == "$0.50"
