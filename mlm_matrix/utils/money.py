"""
Money helpers.

Commission arithmetic runs in minor units (100 ngwee per Kwacha) with
half-up rounding, then converts back to a 2-place Decimal. Floats never
enter the calculation.
"""

from decimal import ROUND_HALF_UP, Decimal

from mlm_matrix.config.business_constants import (
    CURRENCY_SYMBOL,
    MINOR_UNITS_PER_MAJOR,
)

MAJOR_QUANTUM = Decimal("1") / MINOR_UNITS_PER_MAJOR  # 0.01
ZERO = Decimal("0")


def to_decimal(value: Decimal | int | str | float) -> Decimal:
    """
    Coerce a numeric value to Decimal.

    Floats go through str() so 0.8 stays 0.8 instead of its binary expansion.
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def to_minor_units(amount: Decimal | int | str | float) -> int:
    """
    Convert a major-unit amount to integer minor units.

    Args:
        amount: Amount in major units (e.g. Decimal("12.345"))

    Returns:
        Minor units rounded half-up (e.g. 1235)
    """
    minor = to_decimal(amount) * MINOR_UNITS_PER_MAJOR
    return int(minor.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def from_minor_units(minor: int) -> Decimal:
    """Convert integer minor units back to a 2-place major-unit Decimal."""
    return (Decimal(minor) / MINOR_UNITS_PER_MAJOR).quantize(MAJOR_QUANTUM)


def round_money(amount: Decimal | int | str | float) -> Decimal:
    """Round an amount to the currency's minor unit, half-up."""
    return from_minor_units(to_minor_units(amount))


def calculate_commission_amount(
    investment_amount: Decimal,
    rate_percent: Decimal,
    multiplier: Decimal,
) -> Decimal:
    """
    Calculate a single commission amount.

    Formula: investment_amount * rate_percent * multiplier / 100

    Args:
        investment_amount: Investment amount in major units
        rate_percent: Referral rate in percent (0-100)
        multiplier: Position multiplier (1.0, 0.8, 0.6)

    Returns:
        Commission rounded to minor units; zero for non-positive inputs
    """
    investment_amount = to_decimal(investment_amount)
    rate_percent = to_decimal(rate_percent)
    multiplier = to_decimal(multiplier)

    if investment_amount <= ZERO or rate_percent <= ZERO or multiplier <= ZERO:
        return from_minor_units(0)

    raw = investment_amount * rate_percent * multiplier / Decimal("100")
    return round_money(raw)


def format_money(amount: Decimal, symbol: str = CURRENCY_SYMBOL) -> str:
    """
    Format an amount for display.

    Example:
        >>> format_money(Decimal("1500"))
        'K1,500.00'
    """
    return f"{symbol}{round_money(amount):,.2f}"
