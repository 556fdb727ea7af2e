"""
Standard type definitions for database models.

Provides consistent types for monetary and percentage fields across all models.
"""

from sqlalchemy import DECIMAL

# Standard money type for amounts, volumes and commissions
# Precision: 18 digits total, 2 after decimal point (minor units)
# Range: up to 9,999,999,999,999,999.99
MoneyType = DECIMAL(18, 2)

# Referral rate percentage type for tier tables
# Precision: 5 digits total, 2 after decimal point
# Suitable for: referral rates (e.g., 12.00%, 6.50%)
# Range: 0.00 to 999.99
PercentType = DECIMAL(5, 2)

# Position multiplier type (1.00, 0.80, 0.60)
MultiplierType = DECIMAL(4, 2)
