"""
Membership tier model.

Ordered tiers with per-level referral rates. Rows referenced by historical
commissions are never edited in place: commission records snapshot the rate
they were paid with, so rate changes only apply to future postings.
"""

from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import Boolean, CheckConstraint, DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from mlm_matrix.models.base import Base
from mlm_matrix.models.types import MoneyType, PercentType


class MembershipTier(Base):
    """Membership tier model - referral rate table rows."""

    __tablename__ = "membership_tiers"
    __table_args__ = (
        CheckConstraint(
            'direct_referral_rate >= 0 AND direct_referral_rate <= 100',
            name='check_tier_direct_rate_range'
        ),
        CheckConstraint(
            'level2_rate >= 0 AND level2_rate <= 100',
            name='check_tier_level2_rate_range'
        ),
        CheckConstraint(
            'level3_rate >= 0 AND level3_rate <= 100',
            name='check_tier_level3_rate_range'
        ),
        CheckConstraint(
            'max_commission_level >= 0 AND max_commission_level <= 3',
            name='check_tier_max_commission_level_range'
        ),
        CheckConstraint(
            'min_investment >= 0',
            name='check_tier_min_investment_non_negative'
        ),
    )

    # Primary key
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    name: Mapped[str] = mapped_column(
        String(50), nullable=False, unique=True
    )
    order: Mapped[int] = mapped_column(
        Integer, nullable=False, index=True
    )

    # Referral rates (percent, 0-100)
    direct_referral_rate: Mapped[Decimal] = mapped_column(
        PercentType, nullable=False, default=Decimal("0")
    )
    level2_rate: Mapped[Decimal] = mapped_column(
        PercentType, nullable=False, default=Decimal("0")
    )
    level3_rate: Mapped[Decimal] = mapped_column(
        PercentType, nullable=False, default=Decimal("0")
    )

    # Deepest matrix level this tier is paid for (1-3)
    max_commission_level: Mapped[int] = mapped_column(
        Integer, nullable=False, default=1
    )

    min_investment: Mapped[Decimal] = mapped_column(
        MoneyType, nullable=False, default=Decimal("0")
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean, default=True, nullable=False
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<MembershipTier(id={self.id}, name={self.name}, "
            f"rates={self.direct_referral_rate}/{self.level2_rate}/"
            f"{self.level3_rate}, max_level={self.max_commission_level})>"
        )
