"""
Commission record model.

One row per (investment, referrer, level). The unique constraint on that
tuple is the idempotency key for commission posting.
"""

from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from mlm_matrix.models.base import Base
from mlm_matrix.models.enums import CommissionStatus, CommissionType
from mlm_matrix.models.types import MoneyType, MultiplierType, PercentType


class CommissionRecord(Base):
    """Commission record model - matrix commissions awaiting payout."""

    __tablename__ = "commission_records"
    __table_args__ = (
        UniqueConstraint(
            'investment_id', 'referrer_id', 'level',
            name='uq_commission_investment_referrer_level'
        ),
        CheckConstraint(
            'level >= 1 AND level <= 3',
            name='check_commission_level_range'
        ),
        CheckConstraint(
            'amount > 0', name='check_commission_amount_positive'
        ),
        Index('idx_commission_referrer_status', 'referrer_id', 'status'),
    )

    # Primary key
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    # Earner
    referrer_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    # Investor whose investment generated the commission
    referee_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    investment_id: Mapped[int] = mapped_column(
        ForeignKey("investments.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    level: Mapped[int] = mapped_column(
        Integer, nullable=False
    )  # 1-3 hops above the investor
    amount: Mapped[Decimal] = mapped_column(
        MoneyType, nullable=False
    )

    # Snapshot of the formula inputs at posting time
    percentage_applied: Mapped[Decimal] = mapped_column(
        PercentType, nullable=False
    )
    position_multiplier: Mapped[Decimal] = mapped_column(
        MultiplierType, nullable=False
    )
    matrix_position: Mapped[int] = mapped_column(
        Integer, nullable=False
    )  # investor's slot number
    tier_name: Mapped[str | None] = mapped_column(
        String(50), nullable=True
    )

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=CommissionStatus.PENDING.value
    )  # pending, paid, rejected
    commission_type: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=CommissionType.MATRIX.value
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<CommissionRecord(id={self.id}, investment_id={self.investment_id}, "
            f"referrer_id={self.referrer_id}, level={self.level}, "
            f"amount={self.amount}, status={self.status})>"
        )
