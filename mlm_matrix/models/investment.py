"""
Investment model.

Read model for the investment events that trigger commissions. The engine
never changes an investment; the approval workflow owns its status.
"""

from datetime import UTC, datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from mlm_matrix.models.base import Base
from mlm_matrix.models.enums import InvestmentStatus
from mlm_matrix.models.types import MoneyType

if TYPE_CHECKING:
    from mlm_matrix.models.user import User


class Investment(Base):
    """Investment model - qualifying financial events."""

    __tablename__ = "investments"
    __table_args__ = (
        CheckConstraint(
            'amount >= 0', name='check_investment_amount_non_negative'
        ),
    )

    # Primary key
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    # Investor
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    amount: Mapped[Decimal] = mapped_column(
        MoneyType, nullable=False
    )

    # Status
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=InvestmentStatus.PENDING.value,
        index=True
    )  # pending, active, paid, rejected, withdrawn

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False
    )

    # Relationships
    user: Mapped["User"] = relationship("User")

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<Investment(id={self.id}, user_id={self.user_id}, "
            f"amount={self.amount}, status={self.status})>"
        )
