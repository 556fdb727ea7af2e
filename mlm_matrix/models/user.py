"""
User model.

Represents a network participant (investor, sponsor, or both).
"""

from datetime import UTC, datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    String,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from mlm_matrix.models.base import Base
from mlm_matrix.models.types import MoneyType

if TYPE_CHECKING:
    from mlm_matrix.models.membership_tier import MembershipTier


class User(Base):
    """User model - network participants."""

    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint(
            'referrer_id IS NULL OR referrer_id <> id',
            name='check_user_not_self_referred'
        ),
        CheckConstraint(
            'downline_count >= 0',
            name='check_user_downline_count_non_negative'
        ),
        CheckConstraint(
            'downline_volume >= 0',
            name='check_user_downline_volume_non_negative'
        ),
    )

    # Primary key
    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )

    username: Mapped[str] = mapped_column(
        String(255), nullable=False, unique=True, index=True
    )
    email: Mapped[str | None] = mapped_column(
        String(255), nullable=True
    )

    # Referral (who invited this user, independent of matrix placement)
    referrer_id: Mapped[int | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )

    # Current membership tier
    membership_tier_id: Mapped[int | None] = mapped_column(
        ForeignKey("membership_tiers.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )

    # Status flags
    is_active: Mapped[bool] = mapped_column(
        Boolean, default=True, nullable=False
    )

    # Denormalized network caches (recomputed by NetworkTraversal)
    downline_count: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
        comment="Active positions within the 3-level matrix window"
    )
    downline_volume: Mapped[Decimal] = mapped_column(
        MoneyType,
        default=Decimal("0"),
        nullable=False,
        comment="Eligible investment volume within the 3-level matrix window"
    )

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
        nullable=False
    )

    # Relationships
    referrer: Mapped[Optional["User"]] = relationship(
        "User",
        remote_side=[id],
        foreign_keys=[referrer_id],
    )
    membership_tier: Mapped[Optional["MembershipTier"]] = relationship(
        "MembershipTier",
        lazy="joined",
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<User(id={self.id}, username={self.username}, "
            f"referrer_id={self.referrer_id})>"
        )
