"""
Matrix position model.

One row per placement in the 3x3 referral matrix. `sponsor_id` points at the
user directly above the position (the placement parent), `level` is the
absolute depth in the global tree (network roots sit at level 0).

Active-only partial unique indexes make the fan-out cap and the
one-active-position-per-user rule hold under concurrent writers:
- (user_id) where active
- (sponsor_id, level, position) where active
"""

from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from mlm_matrix.models.base import Base
from mlm_matrix.models.enums import PlacementType

if TYPE_CHECKING:
    from mlm_matrix.models.user import User


class MatrixPosition(Base):
    """Matrix position model - placements in the referral matrix."""

    __tablename__ = "matrix_positions"
    __table_args__ = (
        CheckConstraint(
            'position >= 1 AND position <= 3',
            name='check_matrix_position_slot_range'
        ),
        CheckConstraint(
            '(sponsor_id IS NULL AND level = 0) OR '
            '(sponsor_id IS NOT NULL AND level >= 1)',
            name='check_matrix_position_root_level'
        ),
        CheckConstraint(
            'sponsor_id IS NULL OR sponsor_id <> user_id',
            name='check_matrix_position_not_self_sponsored'
        ),
        Index(
            'uq_matrix_positions_active_user',
            'user_id',
            unique=True,
            postgresql_where=text('is_active'),
            sqlite_where=text('is_active = 1'),
        ),
        Index(
            'uq_matrix_positions_active_slot',
            'sponsor_id',
            'level',
            'position',
            unique=True,
            postgresql_where=text('is_active'),
            sqlite_where=text('is_active = 1'),
        ),
        Index('idx_matrix_positions_sponsor_level', 'sponsor_id', 'level'),
        Index('idx_matrix_positions_spillover_from', 'spillover_from_id'),
    )

    # Primary key
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    # Placed participant
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    # Placement parent (NULL for network roots)
    sponsor_id: Mapped[int | None] = mapped_column(
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=True
    )

    level: Mapped[int] = mapped_column(
        Integer, nullable=False
    )  # absolute depth, 0 = root
    position: Mapped[int] = mapped_column(
        Integer, nullable=False
    )  # slot 1-3 under the sponsor

    is_active: Mapped[bool] = mapped_column(
        Boolean, default=True, nullable=False
    )

    placement_type: Mapped[str] = mapped_column(
        String(20), nullable=False, default=PlacementType.DIRECT.value
    )  # root, direct, spillover

    # Original sponsor whose full window overflowed into this slot
    spillover_from_id: Mapped[int | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True
    )

    placed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False
    )
    deactivated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # Relationships
    user: Mapped["User"] = relationship(
        "User", foreign_keys=[user_id]
    )
    sponsor: Mapped["User | None"] = relationship(
        "User", foreign_keys=[sponsor_id]
    )

    @property
    def is_root(self) -> bool:
        """True for network roots (no sponsor)."""
        return self.sponsor_id is None

    @property
    def is_spillover(self) -> bool:
        """True if the slot was allocated by spillover search."""
        return self.placement_type == PlacementType.SPILLOVER.value

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<MatrixPosition(id={self.id}, user_id={self.user_id}, "
            f"sponsor_id={self.sponsor_id}, level={self.level}, "
            f"position={self.position}, type={self.placement_type}, "
            f"active={self.is_active})>"
        )
