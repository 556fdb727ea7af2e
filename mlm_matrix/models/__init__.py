"""
Database models.

Exports all SQLAlchemy models for easy imports.
"""

from mlm_matrix.models.base import Base
from mlm_matrix.models.commission_record import CommissionRecord
from mlm_matrix.models.enums import (
    CommissionStatus,
    CommissionType,
    InvestmentStatus,
    PlacementType,
)
from mlm_matrix.models.investment import Investment
from mlm_matrix.models.matrix_position import MatrixPosition
from mlm_matrix.models.membership_tier import MembershipTier
from mlm_matrix.models.user import User

__all__ = [
    # Base
    "Base",
    # Enums
    "CommissionStatus",
    "CommissionType",
    "InvestmentStatus",
    "PlacementType",
    # Core Models
    "User",
    "MembershipTier",
    "Investment",
    "MatrixPosition",
    "CommissionRecord",
]
