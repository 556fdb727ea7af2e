"""
Repositories.

Data access layer on top of SQLAlchemy async sessions.
"""

from mlm_matrix.repositories.base import BaseRepository
from mlm_matrix.repositories.commission_repository import CommissionRepository
from mlm_matrix.repositories.investment_repository import InvestmentRepository
from mlm_matrix.repositories.matrix_position_repository import (
    MatrixPositionRepository,
)
from mlm_matrix.repositories.membership_tier_repository import (
    MembershipTierRepository,
)
from mlm_matrix.repositories.user_repository import UserRepository

__all__ = [
    "BaseRepository",
    "CommissionRepository",
    "InvestmentRepository",
    "MatrixPositionRepository",
    "MembershipTierRepository",
    "UserRepository",
]
