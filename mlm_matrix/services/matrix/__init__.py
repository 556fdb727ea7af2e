"""
Referral matrix services package.

Contains modular services for the 3x3 matrix:
- tier_rates: Tier rate table and position multipliers
- placement_engine: Direct and spillover placement
- network_traversal: Bounded views, downline counts and upline walks
- commission_calculator: Commission calculation and posting
- statistics: Occupancy statistics and performance metrics
- matrix_service: Facade used by the investment workflow
"""

from mlm_matrix.services.matrix.commission_calculator import (
    CommissionCalculator,
    CommissionLineItem,
)
from mlm_matrix.services.matrix.matrix_service import (
    InvestmentProcessingResult,
    ReferralMatrixService,
)
from mlm_matrix.services.matrix.network_traversal import (
    MatrixNode,
    MatrixTree,
    NetworkTraversal,
    UplineMember,
)
from mlm_matrix.services.matrix.placement_engine import (
    MatrixPlacementEngine,
    PlacementResult,
    SlotChoice,
)
from mlm_matrix.services.matrix.statistics import MatrixStatisticsManager
from mlm_matrix.services.matrix.tier_rates import TierRates, TierRateTable


__all__ = [
    # Rates
    "TierRates",
    "TierRateTable",
    # Placement
    "MatrixPlacementEngine",
    "PlacementResult",
    "SlotChoice",
    # Traversal
    "MatrixNode",
    "MatrixTree",
    "NetworkTraversal",
    "UplineMember",
    # Commissions
    "CommissionCalculator",
    "CommissionLineItem",
    # Statistics
    "MatrixStatisticsManager",
    # Facade
    "InvestmentProcessingResult",
    "ReferralMatrixService",
]
