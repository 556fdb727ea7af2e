"""
Model enumerations.

String enums stored as plain VARCHAR columns.
"""

from enum import Enum


class PlacementType(str, Enum):
    """How a matrix position was allocated."""

    ROOT = "root"
    DIRECT = "direct"
    SPILLOVER = "spillover"


class InvestmentStatus(str, Enum):
    """Investment lifecycle status."""

    PENDING = "pending"
    ACTIVE = "active"
    PAID = "paid"
    REJECTED = "rejected"
    WITHDRAWN = "withdrawn"


class CommissionStatus(str, Enum):
    """Commission payout status."""

    PENDING = "pending"
    PAID = "paid"
    REJECTED = "rejected"


class CommissionType(str, Enum):
    """Commission origin."""

    MATRIX = "matrix"
