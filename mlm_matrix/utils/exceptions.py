"""
Exception handling utilities.

Defines the matrix engine's typed errors and categorizes exceptions by
handling strategy. "Already placed" and "duplicate commission" are not
errors: they are reported through return values and logs.
"""

from sqlalchemy.exc import OperationalError


class MatrixError(Exception):
    """Base exception for matrix placement and commission errors."""
    pass


class ParticipantNotFoundError(MatrixError):
    """Raised when a referenced user does not exist."""

    def __init__(self, user_id: int) -> None:
        self.user_id = user_id
        super().__init__(f"Participant {user_id} not found")


class ParticipantInactiveError(MatrixError):
    """Raised when a deactivated user would receive a new matrix position."""

    def __init__(self, user_id: int) -> None:
        self.user_id = user_id
        super().__init__(f"Participant {user_id} is inactive")


class InvalidSponsorError(MatrixError):
    """Raised when a sponsor cannot receive placements."""

    def __init__(self, sponsor_id: int, reason: str) -> None:
        self.sponsor_id = sponsor_id
        self.reason = reason
        super().__init__(f"Invalid sponsor {sponsor_id}: {reason}")


class SponsorInactiveError(InvalidSponsorError):
    """Raised when the sponsor or its matrix position is deactivated."""

    def __init__(self, sponsor_id: int) -> None:
        super().__init__(sponsor_id, "sponsor is inactive")


class NoCapacityWithinWindowError(MatrixError):
    """Raised when spillover search exhausts the sponsor's bounded subtree."""

    def __init__(self, sponsor_id: int, max_depth: int) -> None:
        self.sponsor_id = sponsor_id
        self.max_depth = max_depth
        super().__init__(
            f"No free matrix slot within {max_depth} levels of sponsor {sponsor_id}"
        )


class PlacementConflictError(MatrixError):
    """Raised when concurrent writers kept winning the selected slot."""

    def __init__(self, new_user_id: int, attempts: int) -> None:
        self.new_user_id = new_user_id
        self.attempts = attempts
        super().__init__(
            f"Placement of user {new_user_id} lost the slot race "
            f"{attempts} times"
        )


class MatrixIntegrityError(MatrixError):
    """Raised when stored matrix data violates a structural invariant."""
    pass


class InvestmentNotFoundError(MatrixError):
    """Raised when an investment does not exist."""

    def __init__(self, investment_id: int) -> None:
        self.investment_id = investment_id
        super().__init__(f"Investment {investment_id} not found")


class InvestmentNotEligibleError(MatrixError):
    """Raised when an investment's status does not trigger commissions."""

    def __init__(self, investment_id: int, status: str) -> None:
        self.investment_id = investment_id
        self.status = status
        super().__init__(
            f"Investment {investment_id} has status '{status}' "
            "which does not trigger commissions"
        )


# Exception categories based on handling strategy

# Transient - safe to retry the whole triggering event
RETRYABLE = (
    PlacementConflictError,  # Slot race lost on every attempt
    OperationalError,        # Lock timeouts, dropped connections
)

# Must raise - business rule violations, retrying cannot help
MUST_RAISE = (
    ParticipantNotFoundError,
    ParticipantInactiveError,
    InvalidSponsorError,
    NoCapacityWithinWindowError,
    MatrixIntegrityError,
    InvestmentNotFoundError,
    InvestmentNotEligibleError,
)


def is_retryable(exc: BaseException) -> bool:
    """
    Check if exception is transient and the operation may be retried.

    Args:
        exc: Exception to check

    Returns:
        True if exception is retryable
    """
    return isinstance(exc, RETRYABLE)


def must_raise(exc: BaseException) -> bool:
    """
    Check if exception must be surfaced to the caller unchanged.

    Args:
        exc: Exception to check

    Returns:
        True if exception must be raised
    """
    return isinstance(exc, MUST_RAISE)
