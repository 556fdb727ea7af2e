"""
Background tasks.

Worker entry point (`dramatiq jobs.tasks`): configures logging and registers
the actors with the configured broker.
"""

from mlm_matrix.utils.logging import setup_logging

setup_logging()

from jobs.broker import broker  # noqa: F401, E402
from jobs.tasks.matrix_commissions import process_investment_commissions  # noqa: E402

__all__ = ["process_investment_commissions"]
