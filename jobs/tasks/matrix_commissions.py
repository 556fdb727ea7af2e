"""
Matrix commission task.

Runs placement and commission posting for an approved investment outside
the request path. Transient failures are retried by the broker's Retries
middleware; business errors are logged and surfaced without retry.
"""

import dramatiq
from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from jobs.async_runner import create_local_session, run_async
from jobs.broker import broker  # noqa: F401
from mlm_matrix.services.matrix import (
    InvestmentProcessingResult,
    ReferralMatrixService,
)
from mlm_matrix.utils.exceptions import is_retryable


@dramatiq.actor(queue_name="matrix", time_limit=120_000)  # 2 min timeout
def process_investment_commissions(investment_id: int) -> None:
    """
    Place the investor and post matrix commissions.

    Args:
        investment_id: Approved investment ID
    """
    logger.info(
        f"Processing matrix commissions for investment {investment_id}",
        extra={"investment_id": investment_id},
    )

    try:
        result = run_async(process_investment_async(investment_id))
    except Exception as e:
        if is_retryable(e):
            logger.warning(
                f"Transient failure for investment {investment_id}, "
                f"will retry: {e}",
                extra={"investment_id": investment_id},
            )
        else:
            logger.error(
                f"Matrix commission processing failed for investment "
                f"{investment_id}: {e}",
                extra={"investment_id": investment_id},
            )
        raise

    logger.info(
        f"Investment {investment_id}: {len(result.commissions)} commissions, "
        f"total {result.total_commission}",
        extra={"investment_id": investment_id},
    )


async def process_investment_async(
    investment_id: int,
    session_maker: async_sessionmaker[AsyncSession] | None = None,
) -> InvestmentProcessingResult:
    """
    Async implementation of investment processing.

    Args:
        investment_id: Investment ID
        session_maker: Session factory (a local one per call if None)

    Returns:
        InvestmentProcessingResult
    """
    if session_maker is not None:
        async with session_maker() as session:
            return await ReferralMatrixService(session).process_investment(
                investment_id
            )

    async with create_local_session() as session:
        return await ReferralMatrixService(session).process_investment(
            investment_id
        )
