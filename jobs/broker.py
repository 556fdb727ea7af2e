"""
Dramatiq broker configuration.

Redis-based message broker for task queue. The test environment uses an
in-memory StubBroker so actors can be sent without a Redis server.
"""

import dramatiq
from dramatiq.brokers.redis import RedisBroker
from dramatiq.brokers.stub import StubBroker
from dramatiq.middleware import CurrentMessage, Retries, ShutdownNotifications
from loguru import logger

from mlm_matrix.config.settings import settings
from mlm_matrix.utils.exceptions import is_retryable


MAX_RETRIES = 3


def should_retry(retries_so_far: int, exception: BaseException) -> bool:
    """Retry transient failures only (slot races, database hiccups)."""
    return retries_so_far < MAX_RETRIES and is_retryable(exception)


if settings.environment == "test":
    broker = StubBroker()
    broker.emit_after("process_boot")
else:
    broker = RedisBroker(
        host=settings.redis_host,
        port=settings.redis_port,
        password=settings.redis_password if settings.redis_password else None,
        db=settings.redis_db,
    )

# ShutdownNotifications: Allows workers to gracefully shutdown
# CurrentMessage: Provides access to current message in actors
# Retries: Exponential backoff for transient failures
broker.add_middleware(ShutdownNotifications())
broker.add_middleware(CurrentMessage())
broker.add_middleware(
    Retries(
        max_retries=MAX_RETRIES,
        min_backoff=1000,  # 1 second
        max_backoff=60000,  # 1 minute
        retry_when=should_retry,
    )
)

# Set as default broker
dramatiq.set_broker(broker)

logger.info(
    f"Dramatiq broker initialized: {type(broker).__name__} "
    f"(environment={settings.environment})"
)
