"""
Dramatiq broker configuration.

Redis-based message broker for task queue.
"""

import dramatiq
from dramatiq.brokers.redis import RedisBroker
from loguru import logger

from commission_engine.config.settings import Settings


def setup_broker(settings: Settings) -> RedisBroker:
    """
    Create the Redis broker and make it the default broker.

    Must run before task modules are imported, since actors bind to the
    default broker when they are declared.

    Args:
        settings: Application settings

    Returns:
        Configured broker
    """
    broker = RedisBroker(
        host=settings.redis_host,
        port=settings.redis_port,
        password=settings.redis_password if settings.redis_password else None,
        db=settings.redis_db,
    )
    dramatiq.set_broker(broker)

    logger.info(
        f"Dramatiq broker initialized: "
        f"redis://{settings.redis_host}:{settings.redis_port}/{settings.redis_db}"
    )
    return broker
