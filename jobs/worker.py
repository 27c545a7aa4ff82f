"""
Dramatiq worker entry point.

Starts the Dramatiq worker to process background tasks.
"""

from loguru import logger

from commission_engine.config.logging_config import configure_logging
from commission_engine.config.settings import Settings
from jobs.broker import setup_broker

settings = Settings()
configure_logging(settings)
broker = setup_broker(settings)

# Import tasks to register them with the broker
from jobs.tasks import commission_tasks  # noqa: E402, F401

logger.info("Dramatiq worker initialized with all tasks")

# Worker is started via CLI: dramatiq jobs.worker
# Command: dramatiq jobs.worker -p 4 -t 4
# -p: number of processes
# -t: number of threads per process
