"""
Logging configuration.

Installs loguru sinks according to settings.
"""

import sys

from loguru import logger

from commission_engine.config.settings import Settings


def configure_logging(settings: Settings) -> None:
    """
    Configure loguru sinks.

    Args:
        settings: Application settings
    """
    logger.remove()
    logger.add(
        sys.stderr,
        level=settings.log_level,
        backtrace=settings.debug,
        diagnose=settings.debug,
    )

    if settings.log_file:
        logger.add(
            settings.log_file,
            rotation="1 day",
            retention="7 days",
            level=settings.log_level,
        )

    logger.debug(
        "Logging configured",
        extra={
            "level": settings.log_level,
            "file": settings.log_file,
            "environment": settings.environment,
        },
    )
