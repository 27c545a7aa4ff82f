"""
Database configuration.

Provides async SQLAlchemy engine and session factory builders.
"""

from loguru import logger
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from commission_engine.config.settings import Settings
from commission_engine.models.base import Base


def create_engine(
    settings: Settings, null_pool: bool = False
) -> AsyncEngine:
    """
    Create async engine for the configured database.

    Args:
        settings: Application settings
        null_pool: Disable pooling (one event loop per task run)

    Returns:
        AsyncEngine
    """
    if null_pool:
        return create_async_engine(
            settings.database_url,
            echo=settings.database_echo,
            poolclass=NullPool,
            connect_args={"timeout": 30} if settings.is_sqlite else {},
        )

    if settings.is_sqlite:
        # Writers wait on the file lock instead of failing immediately
        return create_async_engine(
            settings.database_url,
            echo=settings.database_echo,
            connect_args={"timeout": 30},
        )

    return create_async_engine(
        settings.database_url,
        echo=settings.database_echo,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
        pool_pre_ping=True,
        pool_recycle=300,
        pool_timeout=30,
    )


def create_session_factory(
    engine: AsyncEngine,
) -> async_sessionmaker[AsyncSession]:
    """Create async session factory bound to engine."""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


async def init_db(engine: AsyncEngine) -> None:
    """
    Initialize database (create tables if needed).

    Production deployments run the Alembic migration instead.
    """
    # Register all mappers on Base.metadata
    import commission_engine.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database initialized")


async def close_db(engine: AsyncEngine) -> None:
    """Close database connection."""
    await engine.dispose()
    logger.info("Database connection closed")
