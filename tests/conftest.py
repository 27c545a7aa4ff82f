"""
Pytest configuration and shared fixtures.

Every test gets its own SQLite database file unless TEST_DATABASE_URL
points at a PostgreSQL test database.
"""

import os
import secrets
from collections.abc import AsyncGenerator, Callable
from decimal import Decimal
from pathlib import Path
from typing import Any

import dramatiq
import pytest
import pytest_asyncio
from dramatiq.brokers.stub import StubBroker
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
)

# Actors bind to the default broker when declared, so this must run
# before any jobs.tasks import.
stub_broker = StubBroker()
stub_broker.emit_after("process_boot")
dramatiq.set_broker(stub_broker)

from commission_engine.config.database import (  # noqa: E402
    create_engine,
    create_session_factory,
)
from commission_engine.config.settings import Settings  # noqa: E402
from commission_engine.models import Affiliate, Base  # noqa: E402
from commission_engine.models.enums import (  # noqa: E402
    PaymentMethod,
    VerificationStatus,
)
from commission_engine.services.rate_table import (  # noqa: E402
    CommissionRateTable,
    RateSchedule,
)
from commission_engine.services.sale_lifecycle import (  # noqa: E402
    SaleLifecycleCoordinator,
)

# ==================== PYTEST CONFIGURATION ====================


def pytest_configure(config: Any) -> None:
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers",
        "slow: marks tests as slow (deselect with '-m \"not slow\"')",
    )
    config.addinivalue_line("markers", "critical: marks tests as critical")
    config.addinivalue_line("markers", "integration: marks integration tests")


# ==================== SETTINGS ====================


@pytest.fixture
def database_url(tmp_path: Path) -> str:
    """Database URL for one test."""
    return os.getenv(
        "TEST_DATABASE_URL",
        f"sqlite+aiosqlite:///{tmp_path / 'commission_engine.db'}",
    )


@pytest.fixture
def settings(
    database_url: str,  # pylint: disable=redefined-outer-name
) -> Settings:
    """Settings for tests (ignores any local .env file)."""
    return Settings(
        _env_file=None,
        database_url=database_url,
        environment="test",
        log_level="DEBUG",
    )


@pytest.fixture
def broker() -> StubBroker:
    """Stub broker with empty queues."""
    stub_broker.flush_all()
    return stub_broker


# ==================== DATABASE FIXTURES ====================


@pytest_asyncio.fixture
async def async_engine(
    settings: Settings,  # pylint: disable=redefined-outer-name
) -> AsyncGenerator[AsyncEngine, None]:
    """Create async engine with a fresh schema."""
    engine = create_engine(settings)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def session_factory(
    async_engine: AsyncEngine,  # pylint: disable=redefined-outer-name
) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the test engine."""
    return create_session_factory(async_engine)


@pytest_asyncio.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],  # pylint: disable=redefined-outer-name
) -> AsyncGenerator[AsyncSession, None]:
    """
    Create database session for tests.

    Yields:
        AsyncSession: Database session
    """
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def coordinator(
    db_session: AsyncSession,  # pylint: disable=redefined-outer-name
    settings: Settings,  # pylint: disable=redefined-outer-name
) -> SaleLifecycleCoordinator:
    """Sale lifecycle coordinator on the test session."""
    return SaleLifecycleCoordinator(db_session, settings)


# ==================== HELPERS ====================


@pytest.fixture
def create_affiliate_helper(
    db_session: AsyncSession,  # pylint: disable=redefined-outer-name
) -> Callable[..., Any]:
    """Helper function to create affiliates directly."""

    async def _create_affiliate(
        parent_affiliate_id: int | None = None,
        is_active: bool = True,
        **kwargs: Any,
    ) -> Affiliate:
        kwargs.setdefault("referral_code", secrets.token_hex(6).upper())
        affiliate = Affiliate(
            parent_affiliate_id=parent_affiliate_id,
            is_active=is_active,
            **kwargs,
        )
        db_session.add(affiliate)
        await db_session.commit()
        return affiliate

    return _create_affiliate


@pytest.fixture
def affiliate_chain_helper(
    create_affiliate_helper: Callable[..., Any],  # pylint: disable=redefined-outer-name
) -> Callable[..., Any]:
    """
    Helper function to create a referral chain.

    Returns affiliate IDs ordered seller first, then its upline
    (nearest parent first).
    """

    async def _create_chain(depth: int) -> list[int]:
        ids: list[int] = []
        parent_id = None
        for _ in range(depth):
            affiliate = await create_affiliate_helper(
                parent_affiliate_id=parent_id
            )
            parent_id = affiliate.id
            ids.append(affiliate.id)
        return list(reversed(ids))

    return _create_chain


@pytest.fixture
def rate_schedule_helper(
    db_session: AsyncSession,  # pylint: disable=redefined-outer-name
) -> Callable[..., Any]:
    """Helper function to install a rate schedule."""

    async def _set_schedule(
        rates: list[str], max_total_rate: str = "25.00"
    ) -> RateSchedule:
        schedule = await CommissionRateTable(db_session).replace_schedule(
            [Decimal(r) for r in rates], Decimal(max_total_rate)
        )
        await db_session.commit()
        return schedule

    return _set_schedule


@pytest.fixture
def verified_sale_helper(
    coordinator: SaleLifecycleCoordinator,  # pylint: disable=redefined-outer-name
) -> Callable[..., Any]:
    """Helper function to record and approve a sale, returning its ID."""

    async def _create_verified_sale(
        affiliate_id: int,
        amount: str = "1000.00",
        sale_reference: str | None = None,
    ) -> int:
        sale = await coordinator.record_sale(
            affiliate_id=affiliate_id,
            sale_reference=sale_reference or f"ORDER-{secrets.token_hex(4)}",
            amount=Decimal(amount),
            payment_method=PaymentMethod.CASH,
        )
        sale_id = sale.id
        await coordinator.verify_sale(sale_id, VerificationStatus.VERIFIED)
        return sale_id

    return _create_verified_sale
