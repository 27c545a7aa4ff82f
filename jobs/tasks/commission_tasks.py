"""
Commission tasks.

Run distribution and bulk release outside the request path. State
conflicts and invalid input are final outcomes, so they are not retried.
"""

import asyncio
from typing import Any

import dramatiq
from loguru import logger

from commission_engine.config.database import (
    create_engine,
    create_session_factory,
)
from commission_engine.config.settings import Settings
from commission_engine.services.sale_lifecycle import SaleLifecycleCoordinator
from commission_engine.utils.exceptions import (
    InvalidInputError,
    StateConflictError,
)


@dramatiq.actor(
    max_retries=3,
    time_limit=120_000,  # 2 min timeout
    throws=(InvalidInputError, StateConflictError),
)
def distribute_sale_commissions(sale_id: int) -> dict[str, Any]:
    """
    Distribute commissions for a verified sale.

    Args:
        sale_id: Sale ID

    Returns:
        Dict with sale_id, records count and total amount
    """
    logger.info(f"Distributing commissions for sale {sale_id}...")
    return asyncio.run(_distribute_async(sale_id))


@dramatiq.actor(max_retries=3, time_limit=600_000)  # 10 min timeout
def release_sale_commissions(sale_ids: list[int]) -> list[dict[str, Any]]:
    """
    Release commissions for several sales.

    Each sale is released independently; failures are reported per sale.

    Args:
        sale_ids: Sale IDs

    Returns:
        One result dict per sale
    """
    logger.info(f"Releasing commissions for {len(sale_ids)} sales...")
    return asyncio.run(_release_async(sale_ids))


async def _distribute_async(sale_id: int) -> dict[str, Any]:
    """Async implementation of commission distribution."""
    settings = Settings()
    engine = create_engine(settings, null_pool=True)
    session_factory = create_session_factory(engine)

    try:
        async with session_factory() as session:
            coordinator = SaleLifecycleCoordinator(session, settings)
            records = await coordinator.distribute_commissions(sale_id)

            return {
                "sale_id": sale_id,
                "records": len(records),
                "total_amount": str(
                    sum(r.commission_amount for r in records)
                ),
            }
    finally:
        await engine.dispose()


async def _release_async(sale_ids: list[int]) -> list[dict[str, Any]]:
    """Async implementation of bulk commission release."""
    settings = Settings()
    engine = create_engine(settings, null_pool=True)
    session_factory = create_session_factory(engine)

    try:
        async with session_factory() as session:
            coordinator = SaleLifecycleCoordinator(session, settings)
            results = await coordinator.bulk_release(sale_ids)
    finally:
        await engine.dispose()

    failed = [r for r in results if not r.success]
    if failed:
        logger.warning(
            "Some commission releases failed",
            extra={
                "failed_sale_ids": [r.sale_id for r in failed],
                "errors": [r.error for r in failed],
            },
        )

    return [
        {"sale_id": r.sale_id, "success": r.success, "error": r.error}
        for r in results
    ]
