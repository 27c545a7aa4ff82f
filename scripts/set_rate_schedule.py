#!/usr/bin/env python3
"""
Script to replace the active commission rate schedule.

Usage:
    python scripts/set_rate_schedule.py RATE [RATE ...] [--max-total-rate N]
        [--created-by ID] [--check]

Example:
    python scripts/set_rate_schedule.py 10 2.5 2.5 --max-total-rate 25

Rates are percentages in level order (level 0 = direct seller). The old
schedule is deactivated, not edited, so sales recorded under it keep
their rates.
"""

import asyncio
import sys
from decimal import Decimal
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from commission_engine.config.database import (
    close_db,
    create_engine,
    create_session_factory,
)
from commission_engine.config.logging_config import configure_logging
from commission_engine.config.settings import Settings
from commission_engine.services.rate_table import CommissionRateTable
from commission_engine.utils.exceptions import InvalidScheduleError


async def set_rate_schedule(
    rates: list[Decimal],
    max_total_rate: Decimal | None,
    created_by: int | None,
) -> int:
    """
    Replace the active schedule.

    Args:
        rates: Percentages in level order
        max_total_rate: Cap, settings default when omitted
        created_by: Operator reference

    Returns:
        Process exit code
    """
    settings = Settings()
    configure_logging(settings)

    engine = create_engine(settings)
    session_factory = create_session_factory(engine)
    try:
        async with session_factory() as session:
            rate_table = CommissionRateTable(session)
            try:
                schedule = await rate_table.replace_schedule(
                    rates,
                    max_total_rate or settings.default_max_total_rate,
                    created_by=created_by,
                )
            except InvalidScheduleError as e:
                await session.rollback()
                print(f"❌ {e}")
                return 1
            await session.commit()

            validation = await rate_table.validate_schedule()
    finally:
        await close_db(engine)

    print(
        f"✅ Schedule v{schedule.version} active: "
        f"{', '.join(f'L{i}={r}%' for i, r in enumerate(schedule.rates))} "
        f"(max {schedule.max_total_rate}%)"
    )
    for error in validation.errors:
        print(f"⚠️  {error}")
    return 0


async def check_rate_schedule() -> int:
    """Print the active schedule and its validation result."""
    settings = Settings()
    configure_logging(settings)

    engine = create_engine(settings)
    session_factory = create_session_factory(engine)
    try:
        async with session_factory() as session:
            validation = await CommissionRateTable(session).validate_schedule()
    finally:
        await close_db(engine)

    if validation.valid:
        print(
            f"✅ {validation.levels} levels, total {validation.total_rate}% "
            f"of max {validation.max_total_rate}%"
        )
        return 0

    for error in validation.errors:
        print(f"❌ {error}")
    return 1


async def main() -> int:
    """Main entry point."""
    import argparse

    parser = argparse.ArgumentParser(
        description="Replace the active commission rate schedule"
    )
    parser.add_argument(
        "rates",
        type=Decimal,
        nargs="*",
        help="Percentages in level order",
    )
    parser.add_argument(
        "--max-total-rate",
        type=Decimal,
        default=None,
        help="Cap on the summed rate of one sale",
    )
    parser.add_argument(
        "--created-by",
        type=int,
        default=None,
        help="Operator reference stored with the schedule",
    )
    parser.add_argument(
        "--check",
        action="store_true",
        help="Only validate the active schedule",
    )
    args = parser.parse_args()

    if args.check:
        return await check_rate_schedule()
    if not args.rates:
        parser.error("at least one rate is required")

    return await set_rate_schedule(
        args.rates, args.max_total_rate, args.created_by
    )


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
