#!/usr/bin/env python3
"""
Script to create the commission engine tables.

Usage:
    python scripts/init_db.py [--seed-default-schedule]

Production deployments apply the Alembic migration instead; this script is
meant for local SQLite databases and fresh environments.
"""

import asyncio
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from loguru import logger

from commission_engine.config.constants import DEFAULT_LEVEL_RATES
from commission_engine.config.database import (
    close_db,
    create_engine,
    create_session_factory,
    init_db,
)
from commission_engine.config.logging_config import configure_logging
from commission_engine.config.settings import Settings
from commission_engine.services.rate_table import CommissionRateTable


async def initialize(seed_default_schedule: bool) -> None:
    """
    Create tables and optionally seed the default rate schedule.

    Args:
        seed_default_schedule: Insert the default schedule when none exists
    """
    settings = Settings()
    configure_logging(settings)

    engine = create_engine(settings)
    try:
        await init_db(engine)

        if not seed_default_schedule:
            return

        session_factory = create_session_factory(engine)
        async with session_factory() as session:
            rate_table = CommissionRateTable(session)
            if await rate_table.active_version() is not None:
                logger.info("Active rate schedule exists, seeding skipped")
                return

            schedule = await rate_table.replace_schedule(
                DEFAULT_LEVEL_RATES, settings.default_max_total_rate
            )
            await session.commit()
            print(
                f"✅ Default schedule v{schedule.version} seeded: "
                f"{', '.join(str(r) for r in schedule.rates)} "
                f"(max {schedule.max_total_rate}%)"
            )
    finally:
        await close_db(engine)


async def main() -> None:
    """Main entry point."""
    import argparse

    parser = argparse.ArgumentParser(
        description="Create commission engine tables"
    )
    parser.add_argument(
        "--seed-default-schedule",
        action="store_true",
        help="Insert the default commission schedule if none is active",
    )
    args = parser.parse_args()

    await initialize(args.seed_default_schedule)


if __name__ == "__main__":
    asyncio.run(main())
