"""
Unit tests for the operator scripts.
"""

import asyncio
import importlib.util
from decimal import Decimal
from pathlib import Path

import pytest

from commission_engine.config.database import (
    close_db,
    create_engine,
    create_session_factory,
)
from commission_engine.config.settings import Settings
from commission_engine.services.rate_table import CommissionRateTable

SCRIPTS_DIR = Path(__file__).resolve().parents[2] / "scripts"


def _load_script(name):
    spec = importlib.util.spec_from_file_location(name, SCRIPTS_DIR / f"{name}.py")
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


async def _active_schedule(settings):
    engine = create_engine(settings)
    try:
        async with create_session_factory(engine)() as session:
            return await CommissionRateTable(session).active_schedule()
    finally:
        await close_db(engine)


@pytest.fixture
def script_settings(tmp_path, monkeypatch):
    """Environment for scripts that build their own Settings."""
    monkeypatch.setenv(
        "DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'scripts.db'}"
    )
    monkeypatch.setenv("ENVIRONMENT", "test")
    monkeypatch.setenv("DEBUG", "false")
    monkeypatch.delenv("LOG_FILE", raising=False)
    return Settings(_env_file=None)


def test_init_db_seeds_default_schedule(script_settings):  # pylint: disable=redefined-outer-name
    """init_db creates tables and seeds the default schedule once."""
    init_db_script = _load_script("init_db")

    asyncio.run(init_db_script.initialize(seed_default_schedule=True))
    asyncio.run(init_db_script.initialize(seed_default_schedule=True))

    schedule = asyncio.run(_active_schedule(script_settings))
    assert schedule.version == 1
    assert schedule.rates == (
        Decimal("10.00"),
        Decimal("2.50"),
        Decimal("2.50"),
    )
    assert schedule.max_total_rate == Decimal("25.00")


def test_set_rate_schedule(script_settings, capsys):  # pylint: disable=redefined-outer-name
    """set_rate_schedule installs a new version and reports cap overruns."""
    asyncio.run(_load_script("init_db").initialize(seed_default_schedule=False))
    script = _load_script("set_rate_schedule")

    exit_code = asyncio.run(
        script.set_rate_schedule(
            [Decimal("20"), Decimal("10")], Decimal("25"), created_by=1
        )
    )

    assert exit_code == 0
    output = capsys.readouterr().out
    assert "Schedule v1 active" in output
    assert "exceeds maximum" in output
    assert asyncio.run(script.check_rate_schedule()) == 1

    assert asyncio.run(
        script.set_rate_schedule([Decimal("-1")], None, created_by=None)
    ) == 1
    schedule = asyncio.run(_active_schedule(script_settings))
    assert schedule.version == 1
    assert schedule.rates == (Decimal("20.00"), Decimal("10.00"))
