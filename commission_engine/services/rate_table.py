"""
Commission rate table.

Supplies the per-level percentage schedule and the global cap, and
administers versioned replacement of the schedule.
"""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from decimal import Decimal, InvalidOperation

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from commission_engine.config.constants import HUNDRED, RATE_QUANTUM, ZERO
from commission_engine.models.commission_rate_setting import (
    CommissionRateSetting,
)
from commission_engine.repositories.commission_rate_setting_repository import (
    CommissionRateSettingRepository,
)
from commission_engine.utils.exceptions import (
    InvalidScheduleError,
    NoActiveScheduleError,
)


@dataclass(frozen=True)
class RateSchedule:
    """
    Ordered commission schedule.

    Attributes:
        rates: Percentage per level, index = level
        max_total_rate: Cap on the summed percentage of one distribution
        version: Schedule version, None for ad-hoc schedules
    """

    rates: tuple[Decimal, ...]
    max_total_rate: Decimal
    version: int | None = None

    def __len__(self) -> int:
        return len(self.rates)

    @property
    def configured_total(self) -> Decimal:
        """Sum of all configured level rates."""
        return sum(self.rates, ZERO)


@dataclass
class ScheduleValidation:
    """Result of checking the active schedule against its cap."""

    valid: bool
    total_rate: Decimal = ZERO
    max_total_rate: Decimal = ZERO
    levels: int = 0
    errors: list[str] = field(default_factory=list)


def _to_rate(value: Decimal | str | int | float, name: str) -> Decimal:
    """Convert and quantize a percentage, rejecting out-of-range values."""
    try:
        rate = Decimal(str(value)).quantize(RATE_QUANTUM)
    except (InvalidOperation, ValueError) as e:
        raise InvalidScheduleError(f"{name} is not a number: {value!r}") from e

    if rate < ZERO or rate > HUNDRED:
        raise InvalidScheduleError(
            f"{name} must be between 0 and 100, got {rate}"
        )
    return rate


def build_schedule(
    rates: Sequence[Decimal | str | int | float]
    | Mapping[int, Decimal | str | int | float],
    max_total_rate: Decimal | str | int | float,
    version: int | None = None,
) -> RateSchedule:
    """
    Build a validated schedule.

    Args:
        rates: Rates in level order, or a level -> rate mapping whose
            levels must be contiguous from 0
        max_total_rate: Global cap
        version: Optional version number

    Returns:
        Rate schedule

    Raises:
        InvalidScheduleError: Empty schedule, gaps in levels, or a rate
            outside 0..100
    """
    if isinstance(rates, Mapping):
        levels = sorted(rates)
        if levels != list(range(len(levels))):
            raise InvalidScheduleError(
                f"Levels must be contiguous from 0, got {levels}"
            )
        ordered = [rates[level] for level in levels]
    else:
        ordered = list(rates)

    if not ordered:
        raise InvalidScheduleError("Schedule must define at least level 0")

    return RateSchedule(
        rates=tuple(
            _to_rate(rate, f"Level {level} rate")
            for level, rate in enumerate(ordered)
        ),
        max_total_rate=_to_rate(max_total_rate, "max_total_rate"),
        version=version,
    )


class CommissionRateTable:
    """Commission rate table service."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize rate table."""
        self.session = session
        self.rate_repo = CommissionRateSettingRepository(session)

    @staticmethod
    def _to_schedule(rows: list[CommissionRateSetting]) -> RateSchedule:
        # The cap is carried by the level 0 row
        return RateSchedule(
            rates=tuple(Decimal(str(row.rate)) for row in rows),
            max_total_rate=Decimal(str(rows[0].max_total_rate)),
            version=rows[0].version,
        )

    async def active_schedule(self) -> RateSchedule:
        """
        Get the active schedule.

        Returns:
            Active rates ordered by level with the shared cap

        Raises:
            NoActiveScheduleError: No active rows exist
        """
        rows = await self.rate_repo.get_active()
        if not rows:
            raise NoActiveScheduleError()
        return self._to_schedule(rows)

    async def active_version(self) -> int | None:
        """Get the active schedule version, None when unconfigured."""
        return await self.rate_repo.get_active_version()

    async def schedule_for_version(self, version: int) -> RateSchedule:
        """
        Get a schedule by version, active or not.

        Raises:
            NoActiveScheduleError: Version does not exist
        """
        rows = await self.rate_repo.get_by_version(version)
        if not rows:
            raise NoActiveScheduleError(version)
        return self._to_schedule(rows)

    async def replace_schedule(
        self,
        rates: Sequence[Decimal | str | int | float]
        | Mapping[int, Decimal | str | int | float],
        max_total_rate: Decimal | str | int | float,
        created_by: int | None = None,
    ) -> RateSchedule:
        """
        Replace the active schedule with a new version.

        Old rows are deactivated, never edited, so sales pinned to an
        older version keep their rates. Runs in the caller's transaction
        and does not commit.

        Args:
            rates: New rates (see build_schedule)
            max_total_rate: New cap
            created_by: Operator reference

        Returns:
            The new active schedule

        Raises:
            InvalidScheduleError: Rates rejected
        """
        schedule = build_schedule(rates, max_total_rate)
        now = datetime.now(UTC)

        version = await self.rate_repo.get_latest_version() + 1
        deactivated = await self.rate_repo.deactivate_active(now)

        await self.rate_repo.bulk_create(
            [
                {
                    "level": level,
                    "rate": rate,
                    "max_total_rate": schedule.max_total_rate,
                    "version": version,
                    "effective_from": now,
                    "is_active": True,
                    "created_by": created_by,
                }
                for level, rate in enumerate(schedule.rates)
            ]
        )

        if schedule.configured_total > schedule.max_total_rate:
            logger.warning(
                "Configured commission rates exceed the cap",
                extra={
                    "version": version,
                    "total_rate": str(schedule.configured_total),
                    "max_total_rate": str(schedule.max_total_rate),
                },
            )

        logger.info(
            "Commission rate schedule replaced",
            extra={
                "version": version,
                "levels": len(schedule),
                "rates": [str(r) for r in schedule.rates],
                "max_total_rate": str(schedule.max_total_rate),
                "deactivated_rows": deactivated,
                "created_by": created_by,
            },
        )

        return RateSchedule(
            rates=schedule.rates,
            max_total_rate=schedule.max_total_rate,
            version=version,
        )

    async def validate_schedule(self) -> ScheduleValidation:
        """
        Check whether the active rates fit under the cap.

        A schedule that exceeds the cap is still usable: distribution caps
        it level by level. This report lets operators spot the mismatch.

        Returns:
            Validation result
        """
        rows = await self.rate_repo.get_active()
        if not rows:
            return ScheduleValidation(
                valid=False,
                errors=["No active commission rate schedule configured"],
            )

        schedule = self._to_schedule(rows)
        total = schedule.configured_total
        result = ScheduleValidation(
            valid=total <= schedule.max_total_rate,
            total_rate=total,
            max_total_rate=schedule.max_total_rate,
            levels=len(schedule),
        )
        if not result.valid:
            result.errors.append(
                f"Total commission rate ({total}%) exceeds maximum "
                f"({schedule.max_total_rate}%)"
            )
        return result
