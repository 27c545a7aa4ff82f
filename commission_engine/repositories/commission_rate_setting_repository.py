"""
CommissionRateSetting repository.

Data access layer for CommissionRateSetting model.
"""

from datetime import datetime

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from commission_engine.models.commission_rate_setting import (
    CommissionRateSetting,
)
from commission_engine.repositories.base import BaseRepository


class CommissionRateSettingRepository(
    BaseRepository[CommissionRateSetting]
):
    """CommissionRateSetting repository with version queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize commission rate setting repository."""
        super().__init__(CommissionRateSetting, session)

    async def get_active(self) -> list[CommissionRateSetting]:
        """Get active rate rows ordered by level."""
        stmt = (
            select(CommissionRateSetting)
            .where(CommissionRateSetting.is_active.is_(True))
            .order_by(CommissionRateSetting.level.asc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_by_version(
        self, version: int
    ) -> list[CommissionRateSetting]:
        """Get all rate rows of one version ordered by level."""
        stmt = (
            select(CommissionRateSetting)
            .where(CommissionRateSetting.version == version)
            .order_by(CommissionRateSetting.level.asc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_active_version(self) -> int | None:
        """Get the version number of the active schedule."""
        stmt = select(func.max(CommissionRateSetting.version)).where(
            CommissionRateSetting.is_active.is_(True)
        )
        result = await self.session.execute(stmt)
        return result.scalar()

    async def get_latest_version(self) -> int:
        """Get the highest version ever stored, 0 when empty."""
        stmt = select(func.max(CommissionRateSetting.version))
        result = await self.session.execute(stmt)
        return result.scalar() or 0

    async def deactivate_active(self, until: datetime) -> int:
        """
        Deactivate the active schedule.

        Args:
            until: effective_until timestamp for the old rows

        Returns:
            Number of deactivated rows
        """
        stmt = (
            update(CommissionRateSetting)
            .where(CommissionRateSetting.is_active.is_(True))
            .values(is_active=False, effective_until=until)
        )
        result = await self.session.execute(stmt)
        return result.rowcount
