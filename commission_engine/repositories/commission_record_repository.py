"""
CommissionRecord repository.

Data access layer for CommissionRecord model.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from commission_engine.models.commission_record import CommissionRecord
from commission_engine.models.enums import CommissionStatus
from commission_engine.repositories.base import BaseRepository


class CommissionRecordRepository(BaseRepository[CommissionRecord]):
    """CommissionRecord repository with batch queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize commission record repository."""
        super().__init__(CommissionRecord, session)

    async def get_by_sale(
        self, sale_id: int, status: CommissionStatus | None = None
    ) -> list[CommissionRecord]:
        """
        Get the commission batch of a sale in level order.

        Args:
            sale_id: Sale ID
            status: Optional status filter

        Returns:
            List of commission records
        """
        stmt = (
            select(CommissionRecord)
            .where(CommissionRecord.sale_id == sale_id)
            .order_by(CommissionRecord.level.asc())
        )
        if status is not None:
            stmt = stmt.where(CommissionRecord.status == status.value)

        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def exists_for_sale(
        self, sale_id: int, status: CommissionStatus | None = None
    ) -> bool:
        """
        Check whether a sale has commission records.

        Args:
            sale_id: Sale ID
            status: Optional status filter

        Returns:
            True if at least one matching record exists
        """
        if status is None:
            return await self.exists(sale_id=sale_id)
        return await self.exists(sale_id=sale_id, status=status.value)

    async def set_batch_status(
        self,
        record_ids: list[int],
        status: CommissionStatus,
        timestamp: datetime,
    ) -> int:
        """
        Move records out of PENDING.

        Only rows still PENDING are touched, so a batch cannot be settled
        twice.

        Args:
            record_ids: Record IDs
            status: PAID or CANCELLED
            timestamp: Value for paid_at / cancelled_at

        Returns:
            Number of updated rows
        """
        if not record_ids:
            return 0

        values: dict[str, object] = {
            "status": status.value,
            "updated_at": timestamp,
        }
        if status == CommissionStatus.PAID:
            values["paid_at"] = timestamp
        elif status == CommissionStatus.CANCELLED:
            values["cancelled_at"] = timestamp

        stmt = (
            update(CommissionRecord)
            .where(
                CommissionRecord.id.in_(record_ids),
                CommissionRecord.status == CommissionStatus.PENDING.value,
            )
            .values(**values)
        )
        result = await self.session.execute(stmt)
        return result.rowcount

    async def get_totals_by_status(
        self, affiliate_id: int | None = None
    ) -> dict[str, dict[str, Decimal | int]]:
        """
        Get commission count and amount per status.

        Args:
            affiliate_id: Optional affiliate filter

        Returns:
            Mapping status -> {"count", "amount"} for every status
        """
        stmt = select(
            CommissionRecord.status,
            func.count(CommissionRecord.id),
            func.coalesce(func.sum(CommissionRecord.commission_amount), 0),
        ).group_by(CommissionRecord.status)
        if affiliate_id is not None:
            stmt = stmt.where(CommissionRecord.affiliate_id == affiliate_id)

        totals: dict[str, dict[str, Decimal | int]] = {
            status.value: {"count": 0, "amount": Decimal("0")}
            for status in CommissionStatus
        }
        for status, count, amount in (await self.session.execute(stmt)).all():
            totals[status] = {"count": count, "amount": Decimal(str(amount))}
        return totals

    async def get_level_breakdown(
        self, affiliate_id: int
    ) -> list[dict[str, Decimal | int]]:
        """
        Get non-cancelled commissions of an affiliate grouped by level.

        Args:
            affiliate_id: Affiliate ID

        Returns:
            List of {"level", "count", "amount"} in level order
        """
        stmt = (
            select(
                CommissionRecord.level,
                func.count(CommissionRecord.id),
                func.coalesce(
                    func.sum(CommissionRecord.commission_amount), 0
                ),
            )
            .where(
                CommissionRecord.affiliate_id == affiliate_id,
                CommissionRecord.status != CommissionStatus.CANCELLED.value,
            )
            .group_by(CommissionRecord.level)
            .order_by(CommissionRecord.level.asc())
        )
        rows = (await self.session.execute(stmt)).all()
        return [
            {"level": level, "count": count, "amount": Decimal(str(amount))}
            for level, count, amount in rows
        ]

    async def get_recent_for_affiliate(
        self, affiliate_id: int, limit: int = 10
    ) -> list[CommissionRecord]:
        """Get latest commissions of an affiliate, newest first."""
        stmt = (
            select(CommissionRecord)
            .where(CommissionRecord.affiliate_id == affiliate_id)
            .order_by(CommissionRecord.id.desc())
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
