"""
AffiliateSale repository.

Data access layer for AffiliateSale model.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from commission_engine.models.affiliate_sale import AffiliateSale
from commission_engine.models.enums import VerificationStatus
from commission_engine.repositories.base import BaseRepository


class AffiliateSaleRepository(BaseRepository[AffiliateSale]):
    """AffiliateSale repository with lifecycle queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize affiliate sale repository."""
        super().__init__(AffiliateSale, session)

    async def get_by_reference(
        self, sale_reference: str
    ) -> AffiliateSale | None:
        """Get sale by external reference."""
        return await self.get_by(sale_reference=sale_reference)

    async def reference_exists(self, sale_reference: str) -> bool:
        """Check whether a sale reference is already recorded."""
        return await self.exists(sale_reference=sale_reference)

    async def mark_distributed(
        self, sale_id: int, timestamp: datetime
    ) -> bool:
        """
        Stamp a sale as distributed.

        Only an unstamped sale is touched, so the stamp is set once even
        when the distributed batch is empty.

        Args:
            sale_id: Sale ID
            timestamp: Value for commissions_distributed_at

        Returns:
            True if this call set the stamp
        """
        stmt = (
            update(AffiliateSale)
            .where(
                AffiliateSale.id == sale_id,
                AffiliateSale.commissions_distributed_at.is_(None),
            )
            .values(commissions_distributed_at=timestamp, updated_at=timestamp)
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1

    async def get_pending_verification(
        self, limit: int | None = None
    ) -> list[AffiliateSale]:
        """
        Get sales awaiting verification, oldest first.

        Args:
            limit: Max number of results

        Returns:
            List of PENDING sales
        """
        stmt = (
            select(AffiliateSale)
            .where(
                AffiliateSale.verification_status
                == VerificationStatus.PENDING.value
            )
            .order_by(AffiliateSale.created_at.asc(), AffiliateSale.id.asc())
        )
        if limit is not None:
            stmt = stmt.limit(limit)

        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_verified_unpaid(
        self, limit: int | None = None
    ) -> list[AffiliateSale]:
        """
        Get verified sales whose commissions are not released yet.

        Args:
            limit: Max number of results

        Returns:
            List of VERIFIED, unpaid sales ordered by verification time
        """
        stmt = (
            select(AffiliateSale)
            .where(
                AffiliateSale.verification_status
                == VerificationStatus.VERIFIED.value,
                AffiliateSale.commissions_paid.is_(False),
            )
            .order_by(AffiliateSale.verified_at.asc(), AffiliateSale.id.asc())
        )
        if limit is not None:
            stmt = stmt.limit(limit)

        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_stats(
        self, affiliate_id: int | None = None
    ) -> dict[str, Decimal | int]:
        """
        Get sale counts and volume.

        Args:
            affiliate_id: Optional affiliate filter

        Returns:
            Dict with total/verified/pending/rejected counts and amounts
        """
        status = AffiliateSale.verification_status
        stmt = select(
            func.count(AffiliateSale.id),
            func.count(AffiliateSale.id).filter(
                status == VerificationStatus.VERIFIED.value
            ),
            func.count(AffiliateSale.id).filter(
                status == VerificationStatus.PENDING.value
            ),
            func.count(AffiliateSale.id).filter(
                status == VerificationStatus.REJECTED.value
            ),
            func.coalesce(func.sum(AffiliateSale.sale_amount), 0),
            func.coalesce(
                func.sum(AffiliateSale.sale_amount).filter(
                    status == VerificationStatus.VERIFIED.value
                ),
                0,
            ),
        )
        if affiliate_id is not None:
            stmt = stmt.where(AffiliateSale.affiliate_id == affiliate_id)

        row = (await self.session.execute(stmt)).one()
        return {
            "total_sales": row[0] or 0,
            "verified_sales": row[1] or 0,
            "pending_sales": row[2] or 0,
            "rejected_sales": row[3] or 0,
            "total_sales_amount": Decimal(str(row[4])),
            "verified_sales_amount": Decimal(str(row[5])),
        }

    async def get_recent_for_affiliate(
        self, affiliate_id: int, limit: int = 10
    ) -> list[AffiliateSale]:
        """Get latest sales of an affiliate, newest first."""
        stmt = (
            select(AffiliateSale)
            .where(AffiliateSale.affiliate_id == affiliate_id)
            .order_by(AffiliateSale.id.desc())
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
