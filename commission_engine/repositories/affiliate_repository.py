"""
Affiliate repository.

Data access layer for Affiliate model.
"""

from decimal import Decimal

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from commission_engine.models.affiliate import Affiliate
from commission_engine.repositories.base import BaseRepository


class AffiliateRepository(BaseRepository[Affiliate]):
    """Affiliate repository with tree and ledger queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize affiliate repository."""
        super().__init__(Affiliate, session)

    async def get_by_referral_code(
        self, referral_code: str
    ) -> Affiliate | None:
        """
        Get affiliate by referral code.

        Args:
            referral_code: Referral code (case-insensitive)

        Returns:
            Affiliate or None
        """
        return await self.get_by(referral_code=referral_code.strip().upper())

    async def referral_code_exists(self, referral_code: str) -> bool:
        """Check whether a referral code is taken."""
        return await self.exists(referral_code=referral_code)

    async def get_parent_id(self, affiliate_id: int) -> int | None:
        """
        Get parent pointer of an affiliate.

        Args:
            affiliate_id: Affiliate ID

        Returns:
            Parent affiliate ID, or None for roots and missing rows
        """
        stmt = select(Affiliate.parent_affiliate_id).where(
            Affiliate.id == affiliate_id
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_children(self, affiliate_id: int) -> list[Affiliate]:
        """
        Get direct referrals of an affiliate.

        Args:
            affiliate_id: Parent affiliate ID

        Returns:
            Children ordered by ID
        """
        return await self.find_by(parent_affiliate_id=affiliate_id)

    async def get_children_of(
        self, parent_ids: list[int]
    ) -> list[Affiliate]:
        """
        Get direct referrals of several affiliates in one query.

        Args:
            parent_ids: Parent affiliate IDs

        Returns:
            Children ordered by ID
        """
        if not parent_ids:
            return []

        stmt = (
            select(Affiliate)
            .where(Affiliate.parent_affiliate_id.in_(parent_ids))
            .order_by(Affiliate.id)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def count_children(self, affiliate_id: int) -> int:
        """Count direct referrals of an affiliate."""
        return await self.count(parent_affiliate_id=affiliate_id)

    async def adjust_ledger(
        self,
        affiliate_id: int,
        pending_delta: Decimal = Decimal("0"),
        available_delta: Decimal = Decimal("0"),
        total_delta: Decimal = Decimal("0"),
    ) -> bool:
        """
        Apply ledger deltas as one atomic UPDATE.

        Each column is written as ``column = column + delta`` so concurrent
        transactions never overwrite each other's increments.

        Args:
            affiliate_id: Affiliate ID
            pending_delta: Change to pending_balance
            available_delta: Change to available_balance
            total_delta: Change to total_earnings

        Returns:
            True if a row was updated
        """
        values = {}
        if pending_delta:
            values["pending_balance"] = (
                Affiliate.pending_balance + pending_delta
            )
        if available_delta:
            values["available_balance"] = (
                Affiliate.available_balance + available_delta
            )
        if total_delta:
            values["total_earnings"] = (
                Affiliate.total_earnings + total_delta
            )
        if not values:
            return True

        stmt = (
            update(Affiliate)
            .where(Affiliate.id == affiliate_id)
            .values(**values)
        )
        result = await self.session.execute(stmt)
        return result.rowcount > 0

    async def update_network_counters(
        self, affiliate_id: int, direct_referrals: int, total_downline: int
    ) -> None:
        """Overwrite denormalized network counters."""
        stmt = (
            update(Affiliate)
            .where(Affiliate.id == affiliate_id)
            .values(
                direct_referrals=direct_referrals,
                total_downline=total_downline,
            )
        )
        await self.session.execute(stmt)

    async def get_totals(self) -> dict[str, Decimal | int]:
        """
        Get aggregate affiliate figures.

        Returns:
            Dict with total and active counts and summed ledger columns
        """
        stmt = select(
            func.count(Affiliate.id),
            func.count(Affiliate.id).filter(Affiliate.is_active.is_(True)),
            func.coalesce(func.sum(Affiliate.total_earnings), 0),
            func.coalesce(func.sum(Affiliate.available_balance), 0),
            func.coalesce(func.sum(Affiliate.pending_balance), 0),
        )
        row = (await self.session.execute(stmt)).one()
        return {
            "total_affiliates": row[0] or 0,
            "active_affiliates": row[1] or 0,
            "total_earnings": Decimal(str(row[2])),
            "available_balance": Decimal(str(row[3])),
            "pending_balance": Decimal(str(row[4])),
        }
