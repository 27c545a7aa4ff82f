"""
Balance ledger.

Per-affiliate running totals. Only the commission lifecycle writes them:
distribution credits pending, release settles pending into available and
total, cancel reverses pending.
"""

from dataclasses import dataclass
from decimal import Decimal

from loguru import logger
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from commission_engine.models.affiliate import Affiliate
from commission_engine.repositories.affiliate_repository import (
    AffiliateRepository,
)
from commission_engine.utils.exceptions import AffiliateNotFoundError


@dataclass(frozen=True)
class LedgerBalance:
    """Snapshot of an affiliate's ledger."""

    affiliate_id: int
    total_earnings: Decimal
    available_balance: Decimal
    pending_balance: Decimal

    def to_dict(self) -> dict[str, str]:
        """Serialize balances as strings."""
        return {
            "total_earnings": str(self.total_earnings),
            "available_balance": str(self.available_balance),
            "pending_balance": str(self.pending_balance),
        }


class BalanceLedger:
    """
    Balance ledger service.

    Mutations run inside the caller's transaction and never commit.
    """

    def __init__(self, session: AsyncSession) -> None:
        """Initialize balance ledger."""
        self.session = session
        self.affiliate_repo = AffiliateRepository(session)

    async def _apply(
        self,
        operation: str,
        affiliate_id: int,
        pending: Decimal,
        available: Decimal = Decimal("0"),
        total: Decimal = Decimal("0"),
    ) -> None:
        updated = await self.affiliate_repo.adjust_ledger(
            affiliate_id,
            pending_delta=pending,
            available_delta=available,
            total_delta=total,
        )
        if not updated:
            raise AffiliateNotFoundError(affiliate_id)

        logger.debug(
            f"Ledger {operation}",
            extra={
                "affiliate_id": affiliate_id,
                "pending_delta": str(pending),
                "available_delta": str(available),
                "total_delta": str(total),
            },
        )

    async def credit_pending(
        self, affiliate_id: int, amount: Decimal
    ) -> None:
        """Increase pending balance by a distributed commission."""
        await self._apply("credit_pending", affiliate_id, pending=amount)

    async def settle(self, affiliate_id: int, amount: Decimal) -> None:
        """Move a released commission from pending to available and total."""
        await self._apply(
            "settle",
            affiliate_id,
            pending=-amount,
            available=amount,
            total=amount,
        )

    async def reverse_pending(
        self, affiliate_id: int, amount: Decimal
    ) -> None:
        """Remove a cancelled commission from pending."""
        await self._apply("reverse_pending", affiliate_id, pending=-amount)

    async def get_ledger(self, affiliate_id: int) -> LedgerBalance:
        """
        Read current balances straight from the database.

        Args:
            affiliate_id: Affiliate ID

        Returns:
            Ledger snapshot

        Raises:
            AffiliateNotFoundError: Unknown affiliate
        """
        stmt = select(
            Affiliate.total_earnings,
            Affiliate.available_balance,
            Affiliate.pending_balance,
        ).where(Affiliate.id == affiliate_id)
        row = (await self.session.execute(stmt)).one_or_none()
        if row is None:
            raise AffiliateNotFoundError(affiliate_id)

        return LedgerBalance(
            affiliate_id=affiliate_id,
            total_earnings=Decimal(str(row.total_earnings)),
            available_balance=Decimal(str(row.available_balance)),
            pending_balance=Decimal(str(row.pending_balance)),
        )
