"""
Commission distributor.

Turns a sale amount and an affiliate hierarchy into capped, level-weighted
commission allocations.
"""

from collections.abc import Sequence
from dataclasses import dataclass, field
from decimal import Decimal

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from commission_engine.config.constants import HUNDRED, ZERO
from commission_engine.repositories.affiliate_repository import (
    AffiliateRepository,
)
from commission_engine.services.rate_table import (
    CommissionRateTable,
    RateSchedule,
)
from commission_engine.services.referral_graph import ReferralGraph
from commission_engine.utils.exceptions import AffiliateNotFoundError
from commission_engine.utils.validation import (
    normalize_amount,
    quantize_money,
)


@dataclass(frozen=True)
class CommissionAllocation:
    """One level of a distribution."""

    level: int
    affiliate_id: int
    rate: Decimal
    amount: Decimal
    capped: bool = False


@dataclass
class DistributionPlan:
    """Allocations for one sale amount."""

    sale_amount: Decimal
    max_total_rate: Decimal
    schedule_version: int | None
    allocations: list[CommissionAllocation] = field(default_factory=list)

    @property
    def total_commission_rate(self) -> Decimal:
        """Sum of allocated rates."""
        return sum((a.rate for a in self.allocations), ZERO)

    @property
    def total_commission_amount(self) -> Decimal:
        """Sum of allocated amounts."""
        return sum((a.amount for a in self.allocations), ZERO)

    @property
    def capped(self) -> bool:
        """Whether the cap truncated the distribution."""
        return any(a.capped for a in self.allocations)

    def to_dict(self) -> dict:
        """Serialize plan for API responses."""
        return {
            "sale_amount": str(self.sale_amount),
            "schedule_version": self.schedule_version,
            "max_total_rate": str(self.max_total_rate),
            "total_commission_rate": str(self.total_commission_rate),
            "total_commission_amount": str(self.total_commission_amount),
            "levels": [
                {
                    "level": a.level,
                    "affiliate_id": a.affiliate_id,
                    "rate": str(a.rate),
                    "amount": str(a.amount),
                    "capped": a.capped,
                }
                for a in self.allocations
            ],
        }


def allocate_commissions(
    hierarchy: Sequence[int],
    schedule: RateSchedule,
    sale_amount: Decimal,
) -> DistributionPlan:
    """
    Allocate commission rates level by level under the cap.

    Level 0 is the direct seller and is served first. A level whose full
    rate would exceed the cap gets the remaining headroom (if any) and ends
    the walk. Levels without an affiliate are skipped and their rate is not
    given to anyone else.

    Args:
        hierarchy: Affiliate IDs, direct seller first then upline
        schedule: Rate schedule
        sale_amount: Commission base, already validated

    Returns:
        Distribution plan
    """
    plan = DistributionPlan(
        sale_amount=sale_amount,
        max_total_rate=schedule.max_total_rate,
        schedule_version=schedule.version,
    )
    total_rate_used = ZERO

    for level in range(min(len(hierarchy), len(schedule.rates))):
        rate = schedule.rates[level]
        capped = False

        if total_rate_used + rate > schedule.max_total_rate:
            rate = schedule.max_total_rate - total_rate_used
            capped = True

        if rate > ZERO:
            plan.allocations.append(
                CommissionAllocation(
                    level=level,
                    affiliate_id=hierarchy[level],
                    rate=rate,
                    amount=quantize_money(sale_amount * rate / HUNDRED),
                    capped=capped,
                )
            )
            total_rate_used += rate

        if capped:
            break

    return plan


class CommissionDistributor:
    """Builds distribution plans from the referral graph and rate table."""

    def __init__(
        self,
        session: AsyncSession,
        referral_graph: ReferralGraph | None = None,
        rate_table: CommissionRateTable | None = None,
    ) -> None:
        """
        Initialize distributor.

        Args:
            session: Database session
            referral_graph: Referral graph (built from session if omitted)
            rate_table: Rate table (built from session if omitted)
        """
        self.session = session
        self.affiliate_repo = AffiliateRepository(session)
        self.referral_graph = referral_graph or ReferralGraph(session)
        self.rate_table = rate_table or CommissionRateTable(session)

    async def plan(
        self,
        affiliate_id: int,
        sale_amount: Decimal | str | int | float,
        schedule: RateSchedule | None = None,
    ) -> DistributionPlan:
        """
        Compute allocations for a sale of an affiliate.

        Args:
            affiliate_id: Direct seller
            sale_amount: Commission base
            schedule: Schedule to apply, active schedule if omitted

        Returns:
            Distribution plan

        Raises:
            InvalidInputError: Non-positive amount
            AffiliateNotFoundError: Unknown affiliate
            NoActiveScheduleError: No schedule configured
        """
        amount = normalize_amount(sale_amount)

        seller = await self.affiliate_repo.get_by_id(affiliate_id)
        if seller is None:
            raise AffiliateNotFoundError(affiliate_id)

        if schedule is None:
            schedule = await self.rate_table.active_schedule()

        upline = await self.referral_graph.upline_chain(
            affiliate_id, len(schedule.rates)
        )
        hierarchy = [seller.id] + [a.id for a in upline]

        plan = allocate_commissions(hierarchy, schedule, amount)

        logger.debug(
            "Commission plan computed",
            extra={
                "affiliate_id": affiliate_id,
                "sale_amount": str(amount),
                "schedule_version": schedule.version,
                "levels": len(plan.allocations),
                "total_rate": str(plan.total_commission_rate),
                "capped": plan.capped,
            },
        )

        return plan

    async def preview(
        self,
        affiliate_id: int,
        sale_amount: Decimal | str | int | float,
    ) -> DistributionPlan:
        """
        Preview commissions of a hypothetical sale.

        Read-only; uses the active schedule like a sale recorded now.
        """
        return await self.plan(affiliate_id, sale_amount)
