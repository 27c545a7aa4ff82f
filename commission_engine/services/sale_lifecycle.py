"""
Sale lifecycle coordinator.

Orchestrates verify -> distribute -> release / cancel for affiliate sales
and guards against double compensation.

Every mutating operation follows the same protocol:
1. a read-only pre-check that fails fast on the common conflicts
2. a transactional body that locks the sale row (SELECT ... FOR UPDATE),
   re-checks the state and then writes
3. commit, or rollback before the error propagates

The unique (sale_id, level) constraint on commission records is the last
line of defence against two concurrent distributions of one sale. A
distribution also stamps the sale, so a batch that came out empty still
counts as distributed.
"""

from dataclasses import dataclass
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any

from loguru import logger
from pydantic import BaseModel
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from commission_engine.config.settings import Settings
from commission_engine.models.affiliate_sale import AffiliateSale
from commission_engine.models.commission_record import CommissionRecord
from commission_engine.models.enums import (
    CommissionStatus,
    PaymentMethod,
    VerificationStatus,
)
from commission_engine.repositories.affiliate_repository import (
    AffiliateRepository,
)
from commission_engine.repositories.affiliate_sale_repository import (
    AffiliateSaleRepository,
)
from commission_engine.repositories.commission_record_repository import (
    CommissionRecordRepository,
)
from commission_engine.schemas.payment_details import (
    dump_payment_details,
    parse_payment_details,
)
from commission_engine.services.balance_ledger import (
    BalanceLedger,
    LedgerBalance,
)
from commission_engine.services.commission_distributor import (
    CommissionDistributor,
    DistributionPlan,
)
from commission_engine.services.rate_table import CommissionRateTable
from commission_engine.services.referral_graph import ReferralGraph
from commission_engine.utils.exceptions import (
    AffiliateNotFoundError,
    AlreadyDistributedError,
    AlreadyReleasedError,
    CommissionEngineError,
    ConcurrentDistributionError,
    DuplicateReferenceError,
    InactiveAffiliateError,
    InvalidInputError,
    NotDistributedError,
    NotVerifiedError,
    SaleAlreadyVerifiedError,
    SaleNotFoundError,
    StateConflictError,
)
from commission_engine.utils.validation import (
    normalize_amount,
    normalize_sale_reference,
    sanitize_input,
)


@dataclass(frozen=True)
class BulkReleaseResult:
    """Outcome of releasing one sale in a bulk run."""

    sale_id: int
    success: bool
    error: str | None = None


class SaleLifecycleCoordinator:
    """Sale lifecycle coordinator."""

    def __init__(
        self, session: AsyncSession, settings: Settings | None = None
    ) -> None:
        """
        Initialize coordinator.

        Args:
            session: Database session; the coordinator commits on it
            settings: Optional settings (defaults apply when omitted)
        """
        self.session = session
        self.auto_distribute_on_verify = (
            settings.auto_distribute_on_verify if settings else False
        )
        downline_max_depth = settings.downline_max_depth if settings else 10

        self.affiliate_repo = AffiliateRepository(session)
        self.sale_repo = AffiliateSaleRepository(session)
        self.record_repo = CommissionRecordRepository(session)

        self.referral_graph = ReferralGraph(session, downline_max_depth)
        self.rate_table = CommissionRateTable(session)
        self.distributor = CommissionDistributor(
            session, self.referral_graph, self.rate_table
        )
        self.ledger = BalanceLedger(session)

    # Helpers

    async def _get_sale(
        self, sale_id: int, for_update: bool = False
    ) -> AffiliateSale:
        sale = await self.sale_repo.get_by_id(sale_id, for_update=for_update)
        if sale is None:
            raise SaleNotFoundError(sale_id)
        return sale

    @staticmethod
    def _ensure_verified(sale: AffiliateSale) -> None:
        if not sale.is_verified:
            raise NotVerifiedError(sale.id, sale.verification_status)

    async def _is_distributed(self, sale: AffiliateSale) -> bool:
        if sale.commissions_distributed_at is not None or sale.commissions_paid:
            return True
        return await self.record_repo.exists_for_sale(sale.id)

    async def _ensure_not_released(self, sale: AffiliateSale) -> None:
        if sale.commissions_paid or await self.record_repo.exists_for_sale(
            sale.id, CommissionStatus.PAID
        ):
            raise AlreadyReleasedError(sale.id)

    async def _rollback(
        self, operation: str, sale_id: int, error: Exception
    ) -> None:
        """Roll back the current transaction and log why."""
        await self.session.rollback()

        extra = {
            "operation": operation,
            "sale_id": sale_id,
            "error": str(error),
            "error_type": type(error).__name__,
        }
        if isinstance(error, CommissionEngineError):
            logger.warning(f"{operation} rejected", extra=extra)
        else:
            logger.error(f"{operation} failed", extra=extra)

    # Recording and verification

    async def record_sale(
        self,
        affiliate_id: int,
        sale_reference: str,
        amount: Decimal | str | int | float,
        payment_method: PaymentMethod | str,
        payment_details: dict[str, Any] | BaseModel | None = None,
        customer_id: int | None = None,
    ) -> AffiliateSale:
        """
        Record a new sale attributed to an affiliate.

        The sale is pinned to the currently active rate schedule version.

        Args:
            affiliate_id: Direct seller
            sale_reference: Globally unique external reference
            amount: Sale amount (> 0)
            payment_method: Payment method
            payment_details: Method-specific details
            customer_id: Optional customer reference

        Returns:
            Created PENDING sale

        Raises:
            InvalidInputError: Bad amount, reference or payment details
            AffiliateNotFoundError: Unknown affiliate
            DuplicateReferenceError: Reference already recorded
            InactiveAffiliateError: Affiliate deactivated
        """
        reference = normalize_sale_reference(sale_reference)
        sale_amount = normalize_amount(amount)
        details = parse_payment_details(payment_method, payment_details)
        method = PaymentMethod(payment_method)

        if await self.sale_repo.reference_exists(reference):
            raise DuplicateReferenceError(reference)

        affiliate = await self.affiliate_repo.get_by_id(affiliate_id)
        if affiliate is None:
            raise AffiliateNotFoundError(affiliate_id)
        if not affiliate.is_active:
            raise InactiveAffiliateError(affiliate_id)

        schedule_version = await self.rate_table.active_version()

        try:
            sale = await self.sale_repo.create(
                affiliate_id=affiliate_id,
                customer_id=customer_id,
                sale_reference=reference,
                sale_amount=sale_amount,
                payment_method=method.value,
                payment_details=dump_payment_details(details),
                verification_status=VerificationStatus.PENDING.value,
                commissions_paid=False,
                rate_schedule_version=schedule_version,
            )
            await self.session.commit()
        except IntegrityError as e:
            await self.session.rollback()
            logger.warning(
                "Sale reference inserted concurrently",
                extra={"sale_reference": reference},
            )
            raise DuplicateReferenceError(reference) from e
        except Exception as e:
            await self.session.rollback()
            logger.error(
                "Failed to record sale",
                extra={"sale_reference": reference, "error": str(e)},
            )
            raise

        logger.info(
            "Affiliate sale recorded",
            extra={
                "sale_id": sale.id,
                "affiliate_id": affiliate_id,
                "sale_reference": reference,
                "amount": str(sale_amount),
                "payment_method": method.value,
                "rate_schedule_version": schedule_version,
            },
        )
        return sale

    async def verify_sale(
        self,
        sale_id: int,
        outcome: VerificationStatus | str,
        verified_by: int | None = None,
        notes: str | None = None,
    ) -> AffiliateSale:
        """
        Approve or reject a PENDING sale.

        Args:
            sale_id: Sale ID
            outcome: VERIFIED or REJECTED
            verified_by: Reviewer reference
            notes: Verification notes

        Returns:
            Updated sale

        Raises:
            InvalidInputError: Outcome is not VERIFIED or REJECTED
            SaleNotFoundError: Unknown sale
            SaleAlreadyVerifiedError: Sale already left PENDING
        """
        try:
            status = VerificationStatus(outcome)
        except ValueError as e:
            raise InvalidInputError(
                f"Invalid verification outcome: {outcome}"
            ) from e
        if status == VerificationStatus.PENDING:
            raise InvalidInputError("Verification outcome must be final")

        sale = await self._get_sale(sale_id)
        if not sale.is_pending:
            raise SaleAlreadyVerifiedError(sale_id, sale.verification_status)

        try:
            sale = await self._get_sale(sale_id, for_update=True)
            if not sale.is_pending:
                raise SaleAlreadyVerifiedError(
                    sale_id, sale.verification_status
                )

            sale.verification_status = status.value
            sale.verified_by = verified_by
            sale.verified_at = datetime.now(UTC)
            sale.verification_notes = sanitize_input(notes)
            await self.session.commit()
        except Exception as e:
            await self._rollback("verify_sale", sale_id, e)
            raise

        logger.info(
            "Affiliate sale verified",
            extra={
                "sale_id": sale_id,
                "outcome": status.value,
                "verified_by": verified_by,
            },
        )

        if status == VerificationStatus.VERIFIED and (
            self.auto_distribute_on_verify
        ):
            await self.distribute_commissions(sale_id)

        return sale

    # Commission batch lifecycle

    async def distribute_commissions(
        self, sale_id: int
    ) -> list[CommissionRecord]:
        """
        Create the PENDING commission batch of a verified sale.

        Rates come from the schedule version pinned on the sale, or the
        active schedule when none was pinned. Each allocation increases the
        affiliate's pending balance in the same transaction.

        Args:
            sale_id: Sale ID

        Returns:
            Created commission records in level order

        Raises:
            SaleNotFoundError: Unknown sale
            NotVerifiedError: Sale is not VERIFIED
            AlreadyDistributedError: Sale was already distributed, even when
                its batch came out empty
                (ConcurrentDistributionError when another transaction won)
            NoActiveScheduleError: No usable rate schedule
        """
        sale = await self._get_sale(sale_id)
        self._ensure_verified(sale)
        if await self._is_distributed(sale):
            raise AlreadyDistributedError(sale_id)

        try:
            sale = await self._get_sale(sale_id, for_update=True)
            self._ensure_verified(sale)
            if await self._is_distributed(sale):
                raise ConcurrentDistributionError(sale_id)

            if sale.rate_schedule_version is not None:
                schedule = await self.rate_table.schedule_for_version(
                    sale.rate_schedule_version
                )
            else:
                schedule = await self.rate_table.active_schedule()

            plan = await self.distributor.plan(
                sale.affiliate_id, sale.sale_amount, schedule
            )

            # An empty plan still consumes the sale
            if not await self.sale_repo.mark_distributed(
                sale_id, datetime.now(UTC)
            ):
                raise ConcurrentDistributionError(sale_id)

            try:
                records = await self.record_repo.bulk_create(
                    [
                        {
                            "sale_id": sale_id,
                            "affiliate_id": allocation.affiliate_id,
                            "level": allocation.level,
                            "commission_rate": allocation.rate,
                            "commission_amount": allocation.amount,
                            "status": CommissionStatus.PENDING.value,
                            "rate_schedule_version": plan.schedule_version,
                        }
                        for allocation in plan.allocations
                    ]
                )
            except IntegrityError as e:
                raise ConcurrentDistributionError(sale_id) from e

            for allocation in plan.allocations:
                await self.ledger.credit_pending(
                    allocation.affiliate_id, allocation.amount
                )

            await self.session.commit()
        except Exception as e:
            await self._rollback("distribute_commissions", sale_id, e)
            raise

        logger.info(
            "Commissions distributed",
            extra={
                "sale_id": sale_id,
                "levels": len(records),
                "total_rate": str(plan.total_commission_rate),
                "total_amount": str(plan.total_commission_amount),
                "capped": plan.capped,
                "schedule_version": plan.schedule_version,
            },
        )
        return records

    async def release_commissions(
        self, sale_id: int
    ) -> list[CommissionRecord]:
        """
        Release the PENDING commission batch of a sale.

        Pending balances move into available balance and total earnings,
        and the sale is marked commissions_paid.

        Args:
            sale_id: Sale ID

        Returns:
            Released commission records

        Raises:
            SaleNotFoundError: Unknown sale
            NotVerifiedError: Sale is not VERIFIED
            AlreadyReleasedError: Commissions already paid
            NotDistributedError: No PENDING batch to release
        """
        sale = await self._get_sale(sale_id)
        self._ensure_verified(sale)
        await self._ensure_not_released(sale)

        try:
            sale = await self._get_sale(sale_id, for_update=True)
            self._ensure_verified(sale)
            await self._ensure_not_released(sale)

            records = await self.record_repo.get_by_sale(
                sale_id, CommissionStatus.PENDING
            )
            if not records:
                raise NotDistributedError(sale_id)

            now = datetime.now(UTC)
            updated = await self.record_repo.set_batch_status(
                [r.id for r in records], CommissionStatus.PAID, now
            )
            if updated != len(records):
                raise StateConflictError(
                    f"Commission batch for sale {sale_id} changed "
                    "during release"
                )

            for record in records:
                await self.ledger.settle(
                    record.affiliate_id, record.commission_amount
                )

            sale.commissions_paid = True
            sale.commissions_paid_at = now
            await self.session.commit()
        except Exception as e:
            await self._rollback("release_commissions", sale_id, e)
            raise

        logger.info(
            "Commissions released",
            extra={
                "sale_id": sale_id,
                "records": len(records),
                "total_amount": str(
                    sum(r.commission_amount for r in records)
                ),
            },
        )
        return records

    async def cancel_commissions(self, sale_id: int) -> int:
        """
        Cancel the PENDING commission batch of a sale.

        Pending balances are reversed; available balance and total
        earnings are untouched.

        Args:
            sale_id: Sale ID

        Returns:
            Number of cancelled records (0 when nothing was pending)

        Raises:
            SaleNotFoundError: Unknown sale
            AlreadyReleasedError: Commissions already paid
        """
        sale = await self._get_sale(sale_id)
        await self._ensure_not_released(sale)

        try:
            sale = await self._get_sale(sale_id, for_update=True)
            await self._ensure_not_released(sale)

            records = await self.record_repo.get_by_sale(
                sale_id, CommissionStatus.PENDING
            )
            updated = await self.record_repo.set_batch_status(
                [r.id for r in records],
                CommissionStatus.CANCELLED,
                datetime.now(UTC),
            )
            if updated != len(records):
                raise StateConflictError(
                    f"Commission batch for sale {sale_id} changed "
                    "during cancel"
                )

            for record in records:
                await self.ledger.reverse_pending(
                    record.affiliate_id, record.commission_amount
                )

            await self.session.commit()
        except Exception as e:
            await self._rollback("cancel_commissions", sale_id, e)
            raise

        logger.info(
            "Commissions cancelled",
            extra={"sale_id": sale_id, "records": updated},
        )
        return updated

    async def bulk_release(
        self, sale_ids: list[int]
    ) -> list[BulkReleaseResult]:
        """
        Release several sales, each in its own transaction.

        A failure on one sale does not affect the others.

        Args:
            sale_ids: Sale IDs

        Returns:
            One result per sale ID, in input order
        """
        results: list[BulkReleaseResult] = []

        for sale_id in sale_ids:
            try:
                await self.release_commissions(sale_id)
            except CommissionEngineError as e:
                results.append(
                    BulkReleaseResult(
                        sale_id=sale_id, success=False, error=str(e)
                    )
                )
            except Exception as e:
                # A failed pre-check read can leave the transaction aborted
                await self.session.rollback()
                logger.exception(
                    f"Unexpected error releasing sale {sale_id}: {e}"
                )
                results.append(
                    BulkReleaseResult(
                        sale_id=sale_id, success=False, error=str(e)
                    )
                )
            else:
                results.append(
                    BulkReleaseResult(sale_id=sale_id, success=True)
                )

        logger.info(
            "Bulk commission release finished",
            extra={
                "requested": len(sale_ids),
                "released": sum(1 for r in results if r.success),
                "failed": sum(1 for r in results if not r.success),
            },
        )
        return results

    # Read-only queries

    async def preview_commissions(
        self, affiliate_id: int, amount: Decimal | str | int | float
    ) -> DistributionPlan:
        """
        Preview the allocation of a hypothetical sale.

        Produces exactly what distribute_commissions would create for a
        sale of this amount recorded now.
        """
        return await self.distributor.preview(affiliate_id, amount)

    async def get_ledger(self, affiliate_id: int) -> LedgerBalance:
        """Get an affiliate's balances."""
        return await self.ledger.get_ledger(affiliate_id)

    async def get_sale(self, sale_id: int) -> AffiliateSale:
        """Get a sale or raise SaleNotFoundError."""
        return await self._get_sale(sale_id)

    async def get_sale_commissions(
        self, sale_id: int
    ) -> list[CommissionRecord]:
        """Get all commission records of a sale in level order."""
        await self._get_sale(sale_id)
        return await self.record_repo.get_by_sale(sale_id)

    async def pending_verification(
        self, limit: int | None = None
    ) -> list[AffiliateSale]:
        """Get sales awaiting review, oldest first."""
        return await self.sale_repo.get_pending_verification(limit)

    async def verified_unpaid(
        self, limit: int | None = None
    ) -> list[AffiliateSale]:
        """Get verified sales whose commissions are not released."""
        return await self.sale_repo.get_verified_unpaid(limit)
