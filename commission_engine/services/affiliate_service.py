"""
Affiliate service.

Enrollment with referral codes, activation and earnings statistics.
"""

import secrets
from typing import Any

from loguru import logger
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from commission_engine.config.settings import Settings
from commission_engine.models.affiliate import Affiliate
from commission_engine.models.affiliate_sale import AffiliateSale
from commission_engine.models.commission_record import CommissionRecord
from commission_engine.repositories.affiliate_repository import (
    AffiliateRepository,
)
from commission_engine.repositories.affiliate_sale_repository import (
    AffiliateSaleRepository,
)
from commission_engine.repositories.commission_record_repository import (
    CommissionRecordRepository,
)
from commission_engine.services.balance_ledger import BalanceLedger
from commission_engine.services.referral_graph import ReferralGraph
from commission_engine.utils.exceptions import (
    AffiliateNotFoundError,
    InvalidInputError,
    ReferralCodeGenerationError,
)
from commission_engine.utils.validation import (
    sanitize_input,
    validate_referral_code,
)

DEFAULT_REFERRAL_CODE_LENGTH = 12
DEFAULT_REFERRAL_CODE_ATTEMPTS = 10
RECENT_ITEMS_LIMIT = 10


def generate_referral_code(length: int = DEFAULT_REFERRAL_CODE_LENGTH) -> str:
    """
    Generate a random upper-case hex referral code.

    Args:
        length: Number of hex characters

    Returns:
        Referral code
    """
    return secrets.token_hex((length + 1) // 2)[:length].upper()


def _sale_to_dict(sale: AffiliateSale) -> dict[str, Any]:
    return {
        "id": sale.id,
        "sale_reference": sale.sale_reference,
        "sale_amount": str(sale.sale_amount),
        "payment_method": sale.payment_method,
        "verification_status": sale.verification_status,
        "commissions_paid": sale.commissions_paid,
        "created_at": sale.created_at,
    }


def _commission_to_dict(record: CommissionRecord) -> dict[str, Any]:
    return {
        "id": record.id,
        "sale_id": record.sale_id,
        "level": record.level,
        "commission_rate": str(record.commission_rate),
        "commission_amount": str(record.commission_amount),
        "status": record.status,
        "created_at": record.created_at,
    }


class AffiliateService:
    """Affiliate service for enrollment and statistics."""

    def __init__(
        self, session: AsyncSession, settings: Settings | None = None
    ) -> None:
        """
        Initialize affiliate service.

        Args:
            session: Database session
            settings: Optional settings (defaults apply when omitted)
        """
        self.session = session
        self.code_length = (
            settings.referral_code_length
            if settings
            else DEFAULT_REFERRAL_CODE_LENGTH
        )
        self.code_attempts = (
            settings.referral_code_max_attempts
            if settings
            else DEFAULT_REFERRAL_CODE_ATTEMPTS
        )
        downline_max_depth = settings.downline_max_depth if settings else 10

        self.affiliate_repo = AffiliateRepository(session)
        self.sale_repo = AffiliateSaleRepository(session)
        self.record_repo = CommissionRecordRepository(session)
        self.referral_graph = ReferralGraph(session, downline_max_depth)
        self.ledger = BalanceLedger(session)

    async def generate_unique_referral_code(self) -> str:
        """
        Generate a referral code not used by any affiliate.

        Raises:
            ReferralCodeGenerationError: Every attempt collided
        """
        for _ in range(self.code_attempts):
            code = generate_referral_code(self.code_length)
            if not await self.affiliate_repo.referral_code_exists(code):
                return code

        logger.error(
            "Referral code space exhausted",
            extra={
                "attempts": self.code_attempts,
                "length": self.code_length,
            },
        )
        raise ReferralCodeGenerationError(self.code_attempts)

    async def _resolve_parent(
        self,
        parent_referral_code: str | None,
        parent_affiliate_id: int | None,
    ) -> Affiliate | None:
        if parent_referral_code is None and parent_affiliate_id is None:
            return None

        if parent_referral_code is not None:
            parent = await self.get_by_referral_code(parent_referral_code)
            if parent is None:
                raise AffiliateNotFoundError(parent_referral_code)
            if (
                parent_affiliate_id is not None
                and parent.id != parent_affiliate_id
            ):
                raise InvalidInputError(
                    "Referral code does not belong to the given referrer"
                )
        else:
            parent = await self.affiliate_repo.get_by_id(parent_affiliate_id)
            if parent is None:
                raise AffiliateNotFoundError(parent_affiliate_id)

        if not parent.is_active:
            raise InvalidInputError(f"Referrer {parent.id} is not active")
        return parent

    async def enroll(
        self,
        user_id: int | None = None,
        name: str | None = None,
        email: str | None = None,
        parent_referral_code: str | None = None,
        parent_affiliate_id: int | None = None,
    ) -> Affiliate:
        """
        Enroll a new affiliate.

        Args:
            user_id: Optional external user reference
            name: Display name
            email: Contact email
            parent_referral_code: Referral code of the referrer
            parent_affiliate_id: ID of the referrer

        Returns:
            Created affiliate

        Raises:
            AffiliateNotFoundError: Unknown referrer
            InvalidInputError: Inactive referrer or inconsistent referrer
            ReferralCodeGenerationError: No unique code found
        """
        parent = await self._resolve_parent(
            parent_referral_code, parent_affiliate_id
        )
        parent_id = parent.id if parent else None

        for _ in range(self.code_attempts):
            referral_code = await self.generate_unique_referral_code()
            try:
                affiliate = await self.affiliate_repo.create(
                    user_id=user_id,
                    name=sanitize_input(name, max_length=255),
                    email=sanitize_input(email, max_length=255),
                    referral_code=referral_code,
                    parent_affiliate_id=parent_id,
                    is_active=True,
                )
                if parent_id is not None:
                    await self.referral_graph.refresh_network_counters(
                        parent_id
                    )
                await self.session.commit()
            except IntegrityError:
                await self.session.rollback()
                if not await self.affiliate_repo.referral_code_exists(
                    referral_code
                ):
                    raise
                logger.warning(
                    "Referral code taken concurrently, retrying",
                    extra={"referral_code": referral_code},
                )
                continue
            except Exception as e:
                await self.session.rollback()
                logger.error(
                    "Failed to enroll affiliate",
                    extra={"user_id": user_id, "error": str(e)},
                )
                raise
            break
        else:
            logger.error(
                "Referral code kept colliding on insert",
                extra={"attempts": self.code_attempts},
            )
            raise ReferralCodeGenerationError(self.code_attempts)

        logger.info(
            "Affiliate enrolled",
            extra={
                "affiliate_id": affiliate.id,
                "user_id": user_id,
                "referral_code": referral_code,
                "parent_affiliate_id": affiliate.parent_affiliate_id,
            },
        )
        return affiliate

    async def set_active(
        self, affiliate_id: int, is_active: bool
    ) -> Affiliate:
        """
        Activate or deactivate an affiliate.

        Deactivated affiliates keep their ledger and position in the tree
        but cannot be credited with new sales.

        Raises:
            AffiliateNotFoundError: Unknown affiliate
        """
        affiliate = await self.affiliate_repo.get_by_id(affiliate_id)
        if affiliate is None:
            raise AffiliateNotFoundError(affiliate_id)

        affiliate.is_active = is_active
        await self.session.commit()

        logger.info(
            "Affiliate activation changed",
            extra={"affiliate_id": affiliate_id, "is_active": is_active},
        )
        return affiliate

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
        if not validate_referral_code(referral_code):
            return None
        return await self.affiliate_repo.get_by_referral_code(referral_code)

    async def get_affiliate_earnings(
        self, affiliate_id: int
    ) -> dict[str, Any]:
        """
        Get detailed earnings breakdown of an affiliate.

        Args:
            affiliate_id: Affiliate ID

        Returns:
            Dict with affiliate, ledger, sales, commissions and recent items

        Raises:
            AffiliateNotFoundError: Unknown affiliate
        """
        affiliate = await self.affiliate_repo.get_by_id(affiliate_id)
        if affiliate is None:
            raise AffiliateNotFoundError(affiliate_id)

        ledger = await self.ledger.get_ledger(affiliate_id)
        sales = await self.sale_repo.get_stats(affiliate_id)
        by_status = await self.record_repo.get_totals_by_status(affiliate_id)
        by_level = await self.record_repo.get_level_breakdown(affiliate_id)
        recent_sales = await self.sale_repo.get_recent_for_affiliate(
            affiliate_id, RECENT_ITEMS_LIMIT
        )
        recent_commissions = await self.record_repo.get_recent_for_affiliate(
            affiliate_id, RECENT_ITEMS_LIMIT
        )

        return {
            "affiliate": {
                "id": affiliate.id,
                "name": affiliate.name,
                "email": affiliate.email,
                "referral_code": affiliate.referral_code,
                "parent_affiliate_id": affiliate.parent_affiliate_id,
                "is_active": affiliate.is_active,
                "direct_referrals": affiliate.direct_referrals,
                "total_downline": affiliate.total_downline,
            },
            "ledger": ledger,
            "sales": sales,
            "commissions": {
                "by_status": by_status,
                "by_level": by_level,
            },
            "recent_sales": [_sale_to_dict(s) for s in recent_sales],
            "recent_commissions": [
                _commission_to_dict(c) for c in recent_commissions
            ],
        }

    async def get_system_stats(self) -> dict[str, Any]:
        """
        Get system-wide affiliate statistics.

        Returns:
            Dict with affiliates, sales and commissions aggregates
        """
        return {
            "affiliates": await self.affiliate_repo.get_totals(),
            "sales": await self.sale_repo.get_stats(),
            "commissions": await self.record_repo.get_totals_by_status(),
        }
