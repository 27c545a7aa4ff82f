"""
Unit tests for CommissionRecordRepository.

Tests batch uniqueness, status transitions and aggregates.
"""

from datetime import UTC, datetime
from decimal import Decimal

import pytest
from sqlalchemy.exc import IntegrityError

from commission_engine.models.enums import CommissionStatus
from commission_engine.repositories.commission_record_repository import (
    CommissionRecordRepository,
)


def _record(sale_id, affiliate_id, level, amount="10.00"):
    return {
        "sale_id": sale_id,
        "affiliate_id": affiliate_id,
        "level": level,
        "commission_rate": Decimal("10.00"),
        "commission_amount": Decimal(amount),
        "status": CommissionStatus.PENDING.value,
    }


class TestCommissionRecordRepository:
    """Tests for commission record data access."""

    @pytest.mark.asyncio
    async def test_one_record_per_sale_and_level(
        self,
        db_session,  # pylint: disable=redefined-outer-name
        create_affiliate_helper,  # pylint: disable=redefined-outer-name
        verified_sale_helper,  # pylint: disable=redefined-outer-name
    ):
        """A sale cannot have two records on the same level."""
        affiliate = await create_affiliate_helper()
        affiliate_id = affiliate.id
        sale_id = await verified_sale_helper(affiliate_id)
        repo = CommissionRecordRepository(db_session)

        await repo.bulk_create([_record(sale_id, affiliate_id, 0)])
        await db_session.commit()

        with pytest.raises(IntegrityError):
            await repo.bulk_create([_record(sale_id, affiliate_id, 0)])
        await db_session.rollback()

        assert await repo.count(sale_id=sale_id) == 1

    @pytest.mark.asyncio
    async def test_set_batch_status_only_touches_pending(
        self,
        db_session,  # pylint: disable=redefined-outer-name
        create_affiliate_helper,  # pylint: disable=redefined-outer-name
        verified_sale_helper,  # pylint: disable=redefined-outer-name
    ):
        """Settled records are never moved again."""
        affiliate = await create_affiliate_helper()
        sale_id = await verified_sale_helper(affiliate.id)
        repo = CommissionRecordRepository(db_session)
        records = await repo.bulk_create(
            [_record(sale_id, affiliate.id, level) for level in range(2)]
        )
        ids = [r.id for r in records]
        now = datetime.now(UTC)

        assert await repo.set_batch_status(ids, CommissionStatus.PAID, now) == 2
        assert await repo.set_batch_status(
            ids, CommissionStatus.CANCELLED, now
        ) == 0
        assert await repo.set_batch_status([], CommissionStatus.PAID, now) == 0
        await db_session.commit()

        stored = await repo.get_by_sale(sale_id)
        assert [r.level for r in stored] == [0, 1]
        assert all(r.status == CommissionStatus.PAID for r in stored)
        assert all(r.cancelled_at is None for r in stored)
        assert await repo.exists_for_sale(sale_id, CommissionStatus.PAID)
        assert not await repo.exists_for_sale(
            sale_id, CommissionStatus.PENDING
        )

    @pytest.mark.asyncio
    async def test_totals_by_status_lists_every_status(
        self,
        db_session,  # pylint: disable=redefined-outer-name
        create_affiliate_helper,  # pylint: disable=redefined-outer-name
        verified_sale_helper,  # pylint: disable=redefined-outer-name
    ):
        """Statuses without records report zero."""
        affiliate = await create_affiliate_helper()
        sale_id = await verified_sale_helper(affiliate.id)
        repo = CommissionRecordRepository(db_session)
        await repo.bulk_create(
            [
                _record(sale_id, affiliate.id, 0, "12.50"),
                _record(sale_id, affiliate.id, 1, "2.50"),
            ]
        )
        await db_session.commit()

        totals = await repo.get_totals_by_status(affiliate.id)

        assert totals["PENDING"] == {"count": 2, "amount": Decimal("15")}
        assert totals["PAID"] == {"count": 0, "amount": Decimal("0")}
        assert totals["CANCELLED"] == {"count": 0, "amount": Decimal("0")}
        assert await repo.get_totals_by_status(404) == {
            status.value: {"count": 0, "amount": Decimal("0")}
            for status in CommissionStatus
        }
