"""
Unit tests for AffiliateRepository.

Tests referral code lookups, tree queries and ledger updates.
"""

from decimal import Decimal

import pytest

from commission_engine.repositories.affiliate_repository import (
    AffiliateRepository,
)


class TestAffiliateRepository:
    """Tests for affiliate data access."""

    @pytest.mark.asyncio
    async def test_referral_code_lookup(
        self,
        db_session,  # pylint: disable=redefined-outer-name
        create_affiliate_helper,  # pylint: disable=redefined-outer-name
    ):
        """Codes are matched case-insensitively."""
        affiliate = await create_affiliate_helper(referral_code="ABCDEF012345")
        repo = AffiliateRepository(db_session)

        found = await repo.get_by_referral_code(" abcdef012345 ")

        assert found.id == affiliate.id
        assert await repo.referral_code_exists("ABCDEF012345")
        assert not await repo.referral_code_exists("FFFFFF000000")

    @pytest.mark.asyncio
    async def test_tree_queries(
        self,
        db_session,  # pylint: disable=redefined-outer-name
        create_affiliate_helper,  # pylint: disable=redefined-outer-name
    ):
        """Children are listed per parent in ID order."""
        root = await create_affiliate_helper()
        other_root = await create_affiliate_helper()
        first = await create_affiliate_helper(parent_affiliate_id=root.id)
        second = await create_affiliate_helper(parent_affiliate_id=root.id)
        third = await create_affiliate_helper(
            parent_affiliate_id=other_root.id
        )
        repo = AffiliateRepository(db_session)

        assert await repo.get_parent_id(first.id) == root.id
        assert await repo.get_parent_id(root.id) is None
        assert [a.id for a in await repo.get_children(root.id)] == [
            first.id,
            second.id,
        ]
        assert [
            a.id for a in await repo.get_children_of([root.id, other_root.id])
        ] == [first.id, second.id, third.id]
        assert await repo.get_children_of([]) == []
        assert await repo.count_children(root.id) == 2

    @pytest.mark.asyncio
    async def test_adjust_ledger(
        self,
        db_session,  # pylint: disable=redefined-outer-name
        create_affiliate_helper,  # pylint: disable=redefined-outer-name
    ):
        """Ledger deltas are applied in a single update."""
        affiliate = await create_affiliate_helper()
        repo = AffiliateRepository(db_session)

        assert await repo.adjust_ledger(
            affiliate.id,
            pending_delta=Decimal("5.50"),
            available_delta=Decimal("1.25"),
            total_delta=Decimal("1.25"),
        )
        assert not await repo.adjust_ledger(404, pending_delta=Decimal("1"))
        await db_session.commit()

        stored = await repo.get_by_id(affiliate.id)
        assert stored.pending_balance == Decimal("5.50")
        assert stored.available_balance == Decimal("1.25")
        assert stored.total_earnings == Decimal("1.25")
