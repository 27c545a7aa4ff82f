"""
Unit tests for ReferralGraph.

Tests upline and downline traversal, loop safety and network counters.
"""

import pytest
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from commission_engine.models import Affiliate
from commission_engine.repositories import AffiliateRepository
from commission_engine.services.referral_graph import ReferralGraph


@pytest.mark.asyncio
async def test_upline_chain_nearest_first(
    db_session: AsyncSession,  # pylint: disable=redefined-outer-name
    affiliate_chain_helper,  # pylint: disable=redefined-outer-name
):
    """Upline is ordered nearest parent first and excludes the start."""
    chain = await affiliate_chain_helper(4)
    graph = ReferralGraph(db_session)

    upline = await graph.upline_chain(chain[0], max_levels=10)

    assert [a.id for a in upline] == chain[1:]


@pytest.mark.asyncio
async def test_upline_chain_respects_max_levels(
    db_session: AsyncSession,  # pylint: disable=redefined-outer-name
    affiliate_chain_helper,  # pylint: disable=redefined-outer-name
):
    """Upline stops after max_levels hops."""
    chain = await affiliate_chain_helper(5)

    upline = await ReferralGraph(db_session).upline_chain(chain[0], 2)

    assert [a.id for a in upline] == chain[1:3]


@pytest.mark.asyncio
async def test_upline_of_root_is_empty(
    db_session: AsyncSession,  # pylint: disable=redefined-outer-name
    create_affiliate_helper,  # pylint: disable=redefined-outer-name
):
    """Root affiliates and unknown IDs have no upline."""
    root = await create_affiliate_helper()
    graph = ReferralGraph(db_session)

    assert await graph.upline_chain(root.id, 5) == []
    assert await graph.upline_chain(12345, 5) == []


@pytest.mark.asyncio
async def test_upline_stops_on_loop(
    db_session: AsyncSession,  # pylint: disable=redefined-outer-name
    affiliate_chain_helper,  # pylint: disable=redefined-outer-name
):
    """A malformed parent loop ends the walk instead of repeating."""
    seller_id, parent_id, root_id = await affiliate_chain_helper(3)
    # Close the loop: root -> seller
    await db_session.execute(
        update(Affiliate)
        .where(Affiliate.id == root_id)
        .values(parent_affiliate_id=seller_id)
    )
    await db_session.commit()

    upline = await ReferralGraph(db_session).upline_chain(seller_id, 10)

    assert [a.id for a in upline] == [parent_id, root_id]


@pytest.mark.asyncio
async def test_downline_breadth_first_with_depth(
    db_session: AsyncSession,  # pylint: disable=redefined-outer-name
    create_affiliate_helper,  # pylint: disable=redefined-outer-name
):
    """Downline lists children at depth 1, grandchildren at depth 2."""
    root = await create_affiliate_helper()
    child_a = await create_affiliate_helper(parent_affiliate_id=root.id)
    child_b = await create_affiliate_helper(parent_affiliate_id=root.id)
    grandchild = await create_affiliate_helper(parent_affiliate_id=child_a.id)
    root_id, child_a_id, child_b_id, grandchild_id = (
        root.id,
        child_a.id,
        child_b.id,
        grandchild.id,
    )
    graph = ReferralGraph(db_session)

    entries = await graph.downline(root_id)

    assert [(e.affiliate.id, e.depth) for e in entries] == [
        (child_a_id, 1),
        (child_b_id, 1),
        (grandchild_id, 2),
    ]
    assert await graph.count_downline(root_id, max_levels=1) == 2
    assert [a.id for a in await graph.direct_children(root_id)] == [
        child_a_id,
        child_b_id,
    ]


@pytest.mark.asyncio
async def test_downline_default_depth_from_settings(
    db_session: AsyncSession,  # pylint: disable=redefined-outer-name
    affiliate_chain_helper,  # pylint: disable=redefined-outer-name
):
    """Downline uses the configured depth when none is given."""
    chain = await affiliate_chain_helper(5)
    root_id = chain[-1]

    graph = ReferralGraph(db_session, downline_max_depth=2)

    assert await graph.count_downline(root_id) == 2
    assert await graph.count_downline(root_id, max_levels=10) == 4


@pytest.mark.asyncio
async def test_downline_survives_loop(
    db_session: AsyncSession,  # pylint: disable=redefined-outer-name
    affiliate_chain_helper,  # pylint: disable=redefined-outer-name
):
    """A parent loop never yields an affiliate twice."""
    seller_id, parent_id, root_id = await affiliate_chain_helper(3)
    await db_session.execute(
        update(Affiliate)
        .where(Affiliate.id == root_id)
        .values(parent_affiliate_id=seller_id)
    )
    await db_session.commit()

    entries = await ReferralGraph(db_session).downline(root_id, 50)

    ids = [e.affiliate.id for e in entries]
    assert sorted(ids) == sorted([parent_id, seller_id])
    assert len(ids) == len(set(ids))


@pytest.mark.asyncio
async def test_refresh_network_counters_updates_upline(
    db_session: AsyncSession,  # pylint: disable=redefined-outer-name
    affiliate_chain_helper,  # pylint: disable=redefined-outer-name
):
    """Counters are recomputed for the affiliate and its upline."""
    seller_id, parent_id, root_id = await affiliate_chain_helper(3)

    await ReferralGraph(db_session).refresh_network_counters(seller_id)
    await db_session.commit()

    repo = AffiliateRepository(db_session)
    root = await repo.get_by_id(root_id)
    parent = await repo.get_by_id(parent_id)
    assert (root.direct_referrals, root.total_downline) == (1, 2)
    assert (parent.direct_referrals, parent.total_downline) == (1, 1)
