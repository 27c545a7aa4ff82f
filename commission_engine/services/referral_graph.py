"""
Referral graph.

Upline and downline traversal over affiliate parent pointers.
"""

from collections import deque
from dataclasses import dataclass

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from commission_engine.models.affiliate import Affiliate
from commission_engine.repositories.affiliate_repository import (
    AffiliateRepository,
)

DEFAULT_DOWNLINE_DEPTH = 10


@dataclass(frozen=True)
class DownlineEntry:
    """Affiliate found below another one, depth 1 = direct referral."""

    affiliate: Affiliate
    depth: int


class ReferralGraph:
    """
    Referral graph service.

    Traversals never fail on a broken chain: a missing row or a null parent
    ends the walk. Both directions keep a visited set, so a malformed
    parent pointer loop cannot make them spin.
    """

    def __init__(
        self,
        session: AsyncSession,
        downline_max_depth: int = DEFAULT_DOWNLINE_DEPTH,
    ) -> None:
        """
        Initialize referral graph.

        Args:
            session: Database session
            downline_max_depth: Default depth for downline traversal
        """
        self.session = session
        self.downline_max_depth = downline_max_depth
        self.affiliate_repo = AffiliateRepository(session)

    async def upline_chain(
        self, affiliate_id: int, max_levels: int
    ) -> list[Affiliate]:
        """
        Get upline of an affiliate, nearest parent first.

        Args:
            affiliate_id: Starting affiliate (not included)
            max_levels: Max number of parents to return

        Returns:
            List of upline affiliates
        """
        chain: list[Affiliate] = []
        visited = {affiliate_id}

        parent_id = await self.affiliate_repo.get_parent_id(affiliate_id)
        while parent_id is not None and len(chain) < max_levels:
            if parent_id in visited:
                logger.warning(
                    "Referral loop detected in upline",
                    extra={
                        "affiliate_id": affiliate_id,
                        "loop_at": parent_id,
                        "chain_ids": [a.id for a in chain],
                    },
                )
                break
            visited.add(parent_id)

            parent = await self.affiliate_repo.get_by_id(parent_id)
            if parent is None:
                break

            chain.append(parent)
            parent_id = parent.parent_affiliate_id

        return chain

    async def downline(
        self, affiliate_id: int, max_levels: int | None = None
    ) -> list[DownlineEntry]:
        """
        Get downline of an affiliate, breadth first.

        Args:
            affiliate_id: Root of the traversal (not included)
            max_levels: Max depth, defaults to configured depth

        Returns:
            Downline entries ordered by depth
        """
        if max_levels is None:
            max_levels = self.downline_max_depth

        entries: list[DownlineEntry] = []
        visited = {affiliate_id}
        queue: deque[tuple[int, int]] = deque([(affiliate_id, 0)])

        while queue:
            # Expand one whole depth level per query
            depth = queue[0][1]
            if depth >= max_levels:
                break

            frontier = []
            while queue and queue[0][1] == depth:
                frontier.append(queue.popleft()[0])

            children = await self.affiliate_repo.get_children_of(frontier)
            for child in children:
                if child.id in visited:
                    continue
                visited.add(child.id)
                entries.append(DownlineEntry(affiliate=child, depth=depth + 1))
                queue.append((child.id, depth + 1))

        return entries

    async def count_downline(
        self, affiliate_id: int, max_levels: int | None = None
    ) -> int:
        """Count affiliates in the downline."""
        return len(await self.downline(affiliate_id, max_levels))

    async def direct_children(self, affiliate_id: int) -> list[Affiliate]:
        """Get direct referrals of an affiliate."""
        return await self.affiliate_repo.get_children(affiliate_id)

    async def refresh_network_counters(self, affiliate_id: int) -> None:
        """
        Recompute direct_referrals and total_downline.

        Updates the affiliate and every affiliate in its upline, since a new
        referral grows all their downlines. Runs in the caller's transaction.

        Args:
            affiliate_id: Affiliate whose subtree changed
        """
        targets = [affiliate_id] + [
            a.id
            for a in await self.upline_chain(
                affiliate_id, self.downline_max_depth
            )
        ]

        for target_id in targets:
            direct = await self.affiliate_repo.count_children(target_id)
            total = await self.count_downline(target_id)
            await self.affiliate_repo.update_network_counters(
                target_id, direct, total
            )

        logger.debug(
            "Network counters refreshed",
            extra={"affiliate_id": affiliate_id, "updated": len(targets)},
        )
