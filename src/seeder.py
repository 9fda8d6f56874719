# EnergyScheduler/src/seeder.py
# @ai-rules:
# 1. [Pattern]: One-shot fan-out: one task per node, joined with gather() before the pass returns.
# 2. [Constraint]: The last-seeded record is REPLACED (not merged) at the end of every seed pass, and only holds nodes whose update succeeded.
# 3. [Gotcha]: restore() writes through the same LabelUpdater, so a concurrent monitor write is resolved by the conflict retry loop.
"""
Seeder: initial energy scores for every node.

Seeds each node with a synthetic score drawn from a clamped normal
distribution and can replay the most recent seed values on demand.
"""
from __future__ import annotations

import asyncio
import logging
import random
from typing import TYPE_CHECKING, Optional

from .models import NodeSnapshot, RestoreSummary, SeedSummary
from .scoring.score import format_score
from .scoring.seeding import SEED_MAX, SEED_MIN, draw_seed
from .state.label_updater import LabelUpdateError
from .state.node_store import NodeStoreError

if TYPE_CHECKING:
    from .state.label_updater import LabelUpdater, NodeStore

logger = logging.getLogger(__name__)


class Seeder:
    """Initializer driver: seed pass + restore-last-values."""

    def __init__(
        self,
        store: "NodeStore",
        updater: "LabelUpdater",
        low: float = SEED_MIN,
        high: float = SEED_MAX,
        rng: Optional[random.Random] = None,
    ):
        self.store = store
        self.updater = updater
        self.low = low
        self.high = high
        self._rng = rng or random.Random()
        self._last_scores: dict[str, str] = {}
        self._lock = asyncio.Lock()

    @property
    def last_scores(self) -> dict[str, str]:
        """Copy of the most recent successful seed values (node -> label)."""
        return dict(self._last_scores)

    async def seed(self, mean: float, std: float) -> SeedSummary:
        """
        Draw and persist a fresh score for every node.

        Raises NodeStoreError when the node listing itself fails.
        """
        async with self._lock:
            logger.info(f"Seeding nodes: mean={mean}, std={std}")
            nodes = await self.store.list_nodes()
            summary = SeedSummary(mean=mean, std=std, total=len(nodes))
            done = 0

            async def seed_node(node: NodeSnapshot) -> None:
                nonlocal done
                score_text = format_score(draw_seed(mean, std, self.low, self.high, rng=self._rng))
                try:
                    await self.updater.update_score(node.name, score_text, snapshot=node)
                except (LabelUpdateError, NodeStoreError) as e:
                    summary.failed[node.name] = str(e)
                    logger.warning(f"Could not seed node {node.name}: {e}")
                    return
                summary.updated[node.name] = score_text
                done += 1
                logger.info(f"{done}/{len(nodes)}: updated node {node.name}")

            await asyncio.gather(*(seed_node(node) for node in nodes))

            self._last_scores = dict(summary.updated)
            return summary

    async def restore(self) -> RestoreSummary:
        """Set every node's label back to the value assigned by the last seed pass."""
        async with self._lock:
            if not self._last_scores:
                logger.info("No last labels recorded, run /setup first")
                return RestoreSummary(message="No last labels recorded, run /setup first")

            summary = RestoreSummary()

            async def restore_node(name: str, score_text: str) -> None:
                try:
                    await self.updater.update_score(name, score_text)
                except (LabelUpdateError, NodeStoreError) as e:
                    summary.failed[name] = str(e)
                    logger.warning(f"Failed to restore node '{name}', skipping: {e}")
                    return
                summary.restored[name] = score_text
                logger.info(f"Updated node {name} label: {self.updater.label}={score_text}")

            await asyncio.gather(*(restore_node(n, s) for n, s in self._last_scores.items()))

            summary.message = f"Restored {len(summary.restored)}/{len(self._last_scores)} nodes"
            return summary
