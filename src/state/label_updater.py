# EnergyScheduler/src/state/label_updater.py
# @ai-rules:
# 1. [Pattern]: Attempt -> (Success | Conflict -> Refetch -> Attempt | OtherError -> Fail), bounded by `retries`.
# 2. [Constraint]: No client-side lock. Concurrent writers to the same node resolve through the store's 409 + this loop.
# 3. [Gotcha]: `retries` counts RE-attempts. Total update calls = retries + 1 before RetryBudgetExceeded.
# 4. [Constraint]: Only ConflictError is retried. Any other NodeStoreError propagates on the first occurrence.
"""Label Update Protocol: persist a node's score label under optimistic concurrency."""
from __future__ import annotations

import logging
import os
from typing import Optional, Protocol

from ..models import NodeSnapshot
from ..scoring.score import JOULES_LABEL
from .node_store import ConflictError

logger = logging.getLogger(__name__)

LABEL_UPDATE_RETRIES = int(os.getenv("LABEL_UPDATE_RETRIES", "3"))


class NodeStore(Protocol):
    async def list_nodes(self) -> list[NodeSnapshot]: ...

    async def get_node(self, name: str) -> NodeSnapshot: ...

    async def update_node(self, snapshot: NodeSnapshot) -> NodeSnapshot: ...


class LabelUpdateError(Exception):
    """Terminal failure of the label update protocol."""


class RetryBudgetExceeded(LabelUpdateError):
    """Every attempt hit a version conflict."""

    def __init__(self, node: str, retries: int):
        self.node = node
        self.retries = retries
        super().__init__(
            f"Tried to update node {node}, but amount of retries ({retries}) exceeded"
        )


class LabelUpdater:
    """Sets one label on a node, re-reading and retrying on version conflicts."""

    def __init__(
        self,
        store: NodeStore,
        label: str = JOULES_LABEL,
        retries: int = LABEL_UPDATE_RETRIES,
    ):
        self.store = store
        self.label = label
        self.retries = retries

    async def update_score(
        self,
        node_name: str,
        score_text: str,
        snapshot: Optional[NodeSnapshot] = None,
    ) -> NodeSnapshot:
        """
        Persist `score_text` as the node's score label.

        Args:
            node_name: Node to update
            score_text: Exact label value to write
            snapshot: Optional already-fetched snapshot to attempt first;
                fetched from the store when omitted

        Returns the snapshot as written by the store.

        Raises:
            RetryBudgetExceeded: conflicts on every one of retries + 1 attempts
            NodeStoreError: any non-conflict store error (no retry)
        """
        current = snapshot if snapshot is not None else await self.store.get_node(node_name)

        attempt = 0
        while True:
            try:
                written = await self.store.update_node(current.with_label(self.label, score_text))
            except ConflictError as e:
                if attempt >= self.retries:
                    logger.error(
                        f"Tried to update node {node_name}, but amount of retries ({self.retries}) exceeded"
                    )
                    raise RetryBudgetExceeded(node_name, self.retries) from e
                attempt += 1
                logger.info(
                    f"Conflict updating node {node_name} (retry {attempt}/{self.retries}): {e}, refetching"
                )
                current = await self.store.get_node(node_name)
                continue

            logger.debug(f"Updated node {node_name} label {self.label}={score_text}")
            return written
