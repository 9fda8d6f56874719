# EnergyScheduler/src/state/last_update.py
# @ai-rules:
# 1. [Pattern]: All reads and mutations guarded by asyncio.Lock. is_new is an atomic check-and-set.
# 2. [Constraint]: "Not-equal" staleness. An EARLIER distinct timestamp is still new.
# 3. [Gotcha]: Entries are never deleted; reset() only runs on explicit full reset.
"""Metrics Staleness Detector backed by the per-node last-update record."""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime

logger = logging.getLogger(__name__)


class LastUpdateRecord:
    """node name -> latest timestamp of the most recently consumed metrics sample."""

    def __init__(self) -> None:
        self._seen: dict[str, datetime] = {}
        self._lock = asyncio.Lock()

    async def is_new(self, node: str, latest_timestamp: datetime) -> bool:
        """
        True unless `latest_timestamp` equals the one last recorded for `node`.

        Records the timestamp when returning True, so two concurrent callers
        with the same sample cannot both proceed.
        """
        async with self._lock:
            previous = self._seen.get(node)
            if previous is not None and previous == latest_timestamp:
                return False
            self._seen[node] = latest_timestamp
            return True

    async def reset(self) -> None:
        """Forget every node."""
        async with self._lock:
            self._seen.clear()
        logger.info("Last-update record cleared")

    def __len__(self) -> int:
        return len(self._seen)
