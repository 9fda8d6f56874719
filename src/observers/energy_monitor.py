# EnergyScheduler/src/observers/energy_monitor.py
# @ai-rules:
# 1. [Pattern]: One asyncio task per node per cycle, joined with gather(). The next tick never starts before the barrier.
# 2. [Pattern]: Per-node order is strict: fetch metrics -> staleness check -> accumulate -> label update -> sink.
# 3. [Constraint]: A node failure is logged and counted, never raised. Siblings and the cycle continue.
# 4. [Gotcha]: Every node task is bounded by MONITOR_TASK_TIMEOUT so a hung call cannot hold the barrier forever.
# 5. [Gotcha]: The staleness record is updated before accumulation. A sample that fails later is not retried until a newer one arrives.
"""
Energy Monitor.

Periodically recomputes each node's energy score from cumulative CPU usage
readings, persists it as a node label and forwards it to the time-series sink.
"""
from __future__ import annotations

import asyncio
import logging
import os
import time
from enum import Enum
from typing import TYPE_CHECKING, Optional

from ..models import MonitorCycleSummary, NodeSnapshot
from ..scoring.accumulator import AccumulationError, accumulate
from ..scoring.score import JOULES_LABEL, ScoreParseError, format_score
from ..state.label_updater import LabelUpdateError
from ..state.last_update import LastUpdateRecord
from ..state.node_store import NodeStoreError
from ..state.score_sink import SinkError
from .metrics_client import MetricsError

if TYPE_CHECKING:
    from ..state.label_updater import LabelUpdater, NodeStore
    from ..state.score_sink import ScoreSink
    from .metrics_client import MetricsClient

logger = logging.getLogger(__name__)

# Environment variable configuration
MONITOR_ENABLED = os.getenv("MONITOR_ENABLED", "false").lower() == "true"
MONITOR_INTERVAL = float(os.getenv("MONITOR_INTERVAL", "5"))
MONITOR_TASK_TIMEOUT = float(os.getenv("MONITOR_TASK_TIMEOUT", "30"))

# Errors that skip a single node for the current cycle
NODE_SKIPPABLE_ERRORS = (
    MetricsError,
    AccumulationError,
    ScoreParseError,
    LabelUpdateError,
    NodeStoreError,
    SinkError,
)


class NodeOutcome(str, Enum):
    UPDATED = "updated"
    STALE = "stale"
    FAILED = "failed"


class EnergyMonitor:
    """
    Recurring driver: list nodes, fan out one task per node, wait for all.

    Usage:
        monitor = EnergyMonitor(store, metrics, updater, sink)
        await monitor.start()
        ...
        await monitor.stop()
    """

    def __init__(
        self,
        store: "NodeStore",
        metrics: "MetricsClient",
        updater: "LabelUpdater",
        sink: Optional["ScoreSink"] = None,
        last_update: Optional[LastUpdateRecord] = None,
        interval: float = MONITOR_INTERVAL,
        task_timeout: float = MONITOR_TASK_TIMEOUT,
        label: str = JOULES_LABEL,
    ):
        self.store = store
        self.metrics = metrics
        self.updater = updater
        self.sink = sink
        self.last_update = last_update or LastUpdateRecord()
        self.interval = interval
        self.task_timeout = task_timeout
        self.label = label

        self._running = False
        self._task: Optional[asyncio.Task] = None
        self.cycles = 0
        self.last_summary: Optional[MonitorCycleSummary] = None

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Start the background polling loop."""
        if self._running:
            logger.warning("EnergyMonitor already running")
            return

        self._running = True
        self._task = asyncio.create_task(self._polling_loop())
        logger.info(
            f"EnergyMonitor started: interval={self.interval}s, "
            f"task_timeout={self.task_timeout}s, label={self.label}"
        )

    async def stop(self) -> None:
        """Stop the polling loop gracefully."""
        if not self._running:
            return

        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

        logger.info("EnergyMonitor stopped")

    async def reset(self) -> None:
        """Full reset: forget every consumed sample."""
        await self.last_update.reset()

    async def _polling_loop(self) -> None:
        """Main polling loop - runs until stopped."""
        while self._running:
            started = time.monotonic()
            try:
                await self.run_cycle()
            except Exception as e:
                logger.error(f"Energy monitor cycle failed: {e}")

            # Ticks never overlap: the remaining interval is slept after the barrier
            delay = max(0.0, self.interval - (time.monotonic() - started))
            try:
                await asyncio.sleep(delay)
            except asyncio.CancelledError:
                break

    async def run_cycle(self) -> MonitorCycleSummary:
        """
        Run one monitor iteration over every node.

        Listing failures are logged and produce an empty summary; the next
        tick simply tries again.
        """
        started = time.monotonic()
        summary = MonitorCycleSummary()

        try:
            nodes = await self.store.list_nodes()
        except NodeStoreError as e:
            logger.warning(f"Could not list nodes, trying again in {self.interval}s: {e}")
            self.last_summary = summary
            return summary

        summary.total = len(nodes)
        logger.debug(f"Listed {len(nodes)} nodes")

        outcomes = await asyncio.gather(*(self._update_node(node) for node in nodes))

        for node, (outcome, detail) in zip(nodes, outcomes):
            if outcome is NodeOutcome.UPDATED:
                summary.updated.append(node.name)
            elif outcome is NodeOutcome.STALE:
                summary.stale.append(node.name)
            else:
                summary.failed[node.name] = detail

        summary.duration_seconds = time.monotonic() - started
        self.cycles += 1
        self.last_summary = summary
        logger.info(
            f"Update finished: {len(summary.updated)} updated, {len(summary.stale)} stale, "
            f"{len(summary.failed)} failed of {summary.total} nodes ({summary.duration_seconds:.2f}s)"
        )
        return summary

    async def _update_node(self, node: NodeSnapshot) -> tuple[NodeOutcome, str]:
        """Per-node task boundary: bound by timeout, swallow skippable errors."""
        try:
            return await asyncio.wait_for(self._process_node(node), timeout=self.task_timeout)
        except asyncio.TimeoutError:
            message = f"timed out after {self.task_timeout}s"
        except NODE_SKIPPABLE_ERRORS as e:
            message = str(e)
        logger.warning(f"Error updating node '{node.name}': {message}, skipping...")
        return NodeOutcome.FAILED, message

    async def _process_node(self, node: NodeSnapshot) -> tuple[NodeOutcome, str]:
        name = node.name
        sample = await self.metrics.fetch(name)

        if not await self.last_update.is_new(name, sample.latest_timestamp):
            logger.debug(f"Skipped computing joules for node {name}, no new readings")
            return NodeOutcome.STALE, ""

        old_label = node.labels.get(self.label)
        new_score = accumulate(old_label, sample)
        new_label = format_score(new_score)

        await self.updater.update_score(name, new_label, snapshot=node)

        if self.sink is not None:
            await self.sink.insert(name, new_score)

        logger.info(f"Updated joules label for node {name} from {old_label} to {new_label}")
        return NodeOutcome.UPDATED, new_label
