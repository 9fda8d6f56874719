# EnergyScheduler/scripts/run_monitor_local.py
# @ai-rules:
# 1. [Constraint]: Standalone script -- no Redis. Sink points are printed to stdout.
# 2. [Pattern]: --dry-run computes new scores but never writes node labels.
"""
Run Energy Monitor cycles locally against a real cluster.

Validates: kube config, node listing, metrics backend reachability,
staleness detection, score accumulation.
Does NOT write to Redis -- prints sink points for inspection.

Usage:
  METRICS_SERVICE_URL=http://localhost:8082 \
  python -m scripts.run_monitor_local [--dry-run] [--cycles 3]
"""
from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
import time
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from src.models import NodeSnapshot

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s")
logger = logging.getLogger("monitor.local")


class StubSink:
    """Minimal stub that captures insert calls without Redis."""

    def __init__(self):
        self.points: list[dict] = []

    async def insert(self, hostname: str, total: float, timestamp: float | None = None) -> None:
        point = {"hostname": hostname, "total": total, "timestamp": timestamp or time.time()}
        self.points.append(point)
        print(json.dumps(point))


class DryRunUpdater:
    """Logs the label a real LabelUpdater would write."""

    label = "joules"

    async def update_score(self, node_name: str, score_text: str, snapshot: NodeSnapshot | None = None):
        logger.info(f"[dry-run] would set {self.label}={score_text} on {node_name}")
        return snapshot


async def run(args: argparse.Namespace) -> None:
    from src.observers.energy_monitor import EnergyMonitor
    from src.observers.metrics_client import MetricsClient
    from src.state.label_updater import LabelUpdater
    from src.state.node_store import KubernetesNodeStore

    store = KubernetesNodeStore.from_environment()
    updater = DryRunUpdater() if args.dry_run else LabelUpdater(store)
    metrics = MetricsClient()
    sink = StubSink()
    monitor = EnergyMonitor(store, metrics, updater, sink=sink, interval=args.interval)

    try:
        for cycle in range(1, args.cycles + 1):
            summary = await monitor.run_cycle()
            logger.info(f"Cycle {cycle}: {summary.model_dump_json()}")
            if cycle < args.cycles:
                await asyncio.sleep(args.interval)
    finally:
        await metrics.close()

    logger.info(f"Total sink points: {len(sink.points)}")


def main():
    parser = argparse.ArgumentParser(description="Run Energy Monitor locally (no Redis)")
    parser.add_argument("--dry-run", action="store_true", help="Compute scores, skip label writes")
    parser.add_argument("--cycles", type=int, default=1, help="Number of monitor cycles")
    parser.add_argument("--interval", type=float, default=5.0, help="Seconds between cycles")
    args = parser.parse_args()

    asyncio.run(run(args))


if __name__ == "__main__":
    main()
