# EnergyScheduler/src/routes/monitor.py
# @ai-rules:
# 1. [Constraint]: Only present when MONITOR_ENABLED=true. Without a monitor on app.state every route answers 503.
# 2. [Gotcha]: reset only clears the staleness record. Labels are untouched, so the next cycle re-accumulates the latest sample once.
"""Energy monitor control endpoints."""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from ..dependencies import get_monitor
from ..observers.energy_monitor import EnergyMonitor

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/monitor", tags=["monitor"])


@router.get("/status")
async def monitor_status(monitor: EnergyMonitor = Depends(get_monitor)) -> dict:
    """Loop state and the summary of the last completed cycle."""
    return {
        "running": monitor.running,
        "interval_seconds": monitor.interval,
        "cycles": monitor.cycles,
        "tracked_nodes": len(monitor.last_update),
        "last_cycle": monitor.last_summary.model_dump() if monitor.last_summary else None,
    }


@router.post("/reset")
async def reset_monitor(monitor: EnergyMonitor = Depends(get_monitor)) -> dict:
    """Full reset: forget every consumed metrics sample."""
    forgotten = len(monitor.last_update)
    await monitor.reset()
    logger.info(f"Monitor reset, forgot {forgotten} nodes")
    return {"status": "reset", "forgotten_nodes": forgotten}
