# EnergyScheduler/src/dependencies.py
"""
FastAPI dependency injection.

Collaborators are constructed once in main.py lifespan and stored on
app.state. Routes read them through these getters.
"""
from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import HTTPException, Request

if TYPE_CHECKING:
    from .observers.energy_monitor import EnergyMonitor
    from .seeder import Seeder
    from .state.label_updater import NodeStore
    from .state.score_sink import ScoreSink


def _require(request: Request, attr: str, what: str):
    value = getattr(request.app.state, attr, None)
    if value is None:
        raise HTTPException(status_code=503, detail=f"{what} not initialized. Check startup sequence.")
    return value


async def get_node_store(request: Request) -> "NodeStore":
    """Get the cluster-state store."""
    return _require(request, "node_store", "Node store")


async def get_seeder(request: Request) -> "Seeder":
    """Get the initializer driver."""
    return _require(request, "seeder", "Seeder")


async def get_score_sink(request: Request) -> "ScoreSink":
    """Get the time-series sink (only present when the monitor is enabled)."""
    return _require(request, "score_sink", "Score sink")


async def get_monitor(request: Request) -> "EnergyMonitor":
    """Get the monitor driver."""
    return _require(request, "monitor", "Energy monitor")
