# EnergyScheduler/src/main.py
# @ai-rules:
# 1. [Pattern]: Every collaborator is built once in lifespan() and stored on app.state. No module-level mutable state.
# 2. [Constraint]: Node store construction failure is fatal. Sink bootstrap failure is fatal only when the monitor is enabled.
# 3. [Pattern]: EnergyMonitor start is conditional on MONITOR_ENABLED. Shutdown stops it before closing clients.
"""
Energy Scheduler - FastAPI Application

Hosts the three control loops around the per-node energy score:
- Seeder (GET /setup, GET /reset)
- Energy Monitor (background loop, MONITOR_ENABLED=true; GET /monitor/status, POST /monitor/reset)
- Scheduler extender (POST /filter)
"""
from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import PlainTextResponse

from .models import HealthResponse
from .observers.energy_monitor import MONITOR_ENABLED, EnergyMonitor
from .observers.metrics_client import MetricsClient
from .routes import extender_router, monitor_router, scores_router, seeding_router
from .routes.extender import EXTENDER_PATH
from .seeder import Seeder
from .state.label_updater import LabelUpdater
from .state.last_update import LastUpdateRecord
from .state.node_store import KubernetesNodeStore
from .state.redis_client import RedisClient
from .state.score_sink import ScoreSink

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if os.getenv("DEBUG") else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Squelch noisy client loggers
for noisy in ("kubernetes.client.rest", "urllib3.connectionpool", "httpx", "httpcore"):
    logging.getLogger(noisy).setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Builds the node store, label updater and drivers on startup; starts the
    monitor when enabled. Stops the monitor and closes clients on shutdown.
    """
    logger.info("Energy Scheduler starting up...")

    # Raises NodeStoreError -> startup aborts
    store = KubernetesNodeStore.from_environment()
    app.state.node_store = store
    logger.info("Created kubernetes client")

    updater = LabelUpdater(store)
    app.state.seeder = Seeder(store, updater)

    redis_client = None
    metrics = None
    monitor = None
    if MONITOR_ENABLED:
        # Redis is REQUIRED for the monitor - a connect/bootstrap failure aborts startup
        redis_client = RedisClient()
        sink = await ScoreSink.create(redis_client)
        app.state.score_sink = sink
        logger.info("Created score sink")

        metrics = MetricsClient()
        monitor = EnergyMonitor(
            store=store,
            metrics=metrics,
            updater=updater,
            sink=sink,
            last_update=LastUpdateRecord(),
        )
        app.state.monitor = monitor
        await monitor.start()
    else:
        logger.info("EnergyMonitor disabled (MONITOR_ENABLED=false)")

    logger.info(f"Energy Scheduler ready (extender at POST {EXTENDER_PATH})")

    yield  # Application runs here

    logger.info("Energy Scheduler shutting down...")

    if monitor:
        await monitor.stop()
    if metrics:
        await metrics.close()
    if redis_client:
        await redis_client.close()
        logger.info("Redis connection closed")


# Create FastAPI application
app = FastAPI(
    title="Energy Scheduler",
    description="Energy-score node labelling and lowest-score scheduler extender",
    version="1.0.0",
    lifespan=lifespan,
)


# =============================================================================
# Health Endpoints
# =============================================================================

@app.get("/", response_class=PlainTextResponse, tags=["health"])
async def hello() -> str:
    return "Hello!"


@app.get("/health", response_model=HealthResponse, tags=["health"])
async def health_check(request: Request) -> HealthResponse:
    """
    Health check endpoint for kubelet liveness and readiness checks.

    Returns 503 Service Unavailable if the node store is not initialized.
    """
    if getattr(request.app.state, "node_store", None) is None:
        raise HTTPException(
            status_code=503,
            detail="Node store not initialized - kubernetes client may have failed"
        )

    monitor = getattr(request.app.state, "monitor", None)
    return HealthResponse(status="ok", monitor_running=bool(monitor and monitor.running))


# =============================================================================
# Mount Routers
# =============================================================================

app.include_router(extender_router)
app.include_router(seeding_router)
app.include_router(scores_router)
app.include_router(monitor_router)


# =============================================================================
# API Info
# =============================================================================

@app.get("/info", tags=["info"])
async def api_info() -> dict:
    """Get API information and available endpoints."""
    return {
        "name": "Energy Scheduler",
        "version": "1.0.0",
        "endpoints": {
            "health": "GET /health",
            "extender": f"POST {EXTENDER_PATH}",
            "seeding": {
                "setup": "GET /setup?mean=50&std=25",
                "reset": "GET /reset",
            },
            "scores": {
                "current": "GET /scores",
                "hosts": "GET /scores/hosts",
                "history": "GET /scores/{node}/history",
            },
            "monitor": {
                "status": "GET /monitor/status",
                "reset": "POST /monitor/reset",
            },
        },
        "monitor_enabled": MONITOR_ENABLED,
    }
