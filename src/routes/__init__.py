# EnergyScheduler/src/routes/__init__.py
"""API routes."""
from .extender import router as extender_router
from .monitor import router as monitor_router
from .scores import router as scores_router
from .seeding import router as seeding_router

__all__ = [
    "extender_router",
    "monitor_router",
    "scores_router",
    "seeding_router",
]
