# EnergyScheduler/src/routes/seeding.py
"""
Seeding endpoints.

GET /setup?mean=35&std=10 seeds every node; GET /reset replays the last seed.
"""
from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from ..dependencies import get_seeder
from ..models import RestoreSummary, SeedSummary
from ..scoring.seeding import SEED_MEAN, SEED_STD, parse_float_or_default
from ..seeder import Seeder
from ..state.node_store import NodeStoreError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["seeding"])


@router.get("/setup", response_model=SeedSummary)
async def setup(
    mean: Optional[str] = Query(None, description="Distribution mean (default 50)"),
    std: Optional[str] = Query(None, description="Distribution standard deviation (default 25)"),
    seeder: Seeder = Depends(get_seeder),
) -> SeedSummary:
    """
    Compute an initial score for each node from a normal distribution.

    Unparseable parameters fall back to the defaults.
    """
    mean_value = parse_float_or_default(mean, SEED_MEAN)
    std_value = parse_float_or_default(std, SEED_STD)
    try:
        return await seeder.seed(mean_value, std_value)
    except NodeStoreError as e:
        logger.error(f"Could not list nodes: {e}")
        raise HTTPException(status_code=502, detail=f"Could not list nodes: {e}")


@router.get("/reset", response_model=RestoreSummary)
async def reset(seeder: Seeder = Depends(get_seeder)) -> RestoreSummary:
    """Set every node's score label back to the value assigned by /setup."""
    return await seeder.restore()
