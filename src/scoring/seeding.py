# EnergyScheduler/src/scoring/seeding.py
"""Synthetic seed scores drawn from a clamped normal distribution."""
from __future__ import annotations

import logging
import math
import os
import random
from typing import Optional

logger = logging.getLogger(__name__)

SEED_MEAN = float(os.getenv("SEED_MEAN", "50"))
SEED_STD = float(os.getenv("SEED_STD", "25"))
SEED_MIN = float(os.getenv("SEED_MIN", "0"))
SEED_MAX = float(os.getenv("SEED_MAX", "100"))

# Upper bound on rejection sampling draws before falling back to clamping
MAX_SEED_DRAWS = 10000


def draw_seed(
    mean: float = SEED_MEAN,
    std: float = SEED_STD,
    low: float = SEED_MIN,
    high: float = SEED_MAX,
    rng: Optional[random.Random] = None,
) -> float:
    """
    Draw from N(mean, std) until the value lands inside [low, high].

    A distribution that never hits the range (e.g. std=0 with the mean
    outside it) gives up after MAX_SEED_DRAWS and returns the mean clamped
    into range. A non-finite mean or std never samples and falls back to
    the midpoint of the range.
    """
    if not (math.isfinite(mean) and math.isfinite(std)):
        logger.warning(f"Non-finite seed distribution (mean={mean}, std={std}), using range midpoint")
        return (low + high) / 2

    rng = rng or random
    for _ in range(MAX_SEED_DRAWS):
        pick = rng.gauss(mean, std)
        if low <= pick <= high:
            return pick
    logger.warning(
        f"No seed inside [{low}, {high}] after {MAX_SEED_DRAWS} draws "
        f"(mean={mean}, std={std}), clamping the mean"
    )
    return min(max(mean, low), high)


def parse_float_or_default(raw: Optional[str], default: float) -> float:
    """Parse a request parameter, keeping the default when it is absent or invalid."""
    if raw is None or raw == "":
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning(f"Error converting '{raw}' to float, using default {default}")
        return default
    if not math.isfinite(value):
        logger.warning(f"Non-finite value '{raw}', using default {default}")
        return default
    return value
