# EnergyScheduler/src/scoring/accumulator.py
# @ai-rules:
# 1. [Pattern]: Pure functions. No I/O, no logging side effects beyond debug.
# 2. [Gotcha]: SCALE_FACTOR is read at call time (not import time) so a ConfigMap change applies on the next cycle.
# 3. [Constraint]: Negative deltas are NOT clamped. Counter monotonicity is assumed upstream.
"""
Score Accumulator.

Turns the last two readings of a cumulative utilization counter into an
energy-score delta and adds it to the previous score.
"""
from __future__ import annotations

import logging
import os
from typing import Optional

from ..models import MetricsSample
from .score import parse_score

logger = logging.getLogger(__name__)

SCALE_FACTOR_ENV = "SCALE_FACTOR"
DEFAULT_SCALE_FACTOR = "0.0000000001"


class AccumulationError(Exception):
    """Base class for score accumulation failures."""


class InsufficientReadingsError(AccumulationError):
    """Raised when a sample holds fewer than two readings."""

    def __init__(self, count: int):
        self.count = count
        super().__init__(f"need at least 2 readings to compute a delta, got {count}")


def current_scale_factor() -> float:
    """Read the scale factor from the environment, falling back to the default."""
    raw = os.getenv(SCALE_FACTOR_ENV) or DEFAULT_SCALE_FACTOR
    try:
        return float(raw)
    except ValueError as e:
        raise AccumulationError(f"{SCALE_FACTOR_ENV}={raw!r} is not a number") from e


def compute_delta(sample: MetricsSample, scale_factor: float) -> float:
    """(last - second_to_last) * scale_factor."""
    readings = sample.readings
    if len(readings) < 2:
        raise InsufficientReadingsError(len(readings))
    return (readings[-1].value - readings[-2].value) * scale_factor


def accumulate(
    previous_score_text: Optional[str],
    sample: MetricsSample,
    scale_factor: Optional[float] = None,
) -> float:
    """
    Compute the new cumulative score.

    Raises:
        ScoreParseError: previous score label is not a decimal
        InsufficientReadingsError: fewer than two readings
        AccumulationError: scale factor misconfigured
    """
    previous = parse_score(previous_score_text)
    factor = current_scale_factor() if scale_factor is None else scale_factor
    delta = compute_delta(sample, factor)
    logger.debug(f"Scale factor {factor}: delta={delta} on top of {previous}")
    return previous + delta
