# EnergyScheduler/src/scoring/__init__.py
"""Pure score computations: label codec, accumulation, seeding, node selection."""
from .accumulator import AccumulationError, InsufficientReadingsError, accumulate, compute_delta
from .score import JOULES_LABEL, ScoreParseError, format_score, parse_score
from .selector import NoNodesError, select_node

__all__ = [
    "AccumulationError",
    "InsufficientReadingsError",
    "JOULES_LABEL",
    "NoNodesError",
    "ScoreParseError",
    "accumulate",
    "compute_delta",
    "format_score",
    "parse_score",
    "select_node",
]
