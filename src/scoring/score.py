# EnergyScheduler/src/scoring/score.py
"""
Score label codec.

A score is persisted as a node label holding a decimal string with
exactly two fractional digits (e.g. "50.00").
"""
from __future__ import annotations

import math
import os
from typing import Mapping, Optional

# Recognized node label key
JOULES_LABEL = os.getenv("JOULES_LABEL", "joules")


class ScoreParseError(ValueError):
    """Raised when a label value is not a finite decimal."""

    def __init__(self, text: Optional[str]):
        self.text = text
        super().__init__(f"score label {text!r} is not a valid decimal")


def parse_score(text: Optional[str]) -> float:
    """
    Parse a score label. Rejects missing, empty, NaN and infinite values.

    Surrounding whitespace and digit-group underscores are rejected as well.
    """
    if text is None or text != text.strip() or "_" in text:
        raise ScoreParseError(text)
    try:
        value = float(text)
    except ValueError as e:
        raise ScoreParseError(text) from e
    if not math.isfinite(value):
        raise ScoreParseError(text)
    return value


def format_score(value: float) -> str:
    """Render a score with two fractional digits."""
    return f"{value:.2f}"


def score_or_none(labels: Optional[Mapping[str, str]], label: str = JOULES_LABEL) -> Optional[float]:
    """Score from a label mapping, or None when the label is absent or unusable."""
    if not labels or label not in labels:
        return None
    try:
        return parse_score(labels[label])
    except ScoreParseError:
        return None
