# EnergyScheduler/src/scoring/selector.py
"""Node Selector: pick the candidate with the lowest energy score."""
from __future__ import annotations

import logging
import math
from typing import Sequence

from ..models import NodeSnapshot
from .score import JOULES_LABEL, score_or_none

logger = logging.getLogger(__name__)

# Comparison key for nodes without a usable score
WORST_SCORE = math.inf


class NoNodesError(ValueError):
    """Raised when selection is asked to choose from an empty list."""

    def __init__(self) -> None:
        super().__init__("no nodes were provided")


def selection_key(node: NodeSnapshot, label: str = JOULES_LABEL) -> float:
    """Parsed score, or WORST_SCORE when the label is missing or unparseable."""
    score = score_or_none(node.labels, label)
    return WORST_SCORE if score is None else score


def select_node(nodes: Sequence[NodeSnapshot], label: str = JOULES_LABEL) -> NodeSnapshot:
    """
    Return the node with the minimum score.

    Nodes without a usable score rank last but remain selectable, so a
    non-empty input always yields a node. Ties go to the first node in
    input order. The input is not modified.
    """
    if not nodes:
        raise NoNodesError()

    best = nodes[0]
    best_key = selection_key(best, label)
    for node in nodes[1:]:
        key = selection_key(node, label)
        if key < best_key:
            best, best_key = node, key
    return best
