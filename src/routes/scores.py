# EnergyScheduler/src/routes/scores.py
"""
Score inspection endpoints (read-only).

Current labels come from the cluster-state store, history from the sink.
"""
from __future__ import annotations

import logging
import time
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query

from ..dependencies import get_node_store, get_score_sink
from ..models import NodeScore
from ..scoring.score import JOULES_LABEL, score_or_none
from ..state.label_updater import NodeStore
from ..state.node_store import NodeStoreError
from ..state.score_sink import ScoreSink, SinkError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/scores", tags=["scores"])


@router.get("", response_model=List[NodeScore])
async def list_scores(store: NodeStore = Depends(get_node_store)) -> List[NodeScore]:
    """Current score label of every node."""
    try:
        nodes = await store.list_nodes()
    except NodeStoreError as e:
        raise HTTPException(status_code=502, detail=f"Could not list nodes: {e}")
    return [
        NodeScore(
            name=node.name,
            score=node.labels.get(JOULES_LABEL),
            value=score_or_none(node.labels),
        )
        for node in nodes
    ]


@router.get("/hosts", response_model=List[str])
async def list_score_hosts(sink: ScoreSink = Depends(get_score_sink)) -> List[str]:
    """Nodes with at least one recorded score point."""
    try:
        return await sink.hosts()
    except SinkError as e:
        logger.error(f"Score host listing failed: {e}")
        raise HTTPException(status_code=502, detail=str(e))


@router.get("/{node}/history")
async def get_score_history(
    node: str,
    range_seconds: int = Query(3600, ge=1, description="Time range in seconds (default 1 hour)"),
    sink: ScoreSink = Depends(get_score_sink),
) -> dict:
    """Score time series for one node within the requested range."""
    end_time = time.time()
    start_time = end_time - range_seconds
    try:
        points = await sink.history(node, start_time, end_time)
    except SinkError as e:
        logger.error(f"Score history read failed for {node}: {e}")
        raise HTTPException(status_code=502, detail=str(e))

    return {
        "node": node,
        "range_seconds": range_seconds,
        "data_points": len(points),
        "data": [{"timestamp": p.timestamp, "value": p.value} for p in points],
    }
