# EnergyScheduler/src/routes/extender.py
# @ai-rules:
# 1. [Constraint]: Read-only. This route never writes node labels.
# 2. [Pattern]: Selection failure (empty candidates) is NOT an HTTP error: 200 with an empty node list.
# 3. [Pattern]: Accepts both `Pod`/`Nodes.Items` and `pod`/`nodes.items`; replies in the casing it received.
# 4. [Gotcha]: Malformed bodies are logged and answered with an empty 400. There is no error envelope.
"""
Scheduler extender filter endpoint.

Receives ExtenderArgs from the scheduler and narrows the candidate list to
the single node with the lowest energy score.
"""
from __future__ import annotations

import json
import logging
import os
from typing import Any

from fastapi import APIRouter, Request, Response
from fastapi.responses import JSONResponse

from ..models import NodeSnapshot
from ..scoring.score import JOULES_LABEL
from ..scoring.selector import NoNodesError, select_node

logger = logging.getLogger(__name__)

EXTENDER_PATH = os.getenv("EXTENDER_PATH", "/filter")

router = APIRouter(tags=["extender"])


class MalformedArgsError(ValueError):
    """Request body is not a usable ExtenderArgs document."""


def parse_extender_args(body: bytes) -> tuple[dict[str, Any], list[NodeSnapshot], bool]:
    """
    Decode ExtenderArgs.

    Returns (pod, candidates, lowercase_keys).
    """
    try:
        data = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise MalformedArgsError(f"body is not JSON: {e}") from e
    if not isinstance(data, dict):
        raise MalformedArgsError("body must be a JSON object")

    lowercase = "Nodes" not in data and "nodes" in data
    pod = data.get("pod" if lowercase else "Pod")
    if pod is None:
        pod = {}
    if not isinstance(pod, dict):
        raise MalformedArgsError("Pod must be an object")
    for key in ("metadata", "ObjectMeta"):
        if pod.get(key) is not None and not isinstance(pod[key], dict):
            raise MalformedArgsError(f"Pod.{key} must be an object")

    nodes = data.get("nodes" if lowercase else "Nodes")
    if nodes is None:
        nodes = {}
    if not isinstance(nodes, dict):
        raise MalformedArgsError("Nodes must be a NodeList object")
    items = nodes.get("items" if lowercase else "Items")
    if items is None:
        items = []
    if not isinstance(items, list):
        raise MalformedArgsError("Nodes.Items must be a list")

    try:
        candidates = [NodeSnapshot.from_wire(item) for item in items]
    except ValueError as e:
        raise MalformedArgsError(str(e)) from e
    return pod, candidates, lowercase


def filter_result(items: list[dict[str, Any]], lowercase: bool) -> dict[str, Any]:
    """ExtenderFilterResult in the key style of the request."""
    if lowercase:
        return {"nodes": {"items": items}, "failedNodes": {}, "error": ""}
    return {"Nodes": {"Items": items}, "FailedNodes": {}, "Error": ""}


def _pod_name(pod: dict[str, Any]) -> str:
    metadata = pod.get("metadata") or pod.get("ObjectMeta") or {}
    return str(metadata.get("name") or metadata.get("Name") or "<unnamed>")


@router.post(EXTENDER_PATH)
async def filter_nodes(request: Request) -> Response:
    """
    Pick the lowest-energy node for a pending pod.

    Body: {"Pod": {...}, "Nodes": {"Items": [node, ...]}}
    Returns: {"Nodes": {"Items": [chosen]}} or {"Nodes": {"Items": []}}
    """
    body = await request.body()
    try:
        pod, candidates, lowercase = parse_extender_args(body)
    except MalformedArgsError as e:
        logger.error(f"Error when trying to decode request body to ExtenderArgs: {e}")
        return Response(status_code=400)

    for node in candidates:
        logger.debug(f"Received node {node.name} with {JOULES_LABEL} {node.labels.get(JOULES_LABEL)}")

    try:
        chosen = select_node(candidates)
    except NoNodesError as e:
        logger.warning(f"Encountered error when selecting node for pod {_pod_name(pod)}: {e}")
        return JSONResponse(filter_result([], lowercase))

    logger.info(
        f"Chose node {chosen.name} ({JOULES_LABEL}={chosen.labels.get(JOULES_LABEL)}) "
        f"for pod {_pod_name(pod)}"
    )
    return JSONResponse(filter_result([chosen.raw], lowercase))
