# EnergyScheduler/tests/conftest.py
# @ai-rules:
# 1. [Constraint]: No cluster, no Redis, no network. Collaborators are in-memory stubs.
# 2. [Pattern]: StubNodeStore enforces resource versions like the API server: stale writes get ConflictError.
"""Shared stubs and fixtures."""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional

import pytest

from src.models import MetricReading, MetricsSample, NodeSnapshot
from src.state.node_store import ConflictError, NodeNotFoundError, NodeStoreError

BASE_TIME = datetime(2016, 6, 2, 14, 56, tzinfo=timezone.utc)
READINGS = [1675550639110, 1677252246036, 1678697169283]


def make_sample(values=READINGS, latest: Optional[datetime] = None) -> MetricsSample:
    readings = [
        MetricReading(timestamp=BASE_TIME + timedelta(minutes=i), value=v)
        for i, v in enumerate(values)
    ]
    if latest is None:
        latest = readings[-1].timestamp if readings else BASE_TIME
    return MetricsSample(readings=readings, latest_timestamp=latest)


def make_node(name: str, joules: Optional[str] = None, resource_version: str = "1") -> NodeSnapshot:
    labels = {"kubernetes.io/hostname": name}
    if joules is not None:
        labels["joules"] = joules
    return NodeSnapshot(name=name, labels=labels, resource_version=resource_version)


class StubNodeStore:
    """
    In-memory cluster-state store.

    conflicts[name] = k makes the next k updates of that node fail with
    ConflictError, each time bumping the stored version as a concurrent
    writer would.
    """

    def __init__(self, nodes: list[NodeSnapshot]):
        self.nodes: dict[str, NodeSnapshot] = {n.name: n for n in nodes}
        self.conflicts: dict[str, int] = {}
        self.update_errors: dict[str, Exception] = {}
        self.list_error: Optional[Exception] = None
        self.update_calls: dict[str, int] = {}
        self.get_calls: dict[str, int] = {}

    def label(self, name: str, key: str = "joules") -> Optional[str]:
        return self.nodes[name].labels.get(key)

    def _bump(self, name: str, labels: Optional[dict[str, str]] = None) -> NodeSnapshot:
        current = self.nodes[name]
        bumped = current.model_copy(update={
            "labels": dict(labels if labels is not None else current.labels),
            "resource_version": str(int(current.resource_version or "0") + 1),
        })
        self.nodes[name] = bumped
        return bumped

    async def list_nodes(self) -> list[NodeSnapshot]:
        if self.list_error:
            raise self.list_error
        return [n.model_copy(deep=True) for n in self.nodes.values()]

    async def get_node(self, name: str) -> NodeSnapshot:
        self.get_calls[name] = self.get_calls.get(name, 0) + 1
        if name not in self.nodes:
            raise NodeNotFoundError(f"not found: {name}", status=404)
        return self.nodes[name].model_copy(deep=True)

    async def update_node(self, snapshot: NodeSnapshot) -> NodeSnapshot:
        name = snapshot.name
        self.update_calls[name] = self.update_calls.get(name, 0) + 1
        if name in self.update_errors:
            raise self.update_errors[name]
        if name not in self.nodes:
            raise NodeNotFoundError(f"not found: {name}", status=404)
        if self.conflicts.get(name, 0) > 0:
            self.conflicts[name] -= 1
            self._bump(name)
            raise ConflictError(f"conflict: node {name} was modified", status=409)
        if snapshot.resource_version != self.nodes[name].resource_version:
            raise ConflictError(f"conflict: stale resource version for {name}", status=409)
        return self._bump(name, snapshot.labels).model_copy(deep=True)


class RecordingSink:
    """Captures time-series inserts."""

    def __init__(self, error: Optional[Exception] = None):
        self.points: list[tuple[str, float]] = []
        self.error = error

    async def insert(self, hostname: str, total: float, timestamp: Optional[float] = None) -> None:
        if self.error:
            raise self.error
        self.points.append((hostname, total))


@pytest.fixture
def three_nodes() -> list[NodeSnapshot]:
    return [make_node("node1", "5"), make_node("node2", "10.50"), make_node("node3", "0")]


@pytest.fixture
def store(three_nodes) -> StubNodeStore:
    return StubNodeStore(three_nodes)


@pytest.fixture
def store_error() -> NodeStoreError:
    return NodeStoreError("kubernetes API error 500: Internal Server Error", status=500)
