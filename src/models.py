# EnergyScheduler/src/models.py
# @ai-rules:
# 1. [Constraint]: All models are Pydantic BaseModel. Use Field() for defaults and descriptions.
# 2. [Pattern]: Wire documents keep their upstream key names via Field(alias=...); populate_by_name allows snake_case in tests.
# 3. [Gotcha]: NodeSnapshot.raw carries the untouched wire object so the extender can echo the chosen node back verbatim.
"""Pydantic schemas for node snapshots, metrics samples and driver summaries."""
from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# Node Snapshot (Cluster-State Layer)
# =============================================================================

def _first_present(obj: dict[str, Any], *keys: str, default: Any) -> Any:
    """Value of the first key present and not null (Kubernetes JSON or Go field casing)."""
    for key in keys:
        if obj.get(key) is not None:
            return obj[key]
    return default


class NodeSnapshot(BaseModel):
    """
    Transient copy of a cluster node.

    Owned by the cluster-state store. A snapshot goes stale the moment
    anyone else writes the node; writes carry resource_version so the
    store can reject them with a conflict.
    """
    name: str = Field(..., description="Node name, unique within a listing")
    labels: dict[str, str] = Field(default_factory=dict)
    resource_version: Optional[str] = Field(None, description="Store version the snapshot was read at")
    raw: Optional[dict[str, Any]] = Field(None, exclude=True, repr=False, description="Wire object as received")

    def with_label(self, key: str, value: str) -> "NodeSnapshot":
        """Return a copy with one label set. The receiver is left untouched."""
        labels = dict(self.labels)
        labels[key] = value
        return self.model_copy(update={"labels": labels})

    @classmethod
    def from_wire(cls, item: dict[str, Any]) -> "NodeSnapshot":
        """Build a snapshot from a Kubernetes Node JSON object."""
        if not isinstance(item, dict):
            raise ValueError(f"node item must be an object, got {type(item).__name__}")
        metadata = _first_present(item, "metadata", "ObjectMeta", default={})
        if not isinstance(metadata, dict):
            raise ValueError("node metadata must be an object")
        name = metadata.get("name") or metadata.get("Name") or ""
        labels = _first_present(metadata, "labels", "Labels", default={})
        if not isinstance(labels, dict):
            raise ValueError(f"labels of node '{name}' must be an object")
        return cls(
            name=name,
            labels={str(k): str(v) for k, v in labels.items()},
            resource_version=metadata.get("resourceVersion"),
            raw=item,
        )


# =============================================================================
# Metrics Sample (Metrics Backend)
# =============================================================================

class MetricReading(BaseModel):
    """One (timestamp, value) reading of a cumulative counter."""
    timestamp: datetime
    value: float


class MetricsSample(BaseModel):
    """
    Metrics backend response for one node.

    Readings are ordered oldest to newest. Schema:
        {"metrics": [{"timestamp": RFC3339, "value": number}, ...],
         "latestTimestamp": RFC3339}
    """
    model_config = ConfigDict(populate_by_name=True)

    readings: list[MetricReading] = Field(default_factory=list, alias="metrics")
    latest_timestamp: datetime = Field(..., alias="latestTimestamp")


# =============================================================================
# Time-Series Sink
# =============================================================================

class ScorePoint(BaseModel):
    """A single persisted score data point."""
    timestamp: float
    value: float


# =============================================================================
# Driver Summaries
# =============================================================================

class SeedSummary(BaseModel):
    """Outcome of one seeding pass."""
    mean: float
    std: float
    total: int = 0
    updated: dict[str, str] = Field(default_factory=dict, description="node -> seeded score label")
    failed: dict[str, str] = Field(default_factory=dict, description="node -> error message")


class RestoreSummary(BaseModel):
    """Outcome of replaying the last seeded scores."""
    restored: dict[str, str] = Field(default_factory=dict)
    failed: dict[str, str] = Field(default_factory=dict)
    message: str = ""


class MonitorCycleSummary(BaseModel):
    """Per-cycle counters of the monitor loop."""
    total: int = 0
    updated: list[str] = Field(default_factory=list)
    stale: list[str] = Field(default_factory=list)
    failed: dict[str, str] = Field(default_factory=dict)
    duration_seconds: float = 0.0


class NodeScore(BaseModel):
    """Current score label of a node as read from the store."""
    name: str
    score: Optional[str] = None
    value: Optional[float] = Field(None, description="Parsed score, None when missing or unparseable")


class HealthResponse(BaseModel):
    """Health check response."""
    status: str = Field("ok", description="Service status")
    monitor_running: bool = False
