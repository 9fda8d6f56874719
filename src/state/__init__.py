# EnergyScheduler/src/state/__init__.py
"""State layer: cluster-state store, label updates, staleness record, score sink."""
from .label_updater import LabelUpdateError, LabelUpdater, RetryBudgetExceeded
from .last_update import LastUpdateRecord
from .node_store import ConflictError, KubernetesNodeStore, NodeNotFoundError, NodeStoreError
from .redis_client import RedisClient
from .score_sink import ScoreSink, SinkError

__all__ = [
    "ConflictError",
    "KubernetesNodeStore",
    "LabelUpdateError",
    "LabelUpdater",
    "LastUpdateRecord",
    "NodeNotFoundError",
    "NodeStoreError",
    "RedisClient",
    "RetryBudgetExceeded",
    "ScoreSink",
    "SinkError",
]
