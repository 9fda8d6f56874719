# EnergyScheduler/src/observers/__init__.py
"""
Observer modules.

Observers poll external systems (metrics backend) and feed derived scores
back into the cluster. They run independently of the request/response cycle.
"""
from .energy_monitor import EnergyMonitor
from .metrics_client import MetricsClient, MetricsError

__all__ = ["EnergyMonitor", "MetricsClient", "MetricsError"]
