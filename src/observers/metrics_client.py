# EnergyScheduler/src/observers/metrics_client.py
# @ai-rules:
# 1. [Constraint]: No kubernetes imports. Metrics backend via httpx only.
# 2. [Pattern]: Every failure mode (transport, non-2xx, bad JSON, bad schema) surfaces as MetricsError so the monitor skips just that node.
"""Client for the per-node cumulative CPU usage metrics backend."""
from __future__ import annotations

import logging
import os
from typing import Optional, Union

import httpx
from pydantic import ValidationError

from ..models import MetricsSample

logger = logging.getLogger(__name__)

METRICS_SERVICE_URL = os.getenv("METRICS_SERVICE_URL", "http://heapster.kube-system")
METRICS_ENDPOINT_TEMPLATE = os.getenv(
    "METRICS_ENDPOINT_TEMPLATE", "/api/v1/model/nodes/{name}/metrics/cpu/usage"
)
METRICS_TIMEOUT = float(os.getenv("METRICS_TIMEOUT", "10"))


class MetricsError(Exception):
    """Metrics for a node could not be fetched or decoded."""


class MetricsClient:
    """Fetches MetricsSample documents keyed by node name."""

    def __init__(
        self,
        base_url: str = METRICS_SERVICE_URL,
        endpoint_template: str = METRICS_ENDPOINT_TEMPLATE,
        timeout: float = METRICS_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.endpoint_template = endpoint_template
        self._client = httpx.AsyncClient(base_url=self.base_url, timeout=timeout, transport=transport)

    def endpoint(self, node_name: str) -> str:
        return self.endpoint_template.format(name=node_name)

    async def fetch(self, node_name: str) -> MetricsSample:
        """GET the metrics document for one node and parse it."""
        endpoint = self.endpoint(node_name)
        try:
            resp = await self._client.get(endpoint)
        except httpx.HTTPError as e:
            raise MetricsError(f"could not get metrics at endpoint {endpoint}: {e}") from e

        if not resp.is_success:
            raise MetricsError(f"metrics endpoint {endpoint} returned HTTP {resp.status_code}")

        return self.parse_sample(resp.content)

    @staticmethod
    def parse_sample(payload: Union[bytes, str]) -> MetricsSample:
        """Decode a metrics JSON document."""
        try:
            return MetricsSample.model_validate_json(payload)
        except ValidationError as e:
            raise MetricsError(f"could not decode metrics response: {e.error_count()} error(s): {e}") from e

    async def close(self) -> None:
        await self._client.aclose()
