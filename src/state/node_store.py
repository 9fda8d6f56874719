# EnergyScheduler/src/state/node_store.py
# @ai-rules:
# 1. [Constraint]: This module is the only kubernetes touchpoint. Everything else sees NodeSnapshot.
# 2. [Pattern]: Sync kubernetes client calls run in the default executor so per-node tasks proceed in parallel.
# 3. [Pattern]: ApiException is translated to typed errors here: 409 -> ConflictError, 404 -> NodeNotFoundError. Never match on message text.
# 4. [Gotcha]: update_node sends metadata.resourceVersion in the patch; the API server rejects it with 409 if the node changed since it was read.
# 5. [Constraint]: Transport failures (urllib3 HTTPError, OSError) also surface as NodeStoreError so callers only ever see the typed hierarchy.
"""
Cluster-state store backed by the Kubernetes API.

Config resolution order matches the in-cluster deployment first, then a
local kubeconfig, then a plain API server URL (K8S_API_URL) for
`kubectl proxy` style development setups.
"""
from __future__ import annotations

import asyncio
import functools
import logging
import os
from typing import Any, Callable, Optional

import urllib3

from ..models import NodeSnapshot

logger = logging.getLogger(__name__)

K8S_API_URL = os.getenv("K8S_API_URL", "http://127.0.0.1:8080")


class NodeStoreError(Exception):
    """Any failure talking to the cluster-state store."""

    def __init__(self, message: str, status: Optional[int] = None):
        self.status = status
        super().__init__(message)


class ConflictError(NodeStoreError):
    """The node was modified since it was read (resource version mismatch)."""


class NodeNotFoundError(NodeStoreError):
    """The node does not exist."""


def load_kube_config() -> None:
    """Load in-cluster config, then kubeconfig, then fall back to K8S_API_URL."""
    from kubernetes import client, config

    try:
        config.load_incluster_config()
        logger.info("Loaded in-cluster Kubernetes config")
        return
    except config.ConfigException:
        pass

    try:
        config.load_kube_config()
        logger.info("Loaded kubeconfig")
        return
    except config.ConfigException as e:
        logger.warning(f"No kubeconfig available ({e}), using API server at {K8S_API_URL}")

    configuration = client.Configuration()
    configuration.host = K8S_API_URL
    client.Configuration.set_default(configuration)


class KubernetesNodeStore:
    """
    list/get/update of Node objects with optimistic concurrency.

    Usage:
        store = KubernetesNodeStore.from_environment()
        nodes = await store.list_nodes()
        await store.update_node(nodes[0].with_label("joules", "50.00"))
    """

    def __init__(self, core_api: Any):
        self._core_api = core_api

    @classmethod
    def from_environment(cls) -> "KubernetesNodeStore":
        """
        Build a store from the ambient Kubernetes configuration.

        Raises NodeStoreError when no client can be constructed; callers
        treat that as fatal at startup.
        """
        try:
            from kubernetes import client

            load_kube_config()
            return cls(client.CoreV1Api())
        except Exception as e:
            raise NodeStoreError(f"Could not create kubernetes client: {e}") from e

    async def _call(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        """Run a blocking client call in the executor and translate API errors."""
        from kubernetes.client.rest import ApiException

        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, functools.partial(fn, *args, **kwargs))
        except ApiException as e:
            if e.status == 409:
                raise ConflictError(f"conflict: {e.reason}", status=e.status) from e
            if e.status == 404:
                raise NodeNotFoundError(f"not found: {e.reason}", status=e.status) from e
            raise NodeStoreError(f"kubernetes API error {e.status}: {e.reason}", status=e.status) from e
        except (urllib3.exceptions.HTTPError, OSError) as e:
            raise NodeStoreError(f"kubernetes API unreachable: {e}") from e

    @staticmethod
    def _to_snapshot(node: Any) -> NodeSnapshot:
        metadata = node.metadata
        return NodeSnapshot(
            name=metadata.name,
            labels=dict(metadata.labels or {}),
            resource_version=metadata.resource_version,
        )

    async def list_nodes(self) -> list[NodeSnapshot]:
        """List all nodes."""
        result = await self._call(self._core_api.list_node)
        return [self._to_snapshot(node) for node in result.items]

    async def get_node(self, name: str) -> NodeSnapshot:
        """Fetch the current version of one node."""
        node = await self._call(self._core_api.read_node, name)
        return self._to_snapshot(node)

    async def update_node(self, snapshot: NodeSnapshot) -> NodeSnapshot:
        """
        Write the snapshot's labels back.

        Raises ConflictError if the node changed since the snapshot was read.
        """
        metadata: dict[str, Any] = {"labels": snapshot.labels}
        if snapshot.resource_version:
            metadata["resourceVersion"] = snapshot.resource_version
        node = await self._call(self._core_api.patch_node, snapshot.name, {"metadata": metadata})
        return self._to_snapshot(node)
