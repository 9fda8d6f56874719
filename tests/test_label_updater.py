# EnergyScheduler/tests/test_label_updater.py
# @ai-rules:
# 1. [Pattern]: StubNodeStore scripts k conflicts; the protocol must succeed for k <= retries and stop after retries + 1 calls otherwise.
"""Unit tests for the optimistic-concurrency label update protocol."""
from __future__ import annotations

import asyncio

import pytest

from conftest import StubNodeStore, make_node
from src.state.label_updater import LabelUpdater, RetryBudgetExceeded
from src.state.node_store import NodeNotFoundError, NodeStoreError


class TestConflictRetries:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("conflicts", [0, 1, 2, 3])
    async def test_succeeds_within_budget(self, store, conflicts):
        store.conflicts["node1"] = conflicts
        updater = LabelUpdater(store, retries=3)

        written = await updater.update_score("node1", "42.00")

        assert written.labels["joules"] == "42.00"
        assert store.label("node1") == "42.00"
        # one initial fetch plus one refetch per conflict
        assert store.update_calls["node1"] == conflicts + 1
        assert store.get_calls["node1"] == conflicts + 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize("conflicts", [4, 10])
    async def test_exhausted_budget_fails_without_further_retries(self, store, conflicts):
        store.conflicts["node1"] = conflicts
        updater = LabelUpdater(store, retries=3)

        with pytest.raises(RetryBudgetExceeded) as exc_info:
            await updater.update_score("node1", "42.00")

        assert exc_info.value.node == "node1"
        assert exc_info.value.retries == 3
        assert "node1" in str(exc_info.value)
        assert store.update_calls["node1"] == 4
        assert store.label("node1") == "5"

    @pytest.mark.asyncio
    async def test_zero_budget_means_single_attempt(self, store):
        store.conflicts["node1"] = 1
        with pytest.raises(RetryBudgetExceeded):
            await LabelUpdater(store, retries=0).update_score("node1", "1.00")
        assert store.update_calls["node1"] == 1


class TestNonConflictErrors:
    @pytest.mark.asyncio
    async def test_other_error_aborts_immediately(self, store, store_error):
        store.update_errors["node1"] = store_error
        with pytest.raises(NodeStoreError) as exc_info:
            await LabelUpdater(store).update_score("node1", "1.00")
        assert not isinstance(exc_info.value, RetryBudgetExceeded)
        assert store.update_calls["node1"] == 1

    @pytest.mark.asyncio
    async def test_missing_node(self, store):
        with pytest.raises(NodeNotFoundError):
            await LabelUpdater(store).update_score("ghost", "1.00")


class TestSnapshots:
    @pytest.mark.asyncio
    async def test_given_snapshot_skips_initial_fetch(self, store):
        snapshot = await store.get_node("node2")
        store.get_calls.clear()

        await LabelUpdater(store).update_score("node2", "11.00", snapshot=snapshot)

        assert store.get_calls == {}
        assert store.label("node2") == "11.00"

    @pytest.mark.asyncio
    async def test_caller_snapshot_is_not_mutated(self, store):
        snapshot = await store.get_node("node2")
        await LabelUpdater(store).update_score("node2", "11.00", snapshot=snapshot)
        assert snapshot.labels["joules"] == "10.50"

    @pytest.mark.asyncio
    async def test_other_labels_survive(self, store):
        await LabelUpdater(store).update_score("node3", "3.00")
        assert store.nodes["node3"].labels["kubernetes.io/hostname"] == "node3"

    @pytest.mark.asyncio
    async def test_stale_snapshot_is_refetched(self):
        store = StubNodeStore([make_node("node1", "1.00", resource_version="7")])
        stale = make_node("node1", "1.00", resource_version="3")

        await LabelUpdater(store).update_score("node1", "2.00", snapshot=stale)

        assert store.label("node1") == "2.00"
        assert store.update_calls["node1"] == 2

    @pytest.mark.asyncio
    async def test_concurrent_writers_resolve_through_conflicts(self, store):
        shared = await store.get_node("node1")
        updater = LabelUpdater(store)

        await asyncio.gather(
            updater.update_score("node1", "20.00", snapshot=shared),
            updater.update_score("node1", "30.00", snapshot=shared),
        )

        assert store.label("node1") in ("20.00", "30.00")
        assert store.update_calls["node1"] == 3
