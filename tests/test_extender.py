# EnergyScheduler/tests/test_extender.py
# @ai-rules:
# 1. [Pattern]: Minimal FastAPI app with only the extender router. No lifespan, no cluster.
"""Tests for the scheduler extender filter endpoint."""
from __future__ import annotations

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from src.routes.extender import MalformedArgsError, parse_extender_args, router


def _make_minimal_app() -> FastAPI:
    app = FastAPI()
    app.include_router(router)
    return app


@pytest.fixture
def client() -> TestClient:
    return TestClient(_make_minimal_app())


def _node(name, joules=None, **extra):
    labels = {"kubernetes.io/hostname": name}
    if joules is not None:
        labels["joules"] = joules
    node = {"metadata": {"name": name, "labels": labels}}
    node.update(extra)
    return node


def _args(*nodes, lowercase=False):
    if lowercase:
        return {"pod": {"metadata": {"name": "web-1"}}, "nodes": {"items": list(nodes)}}
    return {"Pod": {"metadata": {"name": "web-1"}}, "Nodes": {"Items": list(nodes)}}


class TestFilter:
    def test_picks_lowest_score(self, client):
        body = _args(_node("node1", "80.5"), _node("node2", "50.5"), _node("node3", "70.5"))
        resp = client.post("/filter", json=body)

        assert resp.status_code == 200
        data = resp.json()
        assert [n["metadata"]["name"] for n in data["Nodes"]["Items"]] == ["node2"]
        assert data["FailedNodes"] == {}
        assert data["Error"] == ""

    def test_chosen_node_is_echoed_verbatim(self, client):
        node = _node("node1", "1.00", status={"capacity": {"cpu": "4"}}, spec={"podCIDR": "10.0.0.0/24"})
        node["metadata"]["resourceVersion"] = "12345"
        resp = client.post("/filter", json=_args(node, _node("node2", "2.00")))

        assert resp.json()["Nodes"]["Items"] == [node]

    def test_invalid_scores_lose(self, client):
        body = _args(_node("node1", "illegal"), _node("node2"), _node("node3", "99.00"))
        resp = client.post("/filter", json=body)
        assert resp.json()["Nodes"]["Items"][0]["metadata"]["name"] == "node3"

    def test_lowercase_request_gets_lowercase_reply(self, client):
        body = _args(_node("node1", "3"), _node("node2", "2"), lowercase=True)
        resp = client.post("/filter", json=body)

        data = resp.json()
        assert resp.status_code == 200
        assert data["nodes"]["items"][0]["metadata"]["name"] == "node2"
        assert "Nodes" not in data

    def test_go_style_metadata_keys(self, client):
        nodes = [
            {"ObjectMeta": {"Name": "a", "Labels": {"joules": "9"}}},
            {"ObjectMeta": {"Name": "b", "Labels": {"joules": "4"}}},
        ]
        resp = client.post("/filter", json=_args(*nodes))
        assert resp.json()["Nodes"]["Items"] == [nodes[1]]

    def test_empty_candidates_is_not_an_error(self, client):
        resp = client.post("/filter", json=_args())
        assert resp.status_code == 200
        assert resp.json()["Nodes"]["Items"] == []

    def test_missing_nodes_key_is_empty(self, client):
        resp = client.post("/filter", json={"Pod": {}})
        assert resp.status_code == 200
        assert resp.json()["Nodes"]["Items"] == []

    @pytest.mark.parametrize(
        "content",
        [
            b"not json",
            b"[1, 2]",
            b'{"Nodes": []}',
            b'{"Nodes": {"Items": {}}}',
            b'{"Nodes": {"Items": [1]}}',
            b'{"Pod": {"metadata": "x"}, "Nodes": {"Items": [{"metadata": {"name": "n"}}]}}',
            b'{"Pod": "web-1", "Nodes": {"Items": []}}',
            b'{"pod": {"ObjectMeta": [1]}, "nodes": {"items": []}}',
        ],
        ids=["not json", "array", "nodes list", "items object", "item scalar", "pod metadata string",
             "pod string", "pod object meta list"],
    )
    def test_malformed_body_is_empty_400(self, client, content):
        resp = client.post("/filter", content=content, headers={"Content-Type": "application/json"})
        assert resp.status_code == 400
        assert resp.content == b""


class TestParseExtenderArgs:
    def test_returns_pod_and_candidates(self):
        pod, candidates, lowercase = parse_extender_args(
            b'{"Pod": {"metadata": {"name": "p"}}, "Nodes": {"Items": [{"metadata": {"name": "n", "labels": {"joules": "1"}}}]}}'
        )
        assert pod == {"metadata": {"name": "p"}}
        assert [c.name for c in candidates] == ["n"]
        assert candidates[0].labels == {"joules": "1"}
        assert lowercase is False

    def test_bad_labels(self):
        with pytest.raises(MalformedArgsError):
            parse_extender_args(b'{"Nodes": {"Items": [{"metadata": {"name": "n", "labels": "x"}}]}}')
