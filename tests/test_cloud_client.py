from __future__ import annotations

import httpx
import pytest

from index_committer.clients.base import UpdateRequest
from index_committer.clients.cloud import CloudIndexClient, leader_urls
from index_committer.documents import build_document
from index_committer.errors import ConfigurationError, TransportError


def _cluster_status(leader_state: str = "active") -> dict:
    return {
        "cluster": {
            "live_nodes": ["node1:8983_solr", "node2:8983_solr"],
            "collections": {
                "docs": {
                    "shards": {
                        "shard1": {
                            "state": "active",
                            "replicas": {
                                "core_node1": {
                                    "base_url": "http://node1:8983/solr",
                                    "node_name": "node1:8983_solr",
                                    "state": leader_state,
                                    "leader": "true",
                                },
                                "core_node2": {
                                    "base_url": "http://node2:8983/solr",
                                    "node_name": "node2:8983_solr",
                                    "state": "active",
                                },
                            },
                        },
                        "shard2": {
                            "state": "active",
                            "replicas": {
                                "core_node3": {
                                    "base_url": "http://node3:8983/solr",
                                    "node_name": "node3:8983_solr",
                                    "state": "active",
                                    "leader": "true",
                                },
                            },
                        },
                    }
                }
            },
        }
    }


class _SolrCloudStub:
    def __init__(self) -> None:
        self.status_calls = 0
        self.updates: list[httpx.Request] = []
        self.update_status = 200

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/admin/collections"):
            self.status_calls += 1
            assert request.url.params["action"] == "CLUSTERSTATUS"
            return httpx.Response(200, json=_cluster_status())
        self.updates.append(request)
        if self.update_status != 200:
            return httpx.Response(
                self.update_status, json={"error": {"msg": "update rejected"}}
            )
        return httpx.Response(200, json={})


def _update() -> UpdateRequest:
    update = UpdateRequest()
    update.add(build_document({"id": ["1"]}), "1")
    return update


def _client(stub: _SolrCloudStub) -> CloudIndexClient:
    return CloudIndexClient(
        ["http://seed:8983/solr/docs"],
        http_client=httpx.Client(transport=httpx.MockTransport(stub)),
    )


def test_leader_urls_prefers_leaders_on_live_nodes():
    # node3 is not live, so only the shard1 leader remains
    assert leader_urls(_cluster_status(), "docs") == ["http://node1:8983/solr/docs"]


def test_leader_urls_falls_back_to_active_replicas():
    urls = leader_urls(_cluster_status(leader_state="down"), "docs")

    assert urls == ["http://node2:8983/solr/docs"]


def test_leader_urls_unknown_collection_is_empty():
    assert leader_urls(_cluster_status(), "other") == []
    assert leader_urls({}, "docs") == []


def test_updates_are_routed_to_discovered_leader():
    stub = _SolrCloudStub()
    client = _client(stub)

    client.request(_update())
    client.commit()

    assert stub.status_calls == 1
    assert [r.url.host for r in stub.updates] == ["node1", "node1"]
    assert stub.updates[1].url.params["commit"] == "true"


def test_unavailable_leader_triggers_rediscovery():
    stub = _SolrCloudStub()
    client = _client(stub)
    stub.update_status = 503

    with pytest.raises(TransportError):
        client.request(_update())

    stub.update_status = 200
    client.request(_update())

    assert stub.status_calls == 2


def test_node_urls_must_share_collection():
    with pytest.raises(ConfigurationError, match="one collection"):
        CloudIndexClient(
            ["http://a:8983/solr/docs", "http://b:8983/solr/other"],
            http_client=httpx.Client(),
        )


def test_node_url_without_collection_is_rejected():
    with pytest.raises(ConfigurationError):
        CloudIndexClient(["http://a:8983"], http_client=httpx.Client())


def test_rejected_update_keeps_cluster_layout():
    stub = _SolrCloudStub()
    client = _client(stub)
    stub.update_status = 400

    with pytest.raises(TransportError, match="update rejected"):
        client.request(_update())

    stub.update_status = 200
    client.request(_update())

    assert stub.status_calls == 1
