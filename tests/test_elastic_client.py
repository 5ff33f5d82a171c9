from __future__ import annotations

import pytest

from index_committer.clients.base import UpdateRequest
from index_committer.clients.elastic import ElasticsearchIndexClient, bulk_operations
from index_committer.documents import build_document
from index_committer.errors import ConfigurationError, TransportError


class _FakeIndices:
    def __init__(self, owner: "_FakeElasticsearch") -> None:
        self._owner = owner

    def refresh(self, index):
        self._owner.calls.append(("refresh", index, self._owner.auth))
        return {"_shards": {"failed": 0}}


class _FakeElasticsearch:
    def __init__(self, response=None) -> None:
        self.calls: list = []
        self.auth = None
        self.response = response or {"errors": False, "items": []}
        self.closed = False
        self.indices = _FakeIndices(self)

    def options(self, basic_auth=None):
        scoped = object.__new__(_FakeElasticsearch)
        scoped.__dict__.update(self.__dict__)
        scoped.auth = basic_auth
        scoped.indices = _FakeIndices(scoped)
        return scoped

    def bulk(self, operations, **params):
        self.calls.append(("bulk", operations, params, self.auth))
        return self.response

    def close(self):
        self.closed = True


def _update() -> UpdateRequest:
    update = UpdateRequest()
    update.add(build_document({"id": ["1"], "tag": ["a", "b"]}), "1")
    update.delete_by_id("0")
    update.add(build_document({"id": ["2"]}), "2")
    return update


def test_bulk_operations_keep_order_and_unwrap_single_values():
    assert bulk_operations(_update(), "docs") == [
        {"index": {"_index": "docs", "_id": "1"}},
        {"id": "1", "tag": ["a", "b"]},
        {"delete": {"_index": "docs", "_id": "0"}},
        {"index": {"_index": "docs", "_id": "2"}},
        {"id": "2"},
    ]


def test_request_and_commit_use_bulk_and_refresh():
    es = _FakeElasticsearch()
    client = ElasticsearchIndexClient(["http://es:9200/docs"], client=es)
    update = _update()
    update.set_param("pipeline", "ingest")

    client.request(update)
    client.commit()

    assert [call[0] for call in es.calls] == ["bulk", "refresh"]
    assert es.calls[0][2] == {"pipeline": "ingest"}
    assert es.calls[1][1] == "docs"


def test_basic_auth_is_scoped_per_call():
    es = _FakeElasticsearch()
    client = ElasticsearchIndexClient(["http://es:9200/docs"], client=es)
    update = _update()
    update.basic_auth = ("elastic", "changeme")

    client.request(update)
    client.commit(basic_auth=("elastic", "changeme"))

    assert [call[-1] for call in es.calls] == [
        ("elastic", "changeme"),
        ("elastic", "changeme"),
    ]
    assert es.auth is None


def test_item_errors_raise_transport_error():
    es = _FakeElasticsearch(
        {
            "errors": True,
            "items": [
                {"index": {"_id": "1", "status": 201}},
                {"delete": {"_id": "0", "error": {"type": "version_conflict"}}},
            ],
        }
    )
    client = ElasticsearchIndexClient(["http://es:9200/docs"], client=es)

    with pytest.raises(TransportError, match="1 bulk operation"):
        client.request(_update())


def test_injected_client_is_not_closed():
    es = _FakeElasticsearch()
    ElasticsearchIndexClient(["http://es:9200/docs"], client=es).close()
    assert es.closed is False


def test_urls_must_share_index():
    with pytest.raises(ConfigurationError, match="one index"):
        ElasticsearchIndexClient(
            ["http://a:9200/docs", "http://b:9200/other"], client=_FakeElasticsearch()
        )
