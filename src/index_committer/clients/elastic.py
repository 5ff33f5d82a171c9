"""Elasticsearch transport: updates as ``_bulk`` calls, commits as refreshes."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence

from elasticsearch import ApiError, Elasticsearch
from elasticsearch import TransportError as ESTransportError

from ..documents import IndexDocument
from ..errors import ConfigurationError, TransportError
from ._solr import split_collection_url
from .base import AddOperation, BasicAuth, IndexClient, UpdateRequest

logger = logging.getLogger(__name__)


def _to_source(document: IndexDocument) -> Dict[str, Any]:
    source: Dict[str, Any] = {}
    for name, values in document.to_dict().items():
        source[name] = values[0] if len(values) == 1 else values
    return source


def bulk_operations(update: UpdateRequest, index: str) -> List[Dict[str, Any]]:
    operations: List[Dict[str, Any]] = []
    for op in update.operations:
        if isinstance(op, AddOperation):
            operations.append({"index": {"_index": index, "_id": op.reference}})
            operations.append(_to_source(op.document))
        else:
            operations.append({"delete": {"_index": index, "_id": op.reference}})
    return operations


def _create_client(hosts: List[str], verify_certs: bool, timeout: float) -> Elasticsearch:
    kwargs: Dict[str, Any] = {
        "hosts": hosts,
        "verify_certs": verify_certs,
        "request_timeout": timeout,
    }
    return Elasticsearch(**kwargs)


class ElasticsearchIndexClient(IndexClient):
    def __init__(
        self,
        urls: Sequence[str],
        *,
        timeout: float = 60.0,
        verify: bool = True,
        client: Optional[Elasticsearch] = None,
    ) -> None:
        if not urls:
            raise ConfigurationError("At least one Elasticsearch URL is required")
        hosts: List[str] = []
        indices = set()
        for url in urls:
            host, index = split_collection_url(url)
            hosts.append(host)
            indices.add(index)
        if len(indices) != 1:
            raise ConfigurationError(
                f"Elasticsearch URLs must share one index, got: {sorted(indices)}"
            )
        self.hosts = hosts
        self.index = indices.pop()
        self._owns_client = client is None
        self._client = client or _create_client(hosts, verify, timeout)

    def _scoped(self, basic_auth: Optional[BasicAuth]) -> Elasticsearch:
        if basic_auth:
            return self._client.options(basic_auth=basic_auth)
        return self._client

    def request(self, update: UpdateRequest) -> None:
        operations = bulk_operations(update, self.index)
        try:
            response = self._scoped(update.basic_auth).bulk(
                operations=operations, **update.params
            )
        except TypeError as exc:
            raise ConfigurationError(
                f"Unsupported bulk parameter in {sorted(update.params)}: {exc}"
            ) from exc
        except (ApiError, ESTransportError) as exc:
            raise TransportError(
                f"Bulk request to index {self.index!r} failed: {exc}"
            ) from exc

        if response.get("errors"):
            failures = []
            for item in response.get("items", []):
                for action, result in item.items():
                    if result.get("error"):
                        failures.append(f"{action} {result.get('_id')}: {result['error']}")
            if failures:
                raise TransportError(
                    f"{len(failures)} bulk operation(s) failed on index "
                    f"{self.index!r}; first: {failures[0]}"
                )
        logger.debug("Bulk sent %d operations to %s", len(update), self.index)

    def commit(
        self,
        params: Optional[Mapping[str, str]] = None,
        basic_auth: Optional[BasicAuth] = None,
    ) -> None:
        try:
            self._scoped(basic_auth).indices.refresh(index=self.index)
        except (ApiError, ESTransportError) as exc:
            raise TransportError(f"Refresh of index {self.index!r} failed: {exc}") from exc

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __repr__(self) -> str:
        return f"ElasticsearchIndexClient(hosts={self.hosts!r}, index={self.index!r})"
