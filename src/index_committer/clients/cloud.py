"""Cluster-aware client for SolrCloud.

The configured URLs are cluster nodes, each ending with the collection
name (``http://node1:8983/solr/mycollection``). The collection layout is
read from the Collections API (``CLUSTERSTATUS``) and updates are sent
to the shard leaders through a :class:`LoadBalancedIndexClient`. When no
leader can be reached the layout is discovered again on the next call.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Dict, List, Mapping, Optional, Sequence

import httpx

from ..errors import ConfigurationError, TransportError
from ._solr import (
    SolrServerError,
    SolrUnreachableError,
    create_http_client,
    split_collection_url,
)
from .base import BasicAuth, IndexClient, UpdateRequest
from .load_balanced import LoadBalancedIndexClient

logger = logging.getLogger(__name__)


def leader_urls(cluster_status: Dict[str, Any], collection: str) -> List[str]:
    """Extract update URLs for *collection* from a CLUSTERSTATUS response.

    Active shard leaders on live nodes are preferred; when none are
    found every active replica on a live node is returned instead.
    """
    cluster = cluster_status.get("cluster") or {}
    live_nodes = set(cluster.get("live_nodes") or [])
    shards = (
        ((cluster.get("collections") or {}).get(collection) or {}).get("shards") or {}
    )
    leaders: List[str] = []
    replicas: List[str] = []
    for shard in shards.values():
        if shard.get("state", "active") != "active":
            continue
        for replica in (shard.get("replicas") or {}).values():
            if replica.get("state") != "active":
                continue
            if live_nodes and replica.get("node_name") not in live_nodes:
                continue
            base_url = str(replica.get("base_url") or "").rstrip("/")
            if not base_url:
                continue
            url = f"{base_url}/{collection}"
            if str(replica.get("leader", "")).lower() == "true":
                if url not in leaders:
                    leaders.append(url)
            elif url not in replicas:
                replicas.append(url)
    return leaders or replicas


class CloudIndexClient(IndexClient):
    def __init__(
        self,
        urls: Sequence[str],
        *,
        timeout: float = 60.0,
        verify: bool = True,
        http2: bool = False,
        http_client: Optional[httpx.Client] = None,
    ) -> None:
        if not urls:
            raise ConfigurationError("At least one SolrCloud node URL is required")
        roots: List[str] = []
        collections = set()
        for url in urls:
            root, collection = split_collection_url(url)
            roots.append(root)
            collections.add(collection)
        if len(collections) != 1:
            raise ConfigurationError(
                f"SolrCloud node URLs must share one collection, got: {sorted(collections)}"
            )
        self.node_roots = roots
        self.collection = collections.pop()
        self._owns_client = http_client is None
        self._client = http_client or create_http_client(timeout, verify, http2)
        self._router: Optional[LoadBalancedIndexClient] = None
        self._lock = threading.Lock()

    def _cluster_status(self, basic_auth: Optional[BasicAuth]) -> Dict[str, Any]:
        last_exc: Optional[Exception] = None
        for root in self.node_roots:
            url = f"{root}/admin/collections"
            try:
                response = self._client.get(
                    url,
                    params={
                        "action": "CLUSTERSTATUS",
                        "collection": self.collection,
                        "wt": "json",
                    },
                    auth=basic_auth,
                )
                response.raise_for_status()
                return response.json()
            except (httpx.HTTPError, ValueError) as exc:
                logger.warning("Cluster status unavailable from %s: %s", url, exc)
                last_exc = exc
        raise TransportError(
            f"Cannot read SolrCloud cluster status from any of: {self.node_roots}"
        ) from last_exc

    def _get_router(self, basic_auth: Optional[BasicAuth]) -> LoadBalancedIndexClient:
        with self._lock:
            if self._router is None:
                urls = leader_urls(self._cluster_status(basic_auth), self.collection)
                if not urls:
                    raise TransportError(
                        f"No active replicas found for collection {self.collection!r}"
                    )
                logger.info(
                    "Routing updates for collection %s to %s", self.collection, urls
                )
                self._router = LoadBalancedIndexClient(urls, http_client=self._client)
            return self._router

    def _reset_router(self) -> None:
        with self._lock:
            self._router = None

    def _on_failure(self, exc: TransportError) -> None:
        stale = isinstance(exc, SolrUnreachableError) or (
            isinstance(exc, SolrServerError) and exc.status_code == 503
        )
        if stale:
            logger.warning("Update failed, cluster layout will be refreshed: %s", exc)
            self._reset_router()

    def request(self, update: UpdateRequest) -> None:
        router = self._get_router(update.basic_auth)
        try:
            router.request(update)
        except TransportError as exc:
            self._on_failure(exc)
            raise

    def commit(
        self,
        params: Optional[Mapping[str, str]] = None,
        basic_auth: Optional[BasicAuth] = None,
    ) -> None:
        router = self._get_router(basic_auth)
        try:
            router.commit(params, basic_auth)
        except TransportError as exc:
            self._on_failure(exc)
            raise

    def close(self) -> None:
        self._reset_router()
        if self._owns_client:
            self._client.close()

    def __repr__(self) -> str:
        return (
            f"CloudIndexClient(nodes={self.node_roots!r}, "
            f"collection={self.collection!r})"
        )
