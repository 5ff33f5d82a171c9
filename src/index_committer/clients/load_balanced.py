"""Client-side load balancing over several Solr nodes.

Requests go round-robin to live servers. A server that cannot be
reached, or answers 503, is parked as a zombie and the request moves on
to the next one. Zombies are tried again once ``zombie_retry_seconds``
have elapsed, or as a last resort when no live server is left.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Dict, List, Mapping, Optional, Sequence

import httpx

from ..errors import ConfigurationError
from ._solr import (
    SolrServerError,
    SolrUnreachableError,
    create_http_client,
    normalize_url,
    post_commit,
    post_update,
    to_update_xml,
)
from .base import BasicAuth, IndexClient, UpdateRequest

logger = logging.getLogger(__name__)

_RETRYABLE_STATUS = {503}


class LoadBalancedIndexClient(IndexClient):
    def __init__(
        self,
        urls: Sequence[str],
        *,
        timeout: float = 60.0,
        verify: bool = True,
        http2: bool = False,
        http_client: Optional[httpx.Client] = None,
        zombie_retry_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.urls: List[str] = [normalize_url(url) for url in urls]
        if not self.urls:
            raise ConfigurationError("At least one Solr URL is required")
        if len(self.urls) < 2:
            logger.info(
                "Load-balanced client configured with a single URL: %s", self.urls[0]
            )
        self._owns_client = http_client is None
        self._client = http_client or create_http_client(timeout, verify, http2)
        self._zombie_retry_seconds = zombie_retry_seconds
        self._clock = clock
        self._zombies: Dict[str, float] = {}
        self._counter = 0
        self._lock = threading.Lock()

    @property
    def zombies(self) -> List[str]:
        with self._lock:
            return list(self._zombies)

    def _candidates(self) -> List[str]:
        with self._lock:
            now = self._clock()
            for url, since in list(self._zombies.items()):
                if now - since >= self._zombie_retry_seconds:
                    del self._zombies[url]
                    logger.info("Retrying previously failed Solr server %s", url)
            alive = [url for url in self.urls if url not in self._zombies]
            ordered: List[str] = []
            if alive:
                start = self._counter % len(alive)
                ordered = alive[start:] + alive[:start]
            self._counter += 1
            return ordered + [url for url in self.urls if url in self._zombies]

    def _mark_zombie(self, url: str, exc: Exception) -> None:
        logger.warning("Solr server %s failed, marking as zombie: %s", url, exc)
        with self._lock:
            self._zombies[url] = self._clock()

    def _revive(self, url: str) -> None:
        with self._lock:
            if self._zombies.pop(url, None) is not None:
                logger.info("Solr server %s is alive again", url)

    def _dispatch(self, send: Callable[[str], None]) -> None:
        last_exc: Optional[Exception] = None
        for url in self._candidates():
            try:
                send(url)
            except SolrUnreachableError as exc:
                self._mark_zombie(url, exc)
                last_exc = exc
                continue
            except SolrServerError as exc:
                if exc.status_code not in _RETRYABLE_STATUS:
                    raise
                self._mark_zombie(url, exc)
                last_exc = exc
                continue
            self._revive(url)
            return
        raise SolrUnreachableError(
            f"No live Solr servers available to handle this request: {self.urls}"
        ) from last_exc

    def request(self, update: UpdateRequest) -> None:
        body = to_update_xml(update)
        params = dict(update.params)
        auth = update.basic_auth
        self._dispatch(lambda url: post_update(self._client, url, body, params, auth))

    def commit(
        self,
        params: Optional[Mapping[str, str]] = None,
        basic_auth: Optional[BasicAuth] = None,
    ) -> None:
        self._dispatch(lambda url: post_commit(self._client, url, params, basic_auth))

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __repr__(self) -> str:
        return f"LoadBalancedIndexClient(urls={self.urls!r})"
