"""Streaming client for high-volume uploads to a single Solr node.

Updates are serialised immediately and sent by a small thread pool so
the caller can keep building the next request. At most ``queue_size``
updates wait to be sent; :meth:`request` blocks when that limit is
reached. :meth:`commit` waits for every queued update before committing
and raises the first failure seen by the background senders.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import List, Mapping, Optional

import httpx

from ..errors import TransportError
from ._solr import create_http_client, normalize_url, post_commit, post_update, to_update_xml
from .base import BasicAuth, IndexClient, UpdateRequest

logger = logging.getLogger(__name__)


class ConcurrentUpdateIndexClient(IndexClient):
    def __init__(
        self,
        url: str,
        *,
        queue_size: int = 10,
        thread_count: int = 2,
        timeout: float = 60.0,
        verify: bool = True,
        http2: bool = False,
        http_client: Optional[httpx.Client] = None,
    ) -> None:
        self.url = normalize_url(url)
        self._owns_client = http_client is None
        self._client = http_client or create_http_client(timeout, verify, http2)
        self._executor = ThreadPoolExecutor(
            max_workers=max(thread_count, 1),
            thread_name_prefix="index-update",
        )
        self._slots = threading.BoundedSemaphore(max(queue_size, 1))
        self._pending: List[Future] = []
        self._lock = threading.Lock()

    def _send(
        self,
        body: bytes,
        params: Mapping[str, str],
        basic_auth: Optional[BasicAuth],
    ) -> None:
        try:
            post_update(self._client, self.url, body, params, basic_auth)
        finally:
            self._slots.release()

    def _raise_failures(self, futures: List[Future]) -> None:
        errors = [exc for exc in (f.exception() for f in futures) if exc is not None]
        if not errors:
            return
        if len(errors) > 1:
            logger.warning("%d queued updates to %s failed", len(errors), self.url)
        first = errors[0]
        if isinstance(first, TransportError):
            raise first
        raise TransportError(f"Queued update to {self.url} failed: {first}") from first

    def _check_completed(self) -> None:
        done: List[Future] = []
        running: List[Future] = []
        with self._lock:
            for future in self._pending:
                (done if future.done() else running).append(future)
            self._pending = running
        self._raise_failures(done)

    def block_until_finished(self) -> None:
        with self._lock:
            pending, self._pending = self._pending, []
        for future in pending:
            # wait; failures are collected below
            future.exception()
        self._raise_failures(pending)

    def request(self, update: UpdateRequest) -> None:
        """Queue *update* for sending.

        An update carrying deletions waits for earlier updates first so
        that a delete never overtakes the add it follows.
        """
        self._check_completed()
        if update.deletes:
            self.block_until_finished()
        body = to_update_xml(update)
        params = dict(update.params)
        self._slots.acquire()
        try:
            future = self._executor.submit(self._send, body, params, update.basic_auth)
        except RuntimeError as exc:
            self._slots.release()
            raise TransportError(f"Streaming client for {self.url} is closed") from exc
        with self._lock:
            self._pending.append(future)
        logger.debug("Queued %d operations for %s", len(update), self.url)

    def commit(
        self,
        params: Optional[Mapping[str, str]] = None,
        basic_auth: Optional[BasicAuth] = None,
    ) -> None:
        self.block_until_finished()
        post_commit(self._client, self.url, params, basic_auth)

    def close(self) -> None:
        try:
            self.block_until_finished()
        finally:
            self._executor.shutdown(wait=True)
            if self._owns_client:
                self._client.close()

    def __repr__(self) -> str:
        return f"ConcurrentUpdateIndexClient(url={self.url!r})"
