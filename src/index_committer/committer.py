"""Batch committer: turns ordered upsert/delete requests into index calls.

All operations of a batch are accumulated in one :class:`UpdateRequest`.
Whenever a delete immediately follows an upsert, the request built so
far is pushed (and committed) first: upserted documents are not visible
until committed, so deleting one of them before that would silently do
nothing.

The committer expects a single writer. Batches are serialised with an
internal lock so concurrent callers wait instead of interleaving.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Mapping, Optional, Union

from .clients.base import IndexClient, UpdateRequest
from .clients.factory import ClientProvider
from .config import Settings, validate_settings
from .credentials import attach_credentials
from .documents import build_document, map_upsert
from .errors import CommitterError, UnexpectedError, UnsupportedOperationError
from .schemas import DeleteRequest, UpsertRequest

logger = logging.getLogger(__name__)


class CommitterState(str, Enum):
    UNINITIALIZED = "uninitialized"
    READY = "ready"
    CLOSED = "closed"


@dataclass
class BatchState:
    previous_was_upsert: bool = False
    sent: int = 0


class Committer:
    def __init__(
        self,
        settings: Settings,
        *,
        properties: Optional[Mapping[str, str]] = None,
        client_provider: Optional[ClientProvider] = None,
    ) -> None:
        validate_settings(settings)
        self.settings = settings
        self._provider = client_provider or ClientProvider.from_settings(settings)
        self._properties = dict(properties or {})
        self._credentials = settings.credentials
        self._update_params = settings.update_url_params_map
        self._reference_mapping = settings.reference_mapping
        self._content_mapping = settings.content_mapping
        self._buffer: List[Union[UpsertRequest, DeleteRequest]] = []
        self._lock = threading.RLock()
        self.state = CommitterState.UNINITIALIZED

    # ── Lifecycle ────────────────────────────────────────────

    def init(self) -> None:
        with self._lock:
            self._client()

    def _client(self) -> IndexClient:
        if self.state == CommitterState.CLOSED:
            raise CommitterError("Committer is closed.")
        client = self._provider.ensure_client()
        self.state = CommitterState.READY
        return client

    def close(self) -> None:
        """Commit buffered requests, then release the index client."""
        with self._lock:
            if self.state == CommitterState.CLOSED:
                return
            try:
                if self._buffer:
                    self._commit_buffer()
            finally:
                self._provider.close()
                self.state = CommitterState.CLOSED
                logger.info("Committer closed.")

    def __enter__(self) -> "Committer":
        self.init()
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # ── Buffered API ─────────────────────────────────────────

    def upsert(self, request: UpsertRequest) -> None:
        self._enqueue(request)

    def delete(self, request: DeleteRequest) -> None:
        self._enqueue(request)

    def flush(self) -> int:
        with self._lock:
            return self._commit_buffer()

    def _enqueue(self, request: Union[UpsertRequest, DeleteRequest]) -> None:
        with self._lock:
            if self.state == CommitterState.CLOSED:
                raise CommitterError("Committer is closed.")
            self._buffer.append(request)
            if len(self._buffer) >= self.settings.commit_batch_size:
                self._commit_buffer()

    def _commit_buffer(self) -> int:
        batch, self._buffer = self._buffer, []
        if not batch:
            return 0
        return self.commit_batch(batch)

    # ── Batch protocol ───────────────────────────────────────

    def commit_batch(self, requests: Iterable[Union[UpsertRequest, DeleteRequest]]) -> int:
        """Send *requests* in order and return how many were processed.

        Raises a :class:`CommitterError` whose ``sent_count`` tells how
        many operations had already been submitted; those are not
        rolled back.
        """
        with self._lock:
            client = self._client()
            state = BatchState()
            update = UpdateRequest()
            count = 0
            try:
                for request in requests:
                    if isinstance(request, UpsertRequest):
                        self._add_upsert(update, request)
                        state.previous_was_upsert = True
                    elif isinstance(request, DeleteRequest):
                        if state.previous_was_upsert:
                            self._push(client, update, state)
                        update.delete_by_id(request.reference)
                        state.previous_was_upsert = False
                    else:
                        raise UnsupportedOperationError(
                            f"Unsupported operation: {request!r}"
                        )
                    count += 1
                self._push(client, update, state)
            except CommitterError as exc:
                if exc.sent_count is None:
                    exc.sent_count = state.sent
                raise
            except Exception as exc:
                raise UnexpectedError(
                    "Cannot push document batch to the index.",
                    sent_count=state.sent,
                ) from exc

            logger.info("Sent %d committer operations to the index.", count)
            return count

    def _add_upsert(self, update: UpdateRequest, request: UpsertRequest) -> None:
        fields = map_upsert(request, self._reference_mapping, self._content_mapping)
        reference = fields[self._reference_mapping.target_field][0]
        update.add(build_document(fields), reference)

    def _push(self, client: IndexClient, update: UpdateRequest, state: BatchState) -> None:
        attach_credentials(update, self._credentials, self._properties)
        for name, value in self._update_params.items():
            update.set_param(name, value)
        basic_auth = update.basic_auth
        try:
            if not update.is_empty:
                client.request(update)
                state.sent += len(update)
            if self.settings.commit_disabled:
                client.block_until_finished()
            else:
                client.commit(basic_auth=basic_auth)
        finally:
            update.clear()
