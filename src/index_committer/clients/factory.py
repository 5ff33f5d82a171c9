from __future__ import annotations

import logging
import threading
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Dict, Optional, Tuple, Union

from ..errors import CommitterError, ConfigurationError
from .base import IndexClient
from .cloud import CloudIndexClient
from .concurrent import ConcurrentUpdateIndexClient
from .elastic import ElasticsearchIndexClient
from .http import HttpIndexClient
from .load_balanced import LoadBalancedIndexClient

if TYPE_CHECKING:
    from ..config import Settings

logger = logging.getLogger(__name__)


class ClientType(str, Enum):
    HTTP = "http"
    LB_HTTP = "lb_http"
    CLOUD = "cloud"
    CONCURRENT_UPDATE = "concurrent_update"
    ELASTICSEARCH = "elasticsearch"


# Solr client class names accepted as aliases: (type, use HTTP/2)
_ALIASES: Dict[str, Tuple[ClientType, bool]] = {
    "httpsolrclient": (ClientType.HTTP, False),
    "http2solrclient": (ClientType.HTTP, True),
    "lbhttpsolrclient": (ClientType.LB_HTTP, False),
    "lbhttp2solrclient": (ClientType.LB_HTTP, True),
    "cloudsolrclient": (ClientType.CLOUD, False),
    "concurrentupdatesolrclient": (ClientType.CONCURRENT_UPDATE, False),
    "concurrentupdatehttp2solrclient": (ClientType.CONCURRENT_UPDATE, True),
}


def parse_client_type(value: Union[str, ClientType, None]) -> Tuple[ClientType, bool]:
    """Resolve a configured client type tag; unset means ``http``."""
    if isinstance(value, ClientType):
        return value, False
    tag = (value or "").strip().lower().replace("-", "_")
    if not tag:
        return ClientType.HTTP, False
    if tag in _ALIASES:
        return _ALIASES[tag]
    try:
        return ClientType(tag), False
    except ValueError:
        raise ConfigurationError(f"Unknown index client type: {value!r}") from None


def _split_urls(url: str) -> list:
    return [part.strip() for part in (url or "").split(",") if part.strip()]


def create_client(
    client_type: Union[str, ClientType, None],
    url: str,
    *,
    timeout: float = 60.0,
    verify: bool = True,
    queue_size: int = 10,
    thread_count: int = 2,
) -> IndexClient:
    """Build the transport matching *client_type* for *url*.

    *url* is a single URL, or a comma-separated list for the
    load-balanced, cloud and Elasticsearch types.
    """
    if not url or not url.strip():
        raise ConfigurationError("Index URL is undefined.")
    kind, http2 = parse_client_type(client_type)

    if kind == ClientType.HTTP:
        return HttpIndexClient(url, timeout=timeout, verify=verify, http2=http2)
    if kind == ClientType.LB_HTTP:
        return LoadBalancedIndexClient(
            _split_urls(url), timeout=timeout, verify=verify, http2=http2
        )
    if kind == ClientType.CLOUD:
        return CloudIndexClient(
            _split_urls(url), timeout=timeout, verify=verify, http2=http2
        )
    if kind == ClientType.CONCURRENT_UPDATE:
        return ConcurrentUpdateIndexClient(
            url,
            queue_size=queue_size,
            thread_count=thread_count,
            timeout=timeout,
            verify=verify,
            http2=http2,
        )
    if kind == ClientType.ELASTICSEARCH:
        return ElasticsearchIndexClient(_split_urls(url), timeout=timeout, verify=verify)
    raise ConfigurationError(f"Unknown index client type: {client_type!r}")


class ClientProvider:
    """Owns the single, lazily created :class:`IndexClient` of a committer.

    :meth:`ensure_client` creates the client on first use under a lock,
    so concurrent first callers get the same instance. Once
    :meth:`close` has run the provider cannot hand out clients again.
    """

    def __init__(self, factory: Callable[[], IndexClient]) -> None:
        self._factory = factory
        self._client: Optional[IndexClient] = None
        self._closed = False
        self._lock = threading.Lock()

    @classmethod
    def for_endpoint(
        cls,
        client_type: Union[str, ClientType, None],
        url: str,
        **options: Any,
    ) -> "ClientProvider":
        if not url or not url.strip():
            raise ConfigurationError("Index URL is undefined.")
        parse_client_type(client_type)
        return cls(lambda: create_client(client_type, url, **options))

    @classmethod
    def from_settings(cls, settings: "Settings") -> "ClientProvider":
        return cls.for_endpoint(
            settings.client_type,
            settings.url,
            timeout=settings.timeout_seconds,
            verify=settings.verify_tls,
            queue_size=settings.queue_size,
            thread_count=settings.thread_count,
        )

    @property
    def created(self) -> bool:
        return self._client is not None

    @property
    def closed(self) -> bool:
        return self._closed

    def ensure_client(self) -> IndexClient:
        client = self._client
        if client is not None:
            return client
        with self._lock:
            if self._closed:
                raise CommitterError("Index client has been closed.")
            if self._client is None:
                self._client = self._factory()
                logger.info("Created index client %r", self._client)
            return self._client

    def close(self) -> None:
        with self._lock:
            client, self._client = self._client, None
            self._closed = True
        if client is not None:
            client.close()
            logger.info("Closed index client %r", client)
