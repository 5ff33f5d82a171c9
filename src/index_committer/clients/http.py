from __future__ import annotations

from typing import Mapping, Optional

import httpx

from ._solr import create_http_client, normalize_url, post_commit, post_update, to_update_xml
from .base import BasicAuth, IndexClient, UpdateRequest


class HttpIndexClient(IndexClient):
    """Direct access to a single Solr node (core or collection URL)."""

    def __init__(
        self,
        url: str,
        *,
        timeout: float = 60.0,
        verify: bool = True,
        http2: bool = False,
        http_client: Optional[httpx.Client] = None,
    ) -> None:
        self.url = normalize_url(url)
        self._owns_client = http_client is None
        self._client = http_client or create_http_client(timeout, verify, http2)

    def request(self, update: UpdateRequest) -> None:
        post_update(
            self._client,
            self.url,
            to_update_xml(update),
            update.params,
            update.basic_auth,
        )

    def commit(
        self,
        params: Optional[Mapping[str, str]] = None,
        basic_auth: Optional[BasicAuth] = None,
    ) -> None:
        post_commit(self._client, self.url, params, basic_auth)

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __repr__(self) -> str:
        return f"HttpIndexClient(url={self.url!r})"
