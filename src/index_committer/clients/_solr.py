"""Wire helpers shared by the Solr transports."""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from typing import Any, Dict, Mapping, Optional, Tuple
from urllib.parse import urlsplit, urlunsplit

import httpx

from ..errors import ConfigurationError, TransportError
from .base import AddOperation, BasicAuth, UpdateRequest

logger = logging.getLogger(__name__)

_XML_HEADERS = {"Content-Type": "text/xml; charset=utf-8"}


class SolrUnreachableError(TransportError):
    """The request never got an HTTP response (connect/read failure, timeout)."""


class SolrServerError(TransportError):
    def __init__(self, message: str, status_code: int) -> None:
        super().__init__(message)
        self.status_code = status_code


def create_http_client(
    timeout: float = 60.0,
    verify: bool = True,
    http2: bool = False,
) -> httpx.Client:
    return httpx.Client(
        timeout=timeout,
        verify=verify,
        http2=http2,
        headers={"User-Agent": "index-committer/1.0"},
    )


def normalize_url(url: str) -> str:
    url = (url or "").strip()
    if not url:
        raise ConfigurationError("Index URL is undefined.")
    return url.rstrip("/")


def split_collection_url(url: str) -> Tuple[str, str]:
    """Split ``http://host:8983/solr/core`` into (``http://host:8983/solr``, ``core``)."""
    parts = urlsplit(normalize_url(url))
    path = parts.path.rstrip("/")
    if "/" not in path or not path.rsplit("/", 1)[1]:
        raise ConfigurationError(f"URL does not name a collection or index: {url}")
    root_path, name = path.rsplit("/", 1)
    root = urlunsplit((parts.scheme, parts.netloc, root_path, "", ""))
    return root, name


def to_update_xml(update: UpdateRequest) -> bytes:
    """Serialise *update* as a Solr XML ``<update>`` message.

    Consecutive adds share one ``<add>`` element and consecutive deletes
    one ``<delete>`` element, so Solr applies them in the order they were queued.
    """
    root = ET.Element("update")
    group: Optional[ET.Element] = None
    group_kind = ""
    for op in update.operations:
        if isinstance(op, AddOperation):
            if group_kind != "add":
                group = ET.SubElement(root, "add")
                group_kind = "add"
            doc = ET.SubElement(group, "doc")
            for name, value in op.document:
                field = ET.SubElement(doc, "field", name=name)
                field.text = value
        else:
            if group_kind != "delete":
                group = ET.SubElement(root, "delete")
                group_kind = "delete"
            ET.SubElement(group, "id").text = op.reference
    return ET.tostring(root, encoding="utf-8")


def _error_message(response: httpx.Response) -> str:
    try:
        data: Any = response.json()
    except ValueError:
        return response.text[:500]
    if isinstance(data, dict):
        error = data.get("error")
        if isinstance(error, dict) and error.get("msg"):
            return str(error["msg"])
    return response.text[:500]


def _post(
    client: httpx.Client,
    url: str,
    *,
    params: Dict[str, str],
    content: Optional[bytes],
    basic_auth: Optional[BasicAuth],
) -> httpx.Response:
    try:
        response = client.post(
            url,
            params=params,
            content=content,
            headers=_XML_HEADERS if content is not None else None,
            auth=basic_auth,
        )
    except httpx.HTTPError as exc:
        raise SolrUnreachableError(f"Cannot reach Solr at {url}: {exc}") from exc
    if response.status_code >= 400:
        raise SolrServerError(
            f"Solr returned HTTP {response.status_code} for {url}: "
            f"{_error_message(response)}",
            response.status_code,
        )
    return response


def post_update(
    client: httpx.Client,
    base_url: str,
    body: bytes,
    params: Optional[Mapping[str, str]] = None,
    basic_auth: Optional[BasicAuth] = None,
) -> None:
    query = {"wt": "json", **dict(params or {})}
    url = f"{base_url}/update"
    logger.debug("POST %s (%d bytes, params=%s)", url, len(body), query)
    _post(client, url, params=query, content=body, basic_auth=basic_auth)


def post_commit(
    client: httpx.Client,
    base_url: str,
    params: Optional[Mapping[str, str]] = None,
    basic_auth: Optional[BasicAuth] = None,
) -> None:
    query = {"wt": "json", **dict(params or {}), "commit": "true"}
    url = f"{base_url}/update"
    logger.debug("Committing %s", url)
    _post(client, url, params=query, content=None, basic_auth=basic_auth)
