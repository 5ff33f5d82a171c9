"""Relay document upserts and deletes from a content pipeline to a search index."""

from .committer import BatchState, Committer, CommitterState
from .config import Settings, get_settings, validate_settings
from .documents import IndexDocument, build_document, map_upsert
from .errors import (
    CommitterError,
    ConfigurationError,
    TransportError,
    UnexpectedError,
    UnsupportedOperationError,
)
from .schemas import (
    CommitRequest,
    Credentials,
    DeleteRequest,
    EncryptionKey,
    FieldMapping,
    KeySource,
    UpsertRequest,
    parse_request,
)

__all__ = [
    "BatchState",
    "Committer",
    "CommitterState",
    "Settings",
    "get_settings",
    "validate_settings",
    "IndexDocument",
    "build_document",
    "map_upsert",
    "CommitterError",
    "ConfigurationError",
    "TransportError",
    "UnexpectedError",
    "UnsupportedOperationError",
    "CommitRequest",
    "Credentials",
    "DeleteRequest",
    "EncryptionKey",
    "FieldMapping",
    "KeySource",
    "UpsertRequest",
    "parse_request",
]
