"""Mapping of commit-request fields into index documents."""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence, Tuple

from .schemas import FieldMapping, UpsertRequest

logger = logging.getLogger(__name__)

DEFAULT_REFERENCE_FIELD = "id"
DEFAULT_CONTENT_FIELD = "content"


class IndexDocument:
    """An index document: ordered, possibly repeated, ``(name, value)`` entries."""

    def __init__(self, entries: Optional[Sequence[Tuple[str, str]]] = None) -> None:
        self._entries: List[Tuple[str, str]] = list(entries or [])

    def add_field(self, name: str, value: str) -> None:
        self._entries.append((name, value))

    @property
    def entries(self) -> List[Tuple[str, str]]:
        return list(self._entries)

    @property
    def field_names(self) -> List[str]:
        names: List[str] = []
        for name, _ in self._entries:
            if name not in names:
                names.append(name)
        return names

    def get(self, name: str) -> List[str]:
        return [value for field, value in self._entries if field == name]

    def to_dict(self) -> Dict[str, List[str]]:
        fields: Dict[str, List[str]] = {}
        for name, value in self._entries:
            fields.setdefault(name, []).append(value)
        return fields

    def __iter__(self) -> Iterator[Tuple[str, str]]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, IndexDocument):
            return NotImplemented
        return self._entries == other._entries

    def __repr__(self) -> str:
        return f"IndexDocument({self.to_dict()!r})"


def build_document(fields: Mapping[str, Sequence[str]]) -> IndexDocument:
    """Emit every value of every key, in order, as a repeated field entry.

    Field names are not validated here; the remote index rejects bad
    ones when the request is submitted.
    """
    doc = IndexDocument()
    for key, values in fields.items():
        for value in values:
            doc.add_field(key, value)
    return doc


def _read_content(content: Any) -> str:
    if content is None:
        return ""
    if isinstance(content, str):
        return content
    if isinstance(content, (bytes, bytearray)):
        data = bytes(content)
    else:
        data = content.read()
        if isinstance(data, str):
            return data
    return data.decode("utf-8")


def map_upsert(
    request: UpsertRequest,
    reference_mapping: Optional[FieldMapping] = None,
    content_mapping: Optional[FieldMapping] = None,
) -> Dict[str, List[str]]:
    """Return the request fields with reference and content mapped in.

    The reference value comes from ``reference_mapping.source_field``
    when that field is present, otherwise from ``request.reference``.
    The content comes from ``content_mapping.source_field`` when set,
    otherwise from the request's content stream. Source fields are
    dropped unless ``keep_source`` is set.
    """
    ref_map = reference_mapping or FieldMapping(target_field=DEFAULT_REFERENCE_FIELD)
    content_map = content_mapping or FieldMapping(target_field=DEFAULT_CONTENT_FIELD)
    fields: Dict[str, List[str]] = {
        key: list(values) for key, values in request.fields.items()
    }

    # Reference
    reference = request.reference
    source = ref_map.source_field
    if source:
        values = fields.get(source)
        if values:
            reference = values[0]
        else:
            logger.debug(
                "Reference source field %r missing for %s, using document reference.",
                source,
                request.reference,
            )
        if not ref_map.keep_source and source != ref_map.target_field:
            fields.pop(source, None)
    fields[ref_map.target_field] = [reference]

    # Content
    source = content_map.source_field
    if source:
        values = fields.get(source, [])
        if values:
            fields[content_map.target_field] = list(values)
        if not content_map.keep_source and source != content_map.target_field:
            fields.pop(source, None)
    else:
        text = _read_content(request.content)
        if text:
            fields[content_map.target_field] = [text]

    return fields
