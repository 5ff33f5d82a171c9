from __future__ import annotations

from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter, field_validator


class UpsertRequest(BaseModel):
    kind: Literal["upsert"] = "upsert"
    reference: str = Field(min_length=1)
    fields: Dict[str, List[str]] = Field(default_factory=dict)
    # bytes, or a binary stream exposing read()
    content: Optional[Any] = None

    @field_validator("fields", mode="before")
    @classmethod
    def _listify_values(cls, value: Any) -> Any:
        if not isinstance(value, dict):
            return value
        return {
            key: [values] if isinstance(values, str) else values
            for key, values in value.items()
        }


class DeleteRequest(BaseModel):
    kind: Literal["delete"] = "delete"
    reference: str = Field(min_length=1)


CommitRequest = Annotated[
    Union[UpsertRequest, DeleteRequest],
    Field(discriminator="kind"),
]

_REQUEST_ADAPTER: TypeAdapter = TypeAdapter(CommitRequest)


def parse_request(raw: Any) -> Union[UpsertRequest, DeleteRequest]:
    """Validate a dict (e.g. a decoded JSON line) into a commit request."""
    if isinstance(raw, (UpsertRequest, DeleteRequest)):
        return raw
    return _REQUEST_ADAPTER.validate_python(raw)


class FieldMapping(BaseModel):
    source_field: Optional[str] = None
    target_field: str
    keep_source: bool = False


class KeySource(str, Enum):
    KEY = "key"
    FILE = "file"
    ENVIRONMENT = "environment"
    PROPERTY = "property"


class EncryptionKey(BaseModel):
    value: str
    source: KeySource = KeySource.KEY


class Credentials(BaseModel):
    username: str = ""
    password: str = ""
    password_key: Optional[EncryptionKey] = None

    @property
    def is_set(self) -> bool:
        return bool(self.username.strip())

    def __repr__(self) -> str:
        return f"Credentials(username={self.username!r}, password='********')"

    __str__ = __repr__
