from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Tuple, Union

from ..documents import IndexDocument

BasicAuth = Tuple[str, str]


@dataclass(frozen=True)
class AddOperation:
    reference: str
    document: IndexDocument


@dataclass(frozen=True)
class DeleteOperation:
    reference: str


Operation = Union[AddOperation, DeleteOperation]


class UpdateRequest:
    """One outgoing "submit documents and deletions" call.

    Operations keep the order in which they were added. ``params`` are
    sent as URL parameters and ``basic_auth`` as HTTP basic
    authentication. :meth:`clear` resets all three once the call has
    been pushed.
    """

    def __init__(self) -> None:
        self.operations: List[Operation] = []
        self.params: Dict[str, str] = {}
        self.basic_auth: Optional[BasicAuth] = None

    def add(self, document: IndexDocument, reference: str) -> None:
        self.operations.append(AddOperation(reference=reference, document=document))

    def delete_by_id(self, reference: str) -> None:
        self.operations.append(DeleteOperation(reference=reference))

    def set_param(self, name: str, value: str) -> None:
        self.params[name] = value

    @property
    def documents(self) -> List[AddOperation]:
        return [op for op in self.operations if isinstance(op, AddOperation)]

    @property
    def deletes(self) -> List[DeleteOperation]:
        return [op for op in self.operations if isinstance(op, DeleteOperation)]

    @property
    def is_empty(self) -> bool:
        return not self.operations

    def clear(self) -> None:
        self.operations = []
        self.params = {}
        self.basic_auth = None

    def __len__(self) -> int:
        return len(self.operations)

    def __repr__(self) -> str:
        return (
            f"UpdateRequest(adds={len(self.documents)}, "
            f"deletes={len(self.deletes)}, params={self.params!r})"
        )


class IndexClient(ABC):
    """Connection to a remote index able to apply updates and commit them."""

    @abstractmethod
    def request(self, update: UpdateRequest) -> None:
        raise NotImplementedError

    @abstractmethod
    def commit(
        self,
        params: Optional[Mapping[str, str]] = None,
        basic_auth: Optional[BasicAuth] = None,
    ) -> None:
        raise NotImplementedError

    def block_until_finished(self) -> None:
        """Wait until every submitted update has reached the index."""
        return None

    def close(self) -> None:
        return None

    def __enter__(self) -> "IndexClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
