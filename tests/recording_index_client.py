from __future__ import annotations

from typing import Any, List, Mapping, Optional, Tuple

from index_committer.clients.base import (
    AddOperation,
    BasicAuth,
    IndexClient,
    UpdateRequest,
)


class RecordingIndexClient(IndexClient):
    """Index client double recording every call in order.

    ``calls`` holds ``("submit", [("add"|"delete", reference), ...], params, auth)``
    and ``("commit", auth)`` tuples; ``attempts`` counts every submit, failed or not.
    """

    def __init__(self, fail_on_submit: Optional[int] = None) -> None:
        self.calls: List[Tuple[Any, ...]] = []
        self.documents: List[Any] = []
        self.closed = 0
        self.attempts = 0
        self._fail_on_submit = fail_on_submit

    def request(self, update: UpdateRequest) -> None:
        self.attempts += 1
        if self.attempts == self._fail_on_submit:
            raise ConnectionResetError("connection reset by peer")
        ops = []
        for op in update.operations:
            if isinstance(op, AddOperation):
                ops.append(("add", op.reference))
                self.documents.append(op.document)
            else:
                ops.append(("delete", op.reference))
        self.calls.append(("submit", ops, dict(update.params), update.basic_auth))

    def commit(
        self,
        params: Optional[Mapping[str, str]] = None,
        basic_auth: Optional[BasicAuth] = None,
    ) -> None:
        self.calls.append(("commit", basic_auth))

    def close(self) -> None:
        self.closed += 1

    @property
    def submits(self) -> List[Tuple[Any, ...]]:
        return [call for call in self.calls if call[0] == "submit"]

    @property
    def commits(self) -> List[Tuple[Any, ...]]:
        return [call for call in self.calls if call[0] == "commit"]

    @property
    def sequence(self) -> List[Any]:
        """Compact view: submitted operation lists and ``"commit"`` markers."""
        return [call[1] if call[0] == "submit" else "commit" for call in self.calls]
