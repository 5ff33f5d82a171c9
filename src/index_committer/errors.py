"""Exception hierarchy raised by the committer.

Every failure that reaches the pipeline is a :class:`CommitterError`.
``sent_count`` is the number of operations already submitted to the
index when the batch was aborted; it is advisory only since the remote
index offers no cross-call atomicity.
"""

from __future__ import annotations

from typing import Optional


class CommitterError(Exception):
    def __init__(self, message: str, sent_count: Optional[int] = None) -> None:
        super().__init__(message)
        self.sent_count = sent_count


class ConfigurationError(CommitterError, ValueError):
    """Missing/blank endpoint, unknown client type or unusable credentials."""


class UnsupportedOperationError(CommitterError):
    """A commit request that is neither an upsert nor a delete."""


class TransportError(CommitterError):
    """Network or protocol failure while talking to the remote index."""


class UnexpectedError(CommitterError):
    pass
