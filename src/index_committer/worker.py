"""Relay worker: reads commit requests as JSON lines and sends them in batches.

Each input line is one request, e.g.::

    {"kind": "upsert", "reference": "doc-1", "fields": {"title": ["Hello"]}}
    {"kind": "delete", "reference": "doc-0"}

Requests are grouped into batches of ``COMMITTER_COMMIT_BATCH_SIZE``.
Blank lines are skipped; a line that is not a valid request stops the
relay after the requests read so far have been committed.
"""

from __future__ import annotations

import json
import logging
import sys
from typing import IO, Iterable, Iterator, List, Mapping, Optional, Union

from pydantic import ValidationError

from .committer import Committer
from .config import get_settings
from .errors import CommitterError, ConfigurationError
from .schemas import DeleteRequest, UpsertRequest, parse_request

logger = logging.getLogger(__name__)


def read_requests(lines: Iterable[str]) -> Iterator[Union[UpsertRequest, DeleteRequest]]:
    for lineno, line in enumerate(lines, start=1):
        line = line.strip()
        if not line:
            continue
        try:
            yield parse_request(json.loads(line))
        except (ValueError, ValidationError) as exc:
            raise ConfigurationError(f"Invalid commit request on line {lineno}: {exc}") from exc


def relay(committer: Committer, lines: Iterable[str]) -> int:
    """Send every request in *lines* through *committer*; return the count."""
    batch: List[Union[UpsertRequest, DeleteRequest]] = []
    total = 0
    try:
        for request in read_requests(lines):
            batch.append(request)
            if len(batch) >= committer.settings.commit_batch_size:
                pending, batch = batch, []
                total += committer.commit_batch(pending)
    except ConfigurationError:
        # requests parsed before the bad line still go out, once
        if batch:
            committer.commit_batch(batch)
        raise
    if batch:
        total += committer.commit_batch(batch)
    return total


def main(
    stream: Optional[IO[str]] = None,
    properties: Optional[Mapping[str, str]] = None,
) -> int:
    settings = get_settings()
    logging.basicConfig(level=settings.log_level)

    try:
        with Committer(settings, properties=properties) as committer:
            total = relay(committer, stream or sys.stdin)
    except CommitterError as exc:
        logger.error("Relay stopped: %s (sent=%s)", exc, exc.sent_count)
        return 1
    except KeyboardInterrupt:
        logger.info("Relay interrupted")
        return 130

    logger.info("Relay finished, %d requests committed", total)
    return 0


if __name__ == "__main__":
    sys.exit(main())
