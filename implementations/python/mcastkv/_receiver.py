"""Receive loop: decode each datagram and write its lines.

One datagram is decoded and written out completely before the next one
is read.  A malformed payload costs only the rest of that payload.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, TextIO

from ._core import BufferLike, DecodeOutcome, Pair, iter_pairs
from ._errors import DecodeError
from ._format import format_diagnostic, format_pair

logger = logging.getLogger(__name__)


@dataclass
class ReceiverStats:
    datagrams: int = 0
    pairs: int = 0
    errors: int = 0


def _write(stream: TextIO, text: str) -> None:
    # Payload bytes decide the characters; the stream's codec must not
    # be able to stop the loop.
    try:
        stream.write(text)
    except UnicodeEncodeError:
        encoding = getattr(stream, "encoding", None) or "ascii"
        stream.write(text.encode(encoding, "backslashreplace").decode(encoding))


def process_datagram(payload: BufferLike, out: TextIO, err: TextIO) -> DecodeOutcome:
    """Decode one payload, writing pair lines to `out` as they decode.

    On a malformed token the diagnostic line goes to `err` and the rest of
    the payload is dropped.  Lines already written for earlier pairs stay.
    Characters a stream cannot encode are written as backslash escapes.
    """
    pairs: List[Pair] = []
    error: Optional[DecodeError] = None
    try:
        for pair in iter_pairs(payload):
            _write(out, format_pair(pair))
            pairs.append(pair)
    except DecodeError as e:
        error = e
    out.flush()

    if error is not None:
        _write(err, format_diagnostic(error))
        err.flush()
        logger.debug("payload of %d bytes rejected at offset %d after %d pair(s): [%s] %s",
                     len(payload), error.offset, len(pairs), error.code, error)
    return DecodeOutcome(pairs, error)


def serve(datagrams: Iterable[BufferLike], out: TextIO, err: TextIO,
          limit: Optional[int] = None) -> ReceiverStats:
    """Run process_datagram over `datagrams` until it runs dry.

    Stops early after `limit` datagrams when a limit is given.  Decode
    errors are counted, never raised.
    """
    stats = ReceiverStats()
    if limit is not None and limit <= 0:
        return stats
    for payload in datagrams:
        outcome = process_datagram(payload, out, err)
        stats.datagrams += 1
        stats.pairs += len(outcome.pairs)
        if not outcome.ok:
            stats.errors += 1
        if limit is not None and stats.datagrams >= limit:
            break
    logger.debug("receive loop done: %d datagram(s), %d pair(s), %d error(s)",
                 stats.datagrams, stats.pairs, stats.errors)
    return stats
