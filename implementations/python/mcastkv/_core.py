"""mcastkv core — the datagram payload decoder.

A payload is zero or more `key:value` tokens separated by whitespace:

    key    = 1*( any byte except ':' SP TAB CR LF ) ":"
    value  = DQUOTE *( any byte except DQUOTE ) DQUOTE
           / 1*( any byte except SP TAB CR LF )

Whitespace may also sit between the ':' and the value, and around the
whole payload.  There are no escapes: the first '"' after an opening
quote closes the value, and the first whitespace or ':' ends a key.

Decoding is lazy.  `iter_pairs` yields one Pair per token and raises
DecodeError at the first malformed one; pairs already yielded stay valid.
Oversized keys and values are cut to their ceiling minus one, silently.
That is a fixed data-loss rule of the wire contract, not an error.
"""

from __future__ import annotations

from typing import Iterator, List, NamedTuple, Optional, Tuple, Union

from ._constants import (
    COLON,
    KEY_STOP,
    MAX_KEY_LEN,
    MAX_VALUE_LEN,
    QUOTE,
    VALUE_STOP,
    WHITESPACE,
)
from ._cursor import Cursor
from ._errors import ERR_MALFORMED_KEY, ERR_MALFORMED_VALUE, DecodeError

BufferLike = Union[bytes, bytearray, memoryview]

_QUOTE_STOP = frozenset((QUOTE,))


class Pair(NamedTuple):
    """One decoded (key, value) token, both as raw bytes."""

    key: bytes
    value: bytes

    def text(self) -> Tuple[str, str]:
        """Key and value as str for display; undecodable bytes become U+FFFD."""
        return (self.key.decode("utf-8", errors="replace"),
                self.value.decode("utf-8", errors="replace"))


class DecodeOutcome(NamedTuple):
    """Everything one payload produced: its pairs, then maybe an error."""

    pairs: List[Pair]
    error: Optional[DecodeError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _show(key: bytes) -> str:
    return key.decode("utf-8", errors="replace")


# ── Token rules ──────────────────────────────────────────────

def skip_ws(cur: Cursor) -> None:
    """Move past SP, TAB, CR and LF.  Never fails."""
    cur.skip_while(WHITESPACE)


def _take(cur: Cursor, start: int, ceiling: int) -> bytes:
    """Slice the span [start, cursor), cut to ceiling - 1 bytes if it reached the ceiling."""
    if cur.offset - start >= ceiling:
        return cur.slice(start, start + ceiling - 1)
    return cur.slice(start)


def read_key(cur: Cursor) -> Optional[bytes]:
    """Read `key:` and return the key, or None when the payload is used up.

    Raises DecodeError(ERR_MALFORMED_KEY) when the key is empty or is not
    followed directly by ':'.
    """
    skip_ws(cur)
    if cur.at_end():
        return None

    start = cur.scan_until(KEY_STOP)
    if cur.peek() != COLON:
        # Ran into whitespace or the end of the payload first.
        raise DecodeError(ERR_MALFORMED_KEY,
                          "key at offset {} has no ':'".format(start),
                          offset=cur.offset)
    if cur.offset == start:
        raise DecodeError(ERR_MALFORMED_KEY,
                          "empty key at offset {}".format(start),
                          offset=cur.offset)

    key = _take(cur, start, MAX_KEY_LEN)
    cur.advance()  # past ':'
    return key


def read_value(cur: Cursor, key: bytes) -> bytes:
    """Read the value that follows `key:`.

    Raises DecodeError(ERR_MALFORMED_VALUE) when the payload ends before a
    value starts or inside a quoted value.
    """
    skip_ws(cur)
    if cur.at_end():
        raise DecodeError(ERR_MALFORMED_VALUE,
                          "no value for key '{}'".format(_show(key)),
                          key=key, offset=cur.offset)

    if cur.peek() == QUOTE:
        cur.advance()
        start = cur.scan_until(_QUOTE_STOP)
        if cur.at_end():
            raise DecodeError(ERR_MALFORMED_VALUE,
                              "unterminated quote in value for key '{}'".format(_show(key)),
                              key=key, offset=cur.offset)
        # An empty quoted value ("") is allowed.
        value = _take(cur, start, MAX_VALUE_LEN)
        cur.advance()  # past closing quote
        return value

    start = cur.scan_until(VALUE_STOP)
    if cur.offset == start:
        # Not reachable after the at_end() check above.
        raise DecodeError(ERR_MALFORMED_VALUE,
                          "empty value for key '{}'".format(_show(key)),
                          key=key, offset=cur.offset)
    # The terminating whitespace is left for the next skip_ws.
    return _take(cur, start, MAX_VALUE_LEN)


# ── Pair sequence ────────────────────────────────────────────

def _pairs(cur: Cursor) -> Iterator[Pair]:
    while True:
        key = read_key(cur)
        if key is None:
            return
        value = read_value(cur, key)
        yield Pair(key, value)


def iter_pairs(buf: BufferLike) -> Iterator[Pair]:
    """Lazily decode one payload.

    The buffer is copied up front, so mutating a bytearray after this call
    does not change what the iterator sees.  The iterator raises
    DecodeError at the first malformed token and is exhausted after that.
    """
    return _pairs(Cursor(bytes(buf)))


def decode(buf: BufferLike) -> DecodeOutcome:
    """Decode a whole payload without raising.

    Pairs decoded before a malformed token are kept in the outcome next
    to the error.
    """
    pairs: List[Pair] = []
    try:
        for pair in iter_pairs(buf):
            pairs.append(pair)
    except DecodeError as e:
        return DecodeOutcome(pairs, e)
    return DecodeOutcome(pairs)


def decode_pairs(buf: BufferLike) -> List[Pair]:
    """Decode a whole payload, raising DecodeError if any token is malformed."""
    return list(iter_pairs(buf))
