"""Forward-only read position over one datagram payload."""

from __future__ import annotations

from typing import AbstractSet, Optional


class Cursor:
    """A byte offset into an immutable buffer.

    The offset never leaves [0, len(buf)] and never moves backwards:
    `advance` clamps at the end of the buffer and refuses negative steps,
    and every scan only ever moves forward.
    """

    __slots__ = ("_buf", "_off")

    def __init__(self, buf: bytes, offset: int = 0) -> None:
        if offset < 0 or offset > len(buf):
            raise ValueError("cursor offset {} outside buffer of {} bytes"
                             .format(offset, len(buf)))
        self._buf = buf
        self._off = offset

    @property
    def offset(self) -> int:
        return self._off

    @property
    def remaining(self) -> int:
        return len(self._buf) - self._off

    def at_end(self) -> bool:
        return self._off >= len(self._buf)

    def peek(self) -> Optional[int]:
        """Current byte, or None at end of buffer."""
        if self._off >= len(self._buf):
            return None
        return self._buf[self._off]

    def advance(self, n: int = 1) -> None:
        if n < 0:
            raise ValueError("cursor cannot move backwards")
        self._off = min(self._off + n, len(self._buf))

    def skip_while(self, members: AbstractSet[int]) -> int:
        """Advance past bytes in `members`.  Returns how many were skipped."""
        start = self._off
        buf = self._buf
        end = len(buf)
        off = start
        while off < end and buf[off] in members:
            off += 1
        self._off = off
        return off - start

    def scan_until(self, stops: AbstractSet[int]) -> int:
        """Advance up to the first byte in `stops` (or the end).

        Returns the offset the scan started from, so the caller can slice
        the span it just crossed.
        """
        start = self._off
        buf = self._buf
        end = len(buf)
        off = start
        while off < end and buf[off] not in stops:
            off += 1
        self._off = off
        return start

    def slice(self, start: int, stop: Optional[int] = None) -> bytes:
        """Bytes in [start, stop), with stop defaulting to the cursor.

        Both ends are clamped to the part of the buffer already consumed.
        """
        if stop is None or stop > self._off:
            stop = self._off
        start = max(0, min(start, stop))
        return bytes(self._buf[start:stop])

    def __repr__(self) -> str:
        return "Cursor(offset={}, remaining={})".format(self._off, self.remaining)
