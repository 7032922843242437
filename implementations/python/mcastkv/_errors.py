"""mcastkv error codes and exception classes.

Decode errors are local to one datagram.  Whoever drives the decoder
reports them and moves on to the next datagram; nothing here is fatal to
the process.  Running out of input is not an error at all and has no code.
"""

from __future__ import annotations

from typing import Optional

# ── Decode error codes ───────────────────────────────────────
# Grep-friendly; the conformance vectors compare against these strings.

ERR_MALFORMED_KEY: str = "ERR_MALFORMED_KEY"      # missing ':' or empty key
ERR_MALFORMED_VALUE: str = "ERR_MALFORMED_VALUE"  # missing value or open quote


class DecodeError(Exception):
    """A payload stopped decoding at a malformed token.

    `.code` is one of the ERR_* strings above.  `.key` is the raw key the
    failing value belonged to (None for key errors), and `.offset` is the
    cursor position where decoding gave up.
    """

    def __init__(self, code: str, msg: str = "",
                 key: Optional[bytes] = None, offset: int = 0) -> None:
        super().__init__(msg or code)
        self.code = code
        self.key = key
        self.offset = offset


class ConfigError(ValueError):
    """Invalid listener settings (group address, port, interface, size)."""
