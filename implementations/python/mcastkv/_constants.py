"""mcastkv constants — grammar bytes, length ceilings, and output layout.

The ceilings are fixed by the wire contract: a key or value whose span
reaches its ceiling is cut to ceiling - 1 bytes.
"""

from __future__ import annotations

from typing import FrozenSet

# ── Grammar bytes ────────────────────────────────────────────
# Exactly these four count as whitespace.  No vertical tab, no form feed,
# nothing from Unicode.
SP: int = 0x20
TAB: int = 0x09
LF: int = 0x0A
CR: int = 0x0D
WHITESPACE: FrozenSet[int] = frozenset((SP, TAB, LF, CR))

COLON: int = 0x3A   # ':' ends a key
QUOTE: int = 0x22   # '"' opens and closes a quoted value; no escape exists

# A key stops at whitespace or ':'; an unquoted value only at whitespace.
KEY_STOP: FrozenSet[int] = WHITESPACE | {COLON}
VALUE_STOP: FrozenSet[int] = WHITESPACE

# ── Length ceilings ──────────────────────────────────────────
MAX_KEY_LEN: int = 255      # keys of 255+ bytes keep the first 254
MAX_VALUE_LEN: int = 2048   # values of 2048+ bytes keep the first 2047

# ── Transport ────────────────────────────────────────────────
# One byte short of the 4 KiB receive buffer used by deployed listeners.
MAX_DATAGRAM: int = 4095
# Largest UDP payload over IPv4 (65535 - 8 UDP - 20 IP).
MAX_UDP_PAYLOAD: int = 65507
DEFAULT_INTERFACE: str = "0.0.0.0"

# ── Output ───────────────────────────────────────────────────
FIELD_WIDTH: int = 20
