"""Output lines for decoded pairs and decode diagnostics."""

from __future__ import annotations

from ._constants import FIELD_WIDTH
from ._core import Pair
from ._errors import ERR_MALFORMED_VALUE, DecodeError

# Left-aligned, padded to the width, cut at the width.
_PAIR_FMT = "%-{w}.{w}s %-{w}.{w}s\n".format(w=FIELD_WIDTH)


def format_pair(pair: Pair) -> str:
    """One output line: key and value in fixed 20-character columns."""
    return _PAIR_FMT % pair.text()


def format_diagnostic(err: DecodeError) -> str:
    """One diagnostic line for a payload that stopped decoding."""
    if err.code == ERR_MALFORMED_VALUE and err.key is not None:
        key = err.key.decode("utf-8", errors="replace")
        return "Invalid value format for key '{}'.\n".format(key)
    return "Invalid key format.\n"
