"""mcastkv — multicast key:value datagram receiver.

Joins an IPv4 multicast group and decodes every datagram payload as a
run of `key:value` tokens, printing each pair in two fixed-width columns.

Quick start:
    >>> from mcastkv import decode
    >>> decode(b'host:db1 msg:"disk almost full"')
    DecodeOutcome(pairs=[Pair(key=b'host', value=b'db1'), Pair(key=b'msg', value=b'disk almost full')], error=None)

A malformed token stops the payload but keeps what came before it:
    >>> out = decode(b"a:1 b:2 c")
    >>> [p.text() for p in out.pairs], out.error.code
    ([('a', '1'), ('b', '2')], 'ERR_MALFORMED_KEY')
"""

from __future__ import annotations

from ._config import ListenerConfig, load_config
from ._constants import FIELD_WIDTH, MAX_DATAGRAM, MAX_KEY_LEN, MAX_VALUE_LEN
from ._core import (
    DecodeOutcome,
    Pair,
    decode,
    decode_pairs,
    iter_pairs,
)
from ._errors import (
    ERR_MALFORMED_KEY,
    ERR_MALFORMED_VALUE,
    ConfigError,
    DecodeError,
)
from ._format import format_diagnostic, format_pair
from ._receiver import ReceiverStats, process_datagram, serve
from ._source import MulticastSource

__version__ = "1.0.0"

__all__ = [
    # Decoder
    "decode",
    "decode_pairs",
    "iter_pairs",
    "Pair",
    "DecodeOutcome",
    # Output
    "format_pair",
    "format_diagnostic",
    # Receiving
    "MulticastSource",
    "ListenerConfig",
    "load_config",
    "process_datagram",
    "serve",
    "ReceiverStats",
    # Exceptions
    "DecodeError",
    "ConfigError",
    # Error codes
    "ERR_MALFORMED_KEY",
    "ERR_MALFORMED_VALUE",
    # Limits
    "MAX_KEY_LEN",
    "MAX_VALUE_LEN",
    "MAX_DATAGRAM",
    "FIELD_WIDTH",
]
