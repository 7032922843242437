"""Listener settings and their validation."""

from __future__ import annotations

import ipaddress
from dataclasses import dataclass
from typing import Mapping, Optional, Union

from ._constants import DEFAULT_INTERFACE, MAX_DATAGRAM, MAX_UDP_PAYLOAD
from ._errors import ConfigError

ENV_INTERFACE = "MCASTKV_INTERFACE"
ENV_BUFSIZE = "MCASTKV_BUFSIZE"


@dataclass(frozen=True)
class ListenerConfig:
    group: str
    port: int
    interface: str = DEFAULT_INTERFACE
    bufsize: int = MAX_DATAGRAM
    reuse_port: bool = True
    timeout: Optional[float] = None


def parse_port(value: Union[str, int]) -> int:
    try:
        port = int(value)
    except (TypeError, ValueError):
        raise ConfigError("Invalid port.")
    if port <= 0 or port > 65535:
        raise ConfigError("Invalid port.")
    return port


def parse_group(value: str) -> str:
    """Accept a dotted-quad IPv4 multicast address (224.0.0.0/4)."""
    try:
        addr = ipaddress.IPv4Address(value)
    except ValueError:
        raise ConfigError("Invalid multicast IP.")
    if not addr.is_multicast:
        raise ConfigError("Invalid multicast IP.")
    return str(addr)


def parse_interface(value: str) -> str:
    try:
        return str(ipaddress.IPv4Address(value))
    except ValueError:
        raise ConfigError("Invalid interface address.")


def parse_bufsize(value: Union[str, int]) -> int:
    try:
        size = int(value)
    except (TypeError, ValueError):
        raise ConfigError("Invalid buffer size.")
    if size < 1 or size > MAX_UDP_PAYLOAD:
        raise ConfigError("Invalid buffer size.")
    return size


def load_config(group: str, port: Union[str, int], *,
                interface: Optional[str] = None,
                bufsize: Optional[Union[str, int]] = None,
                reuse_port: bool = True,
                timeout: Optional[float] = None,
                environ: Optional[Mapping[str, str]] = None) -> ListenerConfig:
    """Validate raw settings into a ListenerConfig.

    Explicit arguments win.  When `environ` is given, MCASTKV_INTERFACE and
    MCASTKV_BUFSIZE fill in whatever was left as None.  Raises ConfigError
    with a one-line message on the first bad setting.
    """
    env = environ or {}
    if interface is None:
        interface = env.get(ENV_INTERFACE) or DEFAULT_INTERFACE
    if bufsize is None:
        bufsize = env.get(ENV_BUFSIZE) or MAX_DATAGRAM

    return ListenerConfig(
        group=parse_group(group),
        port=parse_port(port),
        interface=parse_interface(interface),
        bufsize=parse_bufsize(bufsize),
        reuse_port=reuse_port,
        timeout=timeout,
    )
