"""IPv4 multicast datagram source."""

from __future__ import annotations

import logging
import socket
import struct
from typing import Iterator, Optional, Tuple

from ._config import ListenerConfig
from ._constants import MAX_UDP_PAYLOAD

logger = logging.getLogger(__name__)

Address = Tuple[str, int]


class MulticastSource:
    """A UDP socket bound to the group's port and joined to the group.

    Payloads longer than `config.bufsize` are cut to that length; the
    decoder only ever sees the first `bufsize` bytes of a datagram.
    """

    def __init__(self, config: ListenerConfig) -> None:
        self.config = config
        self._sock: Optional[socket.socket] = None
        self._mreq: Optional[bytes] = None

    @property
    def is_open(self) -> bool:
        return self._sock is not None

    @property
    def bound_port(self) -> Optional[int]:
        if self._sock is None:
            return None
        return self._sock.getsockname()[1]

    def open(self) -> "MulticastSource":
        """Create the socket, bind it and join the group.

        Any OSError from setup is raised after the socket is closed again.
        """
        if self._sock is not None:
            return self

        cfg = self.config
        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM, socket.IPPROTO_UDP)
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            if cfg.reuse_port and hasattr(socket, "SO_REUSEPORT"):
                try:
                    sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEPORT, 1)
                except OSError as e:
                    logger.debug("SO_REUSEPORT not set: %s", e)

            # Bind to the port on all interfaces, not to the group address.
            sock.bind(("", cfg.port))

            # struct ip_mreq { in_addr imr_multiaddr; in_addr imr_interface; }
            mreq = struct.pack("=4s4s", socket.inet_aton(cfg.group),
                               socket.inet_aton(cfg.interface))
            sock.setsockopt(socket.IPPROTO_IP, socket.IP_ADD_MEMBERSHIP, mreq)
            if cfg.timeout is not None:
                sock.settimeout(cfg.timeout)
        except OSError:
            sock.close()
            raise

        self._sock = sock
        self._mreq = mreq
        logger.info("joined multicast group %s:%d on %s",
                    cfg.group, cfg.port, cfg.interface)
        return self

    def recvfrom(self) -> Tuple[bytes, Address]:
        """Block for the next datagram.  Returns (payload, sender).

        The whole datagram is read and then cut to `config.bufsize`, so an
        oversize datagram is truncated the same way on every platform.
        """
        if self._sock is None:
            raise RuntimeError("multicast source is not open")
        while True:
            try:
                data, addr = self._sock.recvfrom(MAX_UDP_PAYLOAD)
            except InterruptedError:
                continue
            logger.debug("datagram of %d bytes from %s:%d", len(data), addr[0], addr[1])
            if len(data) > self.config.bufsize:
                data = data[:self.config.bufsize]
            return data, addr

    def recv(self) -> bytes:
        return self.recvfrom()[0]

    def __iter__(self) -> Iterator[bytes]:
        """Yield payloads until the source is closed."""
        while self._sock is not None:
            try:
                data = self.recv()
            except OSError:
                if self._sock is None:
                    return
                raise
            yield data

    def close(self) -> None:
        sock, self._sock = self._sock, None
        if sock is None:
            return
        if self._mreq is not None:
            try:
                sock.setsockopt(socket.IPPROTO_IP, socket.IP_DROP_MEMBERSHIP, self._mreq)
            except OSError as e:
                logger.debug("leaving %s failed: %s", self.config.group, e)
            self._mreq = None
        sock.close()
        logger.info("left multicast group %s:%d", self.config.group, self.config.port)

    def __enter__(self) -> "MulticastSource":
        return self.open()

    def __exit__(self, *exc_info) -> None:
        self.close()
