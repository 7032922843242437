"""Socket tests for MulticastSource.

Datagrams are sent as unicast to 127.0.0.1 on the bound port: the source
binds the port on every interface, so this exercises the same receive
path without needing a multicast route.  Hosts that cannot join a group
at all (no multicast-capable interface) skip these tests.
"""

from __future__ import annotations

import errno
import io
import os
import socket
import sys
import unittest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from mcastkv import ListenerConfig, MulticastSource, serve

GROUP = "239.255.42.99"


def _get_free_port() -> int:
    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    sock.bind(("127.0.0.1", 0))
    port = sock.getsockname()[1]
    sock.close()
    return port


class _StrictSizeSocket:
    """Refuses a receive buffer shorter than the datagram, as Windows does."""

    def __init__(self, *datagrams: bytes) -> None:
        self._queue = list(datagrams)

    def recvfrom(self, bufsize: int):
        data = self._queue.pop(0)
        if len(data) > bufsize:
            raise OSError(errno.EMSGSIZE, "message too long")
        return data, ("192.0.2.1", 5000)

    def close(self) -> None:
        pass


class TestMulticastSource(unittest.TestCase):
    def _open(self, **overrides) -> MulticastSource:
        cfg = ListenerConfig(group=GROUP, port=_get_free_port(), **{"timeout": 2.0, **overrides})
        source = MulticastSource(cfg)
        try:
            source.open()
        except OSError as e:
            self.skipTest("cannot join {}: {}".format(GROUP, e))
        self.addCleanup(source.close)
        return source

    def _send(self, port: int, *payloads: bytes) -> None:
        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sender:
            for payload in payloads:
                sender.sendto(payload, ("127.0.0.1", port))

    def test_open_binds_configured_port(self):
        source = self._open()
        self.assertTrue(source.is_open)
        self.assertEqual(source.bound_port, source.config.port)

    def test_open_twice_is_noop(self):
        source = self._open()
        port = source.bound_port
        self.assertIs(source.open(), source)
        self.assertEqual(source.bound_port, port)

    def test_receives_datagram(self):
        source = self._open()
        self._send(source.config.port, b"a:1 b:2")
        payload, sender = source.recvfrom()
        self.assertEqual(payload, b"a:1 b:2")
        self.assertEqual(sender[0], "127.0.0.1")

    def test_payload_cut_at_bufsize(self):
        source = self._open(bufsize=8)
        self._send(source.config.port, b"k:" + b"v" * 30)
        self.assertEqual(source.recv(), b"k:vvvvvv")

    def test_oversize_datagram_does_not_stop_source(self):
        source = self._open(bufsize=8)
        self._send(source.config.port, b"x" * 5000, b"a:1")
        self.assertEqual(source.recv(), b"xxxxxxxx")
        self.assertEqual(source.recv(), b"a:1")

    def test_timeout(self):
        source = self._open(timeout=0.05)
        with self.assertRaises(socket.timeout):
            source.recv()

    def test_serve_from_source(self):
        source = self._open()
        self._send(source.config.port, b"a:1", b"oops", b'msg:"hi there"')
        out, err = io.StringIO(), io.StringIO()
        stats = serve(source, out, err, limit=3)
        self.assertEqual((stats.datagrams, stats.pairs, stats.errors), (3, 2, 1))
        self.assertEqual(out.getvalue(), "%-20s %-20s\n%-20s %-20s\n"
                         % ("a", "1", "msg", "hi there"))
        self.assertEqual(err.getvalue(), "Invalid key format.\n")

    def test_close_ends_iteration(self):
        source = self._open()
        source.close()
        self.assertFalse(source.is_open)
        self.assertIsNone(source.bound_port)
        self.assertEqual(list(source), [])
        source.close()  # second close is harmless

    def test_context_manager(self):
        cfg = ListenerConfig(group=GROUP, port=_get_free_port())
        try:
            with MulticastSource(cfg) as source:
                self.assertTrue(source.is_open)
        except OSError as e:
            self.skipTest("cannot join {}: {}".format(GROUP, e))
        self.assertFalse(source.is_open)


class TestMulticastSourceErrors(unittest.TestCase):
    def test_recv_before_open(self):
        source = MulticastSource(ListenerConfig(group=GROUP, port=5000))
        with self.assertRaises(RuntimeError):
            source.recv()

    def test_oversize_datagram_cut_without_kernel_truncation(self):
        source = MulticastSource(ListenerConfig(group=GROUP, port=5000, bufsize=8))
        source._sock = _StrictSizeSocket(b"k:" + b"v" * 5000, b"a:1")
        self.addCleanup(source.close)
        self.assertEqual(source.recvfrom(), (b"k:vvvvvv", ("192.0.2.1", 5000)))
        self.assertEqual(source.recv(), b"a:1")

    def test_failed_join_leaves_source_closed(self):
        # 203.0.113.0/24 is TEST-NET-3; no host has it as a local interface.
        cfg = ListenerConfig(group=GROUP, port=_get_free_port(), interface="203.0.113.7")
        source = MulticastSource(cfg)
        with self.assertRaises(OSError):
            source.open()
        self.assertFalse(source.is_open)


if __name__ == "__main__":
    unittest.main()
