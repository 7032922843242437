"""mcastkv command-line interface.

Usage:
    python3 -m mcastkv listen 239.1.2.3 5000 [--interface IP] [--count N] [-v]
    printf 'a:1 b:"x y"' | python3 -m mcastkv decode
    python3 -m mcastkv decode --input payload.bin
    python3 -m mcastkv version
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from typing import List, Optional

from . import (
    ConfigError,
    MulticastSource,
    __version__,
    load_config,
    process_datagram,
    serve,
)

logger = logging.getLogger(__name__)


def _add_noise_options(parser: argparse.ArgumentParser, default) -> None:
    noise = parser.add_mutually_exclusive_group()
    noise.add_argument("-v", "--verbose", action="store_true", default=default,
                       help="Log every datagram (DEBUG)")
    noise.add_argument("-q", "--quiet", action="store_true", default=default,
                       help="Log errors only")


def _build_parser() -> argparse.ArgumentParser:
    # -v/-q work before or after the subcommand.  The subcommand copies
    # default to SUPPRESS so they never reset a flag given up front.
    common = argparse.ArgumentParser(add_help=False)
    _add_noise_options(common, argparse.SUPPRESS)

    parser = argparse.ArgumentParser(
        prog="mcastkv",
        description="mcastkv — print key:value pairs from multicast datagrams",
    )
    _add_noise_options(parser, False)
    sub = parser.add_subparsers(dest="command")

    # ── listen ──
    listen_p = sub.add_parser("listen", parents=[common],
                              help="Join a multicast group and print decoded pairs")
    listen_p.add_argument("group", help="IPv4 multicast group, e.g. 239.1.2.3")
    listen_p.add_argument("port", help="UDP port (1-65535)")
    listen_p.add_argument("--interface", metavar="IP",
                          help="Local interface address to join on "
                               "(default: $MCASTKV_INTERFACE or 0.0.0.0)")
    listen_p.add_argument("--bufsize", metavar="N",
                          help="Bytes read per datagram "
                               "(default: $MCASTKV_BUFSIZE or 4095)")
    listen_p.add_argument("--count", type=int, metavar="N",
                          help="Exit after N datagrams")
    listen_p.add_argument("--no-reuse-port", action="store_true",
                          help="Do not set SO_REUSEPORT")

    # ── decode ──
    decode_p = sub.add_parser("decode", parents=[common],
                              help="Decode one payload from a file or stdin")
    decode_p.add_argument("--input", "-i", metavar="FILE",
                          help="Read the payload from FILE instead of stdin")

    # ── version ──
    sub.add_parser("version", help="Print version and exit")

    return parser


def _setup_logging(args: argparse.Namespace) -> None:
    level = logging.WARNING
    if getattr(args, "verbose", False):
        level = logging.DEBUG
    elif getattr(args, "quiet", False):
        level = logging.ERROR
    logging.basicConfig(
        level=level,
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _read_input(filepath: Optional[str]) -> bytes:
    """Read payload bytes from a file or stdin."""
    if filepath:
        with open(filepath, "rb") as f:
            return f.read()
    if sys.stdin.isatty():
        print("mcastkv: reading from stdin (Ctrl-D to end)...", file=sys.stderr)
    return sys.stdin.buffer.read()


def _cmd_listen(args: argparse.Namespace) -> int:
    try:
        cfg = load_config(args.group, args.port,
                          interface=args.interface,
                          bufsize=args.bufsize,
                          reuse_port=not args.no_reuse_port,
                          environ=os.environ)
    except ConfigError as e:
        print(e, file=sys.stderr)
        return 1

    source = MulticastSource(cfg)
    try:
        source.open()
    except OSError as e:
        print(f"mcastkv: cannot join {cfg.group}:{cfg.port}: {e}", file=sys.stderr)
        return 1

    print(f"Joined multicast group {cfg.group}:{cfg.port}", flush=True)
    try:
        serve(source, sys.stdout, sys.stderr, limit=args.count)
    except KeyboardInterrupt:
        logger.info("interrupted")
    except OSError as e:
        print(f"mcastkv: receive failed: {e}", file=sys.stderr)
        return 1
    finally:
        source.close()
    return 0


def _cmd_decode(args: argparse.Namespace) -> int:
    try:
        raw = _read_input(args.input)
    except OSError as e:
        print(f"mcastkv: cannot read input: {e}", file=sys.stderr)
        return 1
    outcome = process_datagram(raw, sys.stdout, sys.stderr)
    return 0 if outcome.ok else 2


def main(argv: Optional[List[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    if args.command == "version":
        print(f"mcastkv {__version__}")
        return 0

    _setup_logging(args)
    if args.command == "listen":
        return _cmd_listen(args)
    return _cmd_decode(args)


if __name__ == "__main__":
    sys.exit(main())
