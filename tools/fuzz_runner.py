#!/usr/bin/env python3
# tools/fuzz_runner.py
#
# Differential fuzzing: mcastkv decoder vs a regular-expression rendition
# of the payload grammar.
#
# Generates three payload families:
#   A) well-formed token runs (quoted/unquoted values, mixed separators,
#      occasional over-long keys and values)
#   B) well-formed runs with one defect spliced in (cut short, stray byte)
#   C) random bytes from an alphabet heavy in grammar-significant bytes
#
# For every payload the decoder must agree with the reference on pairs
# and error code, respect the length ceilings, and give the same answer
# when run twice.  Any mismatch prints a minimal repro and exits non-zero.

import os, sys, re, base64, random
from typing import List, Optional, Tuple

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
sys.path.insert(0, os.path.join(ROOT, "implementations", "python"))

from mcastkv import (
    ERR_MALFORMED_KEY,
    ERR_MALFORMED_VALUE,
    MAX_DATAGRAM,
    MAX_KEY_LEN,
    MAX_VALUE_LEN,
    decode,
)

SEED = int(os.environ.get("MCASTKV_SEED", "4242"))
ROUNDS = int(os.environ.get("MCASTKV_FUZZ_ROUNDS", "5000"))

random.seed(SEED)

WS = b" \t\r\n"

# --- reference grammar ---

_END = re.compile(rb"[ \t\r\n]*\Z")
_KEY = re.compile(rb"[ \t\r\n]*([^: \t\r\n]+):")
# The unquoted branch must not start with '"', or an unterminated quote
# would backtrack into it.
_VALUE = re.compile(rb'[ \t\r\n]*(?:"([^"]*)"|([^ \t\r\n"][^ \t\r\n]*))')

Ref = Tuple[List[Tuple[bytes, bytes]], Optional[str]]


def reference(buf: bytes) -> Ref:
    pos = 0
    pairs: List[Tuple[bytes, bytes]] = []
    while True:
        if _END.match(buf, pos):
            return pairs, None
        k = _KEY.match(buf, pos)
        if k is None:
            return pairs, ERR_MALFORMED_KEY
        v = _VALUE.match(buf, k.end())
        if v is None:
            return pairs, ERR_MALFORMED_VALUE
        value = v.group(1) if v.group(1) is not None else v.group(2)
        pairs.append((k.group(1)[:MAX_KEY_LEN - 1], value[:MAX_VALUE_LEN - 1]))
        pos = v.end()


def under_test(buf: bytes) -> Ref:
    out = decode(buf)
    return [(p.key, p.value) for p in out.pairs], (out.error.code if out.error else None)


def mismatch(label: str, buf: bytes, got, want) -> None:
    print("MISMATCH:", label)
    print("GOT :", got)
    print("WANT:", want)
    print("INPUT_B64:", base64.b64encode(buf).decode("ascii")[:4000])
    raise SystemExit(1)

# --- generators ---

_KEY_BYTES = bytes(b for b in range(0x21, 0x7F) if b != 0x3A)
_VAL_BYTES = bytes(b for b in range(0x21, 0x7F))
_QUOTED_BYTES = bytes(b for b in range(0x20, 0x7F) if b != 0x22) + WS

def rand_from(alphabet: bytes, lo: int, hi: int) -> bytes:
    return bytes(random.choice(alphabet) for _ in range(random.randint(lo, hi)))

def rand_sep() -> bytes:
    return rand_from(WS, 1, 3)

def rand_key() -> bytes:
    if random.random() < 0.05:
        return rand_from(_KEY_BYTES, MAX_KEY_LEN - 3, MAX_KEY_LEN + 40)
    return rand_from(_KEY_BYTES, 1, 12)

def rand_value() -> bytes:
    long_ = random.random() < 0.03
    if random.random() < 0.4:
        lo, hi = (MAX_VALUE_LEN - 3, MAX_VALUE_LEN + 60) if long_ else (0, 20)
        return b'"' + rand_from(_QUOTED_BYTES, lo, hi) + b'"'
    lo, hi = (MAX_VALUE_LEN - 3, MAX_VALUE_LEN + 60) if long_ else (1, 16)
    body = rand_from(_VAL_BYTES, lo, hi)
    if body[:1] == b'"':
        body = b"x" + body[1:]
    return body

def rand_well_formed() -> bytes:
    parts = [rand_from(WS, 0, 2)]
    for _ in range(random.randint(0, 8)):
        ws_after_colon = rand_from(WS, 0, 2) if random.random() < 0.2 else b""
        parts.append(rand_key() + b":" + ws_after_colon + rand_value())
        parts.append(rand_sep())
    return b"".join(parts)

def rand_defective() -> bytes:
    buf = bytearray(rand_well_formed() or b"a:1")
    if random.random() < 0.5:
        del buf[random.randint(0, len(buf)):]
    else:
        buf.insert(random.randint(0, len(buf)), random.choice(b' :"\t\n\x00\xff'))
    return bytes(buf)

def rand_noise() -> bytes:
    alphabet = b' \t\r\n::""ab\x00\x0b\xff'
    return rand_from(alphabet, 0, 64)

# --- invariants ---

def check_bounds(label: str, buf: bytes, got: Ref) -> None:
    for key, value in got[0]:
        if not (1 <= len(key) <= MAX_KEY_LEN - 1) or any(b in key for b in b": \t\r\n"):
            mismatch(label + " key bounds", buf, got, "1..254 bytes, no ':' or whitespace")
        if len(value) > MAX_VALUE_LEN - 1:
            mismatch(label + " value bounds", buf, got, "<= 2047 bytes")

def main() -> int:
    families = [("A well_formed", rand_well_formed),
                ("B defective", rand_defective),
                ("C noise", rand_noise)]
    oversize = 0
    for i in range(ROUNDS):
        label, gen = random.choice(families)
        buf = gen()
        if len(buf) > MAX_DATAGRAM:
            oversize += 1
        try:
            got = under_test(buf)
        except Exception as e:
            mismatch(label + " raised", buf, repr(e), "DecodeOutcome")
        want = reference(buf)
        if got != want:
            mismatch("{} round={}".format(label, i), buf, got, want)
        check_bounds(label, buf, got)
        if under_test(buf) != got:
            mismatch(label + " not repeatable", buf, under_test(buf), got)
        if label.startswith("A") and got[1] is not None:
            mismatch(label + " rejected well-formed input", buf, got, "no error")

    print(f"OK: fuzz rounds={ROUNDS} seed={SEED} oversize={oversize} (no mismatches)")
    return 0

if __name__ == "__main__":
    raise SystemExit(main())
