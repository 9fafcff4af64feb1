# Copyright (c) Animica.
# SPDX-License-Identifier: MIT
"""
registrar.utils.hash
====================

Keccak-256 helpers and the name-hashing primitives of the hierarchical name
ledger.

Key pieces
----------
- :func:`keccak256`: raw one-shot Keccak-256 (pycryptodome), the original
  Keccak padding as used by Ethereum, *not* FIPS SHA3-256.
- :func:`labelhash`: ``keccak256(utf8(label))``.
- :func:`namehash`: EIP-137 recursive node hash. ``namehash("") == 0x00…00``
  and ``namehash("a.b") == keccak256(namehash("b") || labelhash("a"))``.
- :func:`strlen`: length in code points using the UTF-8 lead-byte rule, so a
  multi-byte character counts as one unit.
- :func:`reverse_node`: node of ``<hex-address>.addr.reverse``.
"""

from __future__ import annotations

from typing import Union

from Crypto.Hash import keccak as _keccak

from ..constants import EMPTY_NODE
from .bytes import BytesLike, as_bytes

__all__ = [
    "keccak256",
    "labelhash",
    "namehash",
    "strlen",
    "reverse_node",
    "selector",
    "derive_address",
]

StrOrBytes = Union[str, bytes]


def keccak256(data: BytesLike) -> bytes:
    """Return Keccak-256(data)."""
    if not isinstance(data, (bytes, bytearray, memoryview)):
        raise TypeError("keccak256 expects a bytes-like object")
    h = _keccak.new(digest_bits=256)
    h.update(as_bytes(data))
    return h.digest()


def _utf8(s: StrOrBytes) -> bytes:
    return s.encode("utf-8") if isinstance(s, str) else as_bytes(s)


def labelhash(label: StrOrBytes) -> bytes:
    """Hash of a single label (no dots interpreted)."""
    return keccak256(_utf8(label))


def namehash(name: str) -> bytes:
    """EIP-137 namehash of a dotted name."""
    node = EMPTY_NODE
    if name:
        for label in reversed(name.split(".")):
            node = keccak256(node + labelhash(label))
    return node


def selector(signature: str) -> bytes:
    """4-byte function selector: keccak256(signature)[:4]."""
    return keccak256(signature.encode("ascii"))[:4]


def strlen(s: StrOrBytes) -> int:
    """
    Count characters by walking UTF-8 lead bytes.

    Each lead byte announces the width of its sequence (1–6 bytes), so
    "你好吗" counts 3 and "💩💩" counts 2.
    """
    data = _utf8(s)
    n = 0
    i = 0
    end = len(data)
    while i < end:
        b = data[i]
        if b < 0x80:
            i += 1
        elif b < 0xE0:
            i += 2
        elif b < 0xF0:
            i += 3
        elif b < 0xF8:
            i += 4
        elif b < 0xFC:
            i += 5
        else:
            i += 6
        n += 1
    return n


def reverse_node(addr: BytesLike) -> bytes:
    """Node for ``<lowercase-hex>.addr.reverse``."""
    return namehash(as_bytes(addr).hex() + ".addr.reverse")


def derive_address(tag: str) -> bytes:
    """Deterministic 20-byte address for a well-known component, e.g. "controller"."""
    return keccak256(b"registrar.address." + tag.encode("utf-8"))[12:]
