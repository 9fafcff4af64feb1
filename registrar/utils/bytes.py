# Copyright (c) Animica.
# SPDX-License-Identifier: MIT
"""
registrar.utils.bytes
=====================

Hex/bytes conversion plus strict **length guards** and the fixed-width integer
codecs used at the storage boundary.

Highlights
----------
- :func:`to_hex` / :func:`from_hex` with strict validation.
- :func:`as_bytes` to normalize bytes-like values.
- :func:`as_address` / :func:`as_hash32` accept bytes or ``0x`` hex.
- :func:`u64_to_bytes`, :func:`u256_to_bytes` and their inverses
  (big-endian, range-checked).
- :func:`uvarint_encode` / :func:`uvarint_decode` (unsigned LEB128).

These helpers are intentionally strict to prevent ambiguous encodings in
commitment derivations and storage keys.
"""

from __future__ import annotations

import re
from typing import Tuple, Union

from ..constants import ADDRESS_LEN, HASH_LEN, U64_MAX, U256_MAX

BytesLike = Union[bytes, bytearray, memoryview]
HexOrBytes = Union[str, bytes, bytearray, memoryview]

__all__ = [
    "to_hex",
    "from_hex",
    "is_hex",
    "as_bytes",
    "as_address",
    "as_hash32",
    "ensure_len",
    "u64_to_bytes",
    "bytes_to_u64",
    "u256_to_bytes",
    "bytes_to_u256",
    "uvarint_encode",
    "uvarint_decode",
]

_HEX_RE = re.compile(r"^(?:0[xX])?[0-9a-fA-F]*$")


def is_hex(s: str) -> bool:
    """True if *s* is hex with an optional ``0x`` prefix and an even nibble count."""
    if not isinstance(s, str) or not _HEX_RE.match(s):
        return False
    body = s[2:] if s.startswith(("0x", "0X")) else s
    return len(body) % 2 == 0


def from_hex(s: str) -> bytes:
    """
    Convert a hex string (with optional ``0x``) to bytes.

    Strict rules: no whitespace, only hex digits, even nibble count.
    """
    if not isinstance(s, str):
        raise TypeError("from_hex expects a str")
    if not _HEX_RE.match(s):
        raise ValueError("invalid hex string (characters or whitespace)")
    body = s[2:] if s.startswith(("0x", "0X")) else s
    if len(body) % 2 != 0:
        raise ValueError("hex string must have an even number of nibbles")
    return bytes.fromhex(body)


def to_hex(b: BytesLike, *, prefix: str = "0x") -> str:
    """Encode bytes as lowercase hex (``0x`` prefixed by default)."""
    return (prefix or "") + as_bytes(b).hex()


def as_bytes(x: BytesLike) -> bytes:
    """Normalize bytes-like to immutable :class:`bytes`."""
    if isinstance(x, bytes):
        return x
    if isinstance(x, (bytearray, memoryview)):
        return bytes(x)
    raise TypeError(f"expected bytes-like, got {type(x)!r}")


def ensure_len(b: BytesLike, expected: int, *, name: str = "value") -> bytes:
    """Ensure ``len(b) == expected``; returns bytes or raises ValueError."""
    bb = as_bytes(b)
    if len(bb) != expected:
        raise ValueError(f"{name} must be exactly {expected} bytes (got {len(bb)})")
    return bb


def _coerce(x: HexOrBytes, expected: int, name: str) -> bytes:
    if isinstance(x, str):
        return ensure_len(from_hex(x), expected, name=name)
    return ensure_len(x, expected, name=name)


def as_address(x: HexOrBytes, *, name: str = "address") -> bytes:
    """Accept a 20-byte address as bytes or ``0x`` hex."""
    return _coerce(x, ADDRESS_LEN, name)


def as_hash32(x: HexOrBytes, *, name: str = "hash") -> bytes:
    """Accept a 32-byte digest as bytes or ``0x`` hex."""
    return _coerce(x, HASH_LEN, name)


# ----------------------------
# Fixed-width integer codecs
# ----------------------------


def u64_to_bytes(n: int) -> bytes:
    if not isinstance(n, int) or n < 0 or n > U64_MAX:
        raise ValueError(f"u64 out of range: {n!r}")
    return n.to_bytes(8, "big")


def bytes_to_u64(b: BytesLike) -> int:
    return int.from_bytes(ensure_len(b, 8, name="u64"), "big")


def u256_to_bytes(n: int) -> bytes:
    if not isinstance(n, int) or n < 0 or n > U256_MAX:
        raise ValueError(f"u256 out of range: {n!r}")
    return n.to_bytes(32, "big")


def bytes_to_u256(b: BytesLike) -> int:
    return int.from_bytes(ensure_len(b, 32, name="u256"), "big")


# ----------------------------
# Varint (unsigned LEB128)
# ----------------------------


def uvarint_encode(n: int) -> bytes:
    """Unsigned LEB128; minimal-length representation."""
    if not isinstance(n, int):
        raise TypeError("uvarint value must be int")
    if n < 0:
        raise ValueError("uvarint cannot encode negative values")
    out = bytearray()
    while True:
        b = n & 0x7F
        n >>= 7
        if n:
            out.append(b | 0x80)
        else:
            out.append(b)
            return bytes(out)


def uvarint_decode(buf: BytesLike, offset: int = 0) -> Tuple[int, int]:
    """Decode a LEB128 value at *offset*; returns (value, new_offset)."""
    data = as_bytes(buf)
    shift = 0
    value = 0
    i = offset
    while True:
        if i >= len(data):
            raise ValueError("truncated uvarint")
        b = data[i]
        i += 1
        value |= (b & 0x7F) << shift
        if not b & 0x80:
            if i - offset > 1 and b == 0:
                raise ValueError("non-minimal uvarint")
            return value, i
        shift += 7
        if shift > 63:
            raise ValueError("uvarint too long")
