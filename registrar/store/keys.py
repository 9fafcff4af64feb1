# Copyright (c) Animica.
# SPDX-License-Identifier: MIT
"""
Key layout over the shared byte KV store.

Every component keeps its state under its own prefix so one journal can cover
the controller and its in-memory collaborators:

Controller
----------
- ``rc:c:`` || commitment(32)          → u64 accepted_at
- ``rc:b:`` || address(20)             → u256 withdrawable balance
- ``rc:m:`` || len-prefixed name       → controller metadata (referral fee)

Collaborators
-------------
- ``br:e:`` || labelhash(32)           → u64 expiry (base registrar)
- ``br:o:`` || labelhash(32)           → owner(20)
- ``nw:``   || node(32)                → wrapped-name record
- ``pr:a:`` || node(32)                → addr record
- ``pr:t:`` || len(node)|node|len(key)|key → text record
- ``pr:h:`` || node(32)                → contenthash record
- ``pr:n:`` || node(32)                → reverse name record
- ``rr:``   || address(20)             → resolver used for the reverse record
- ``bk:``   || address(20)             → u256 bank balance

All values are bytes; callers serialize.
"""

from __future__ import annotations

COMMITMENTS_PREFIX = b"rc:c:"
BALANCES_PREFIX = b"rc:b:"
META_PREFIX = b"rc:m:"

EXPIRY_PREFIX = b"br:e:"
OWNER_PREFIX = b"br:o:"
WRAPPED_PREFIX = b"nw:"
ADDR_RECORD_PREFIX = b"pr:a:"
TEXT_RECORD_PREFIX = b"pr:t:"
CONTENTHASH_PREFIX = b"pr:h:"
NAME_RECORD_PREFIX = b"pr:n:"
REVERSE_PREFIX = b"rr:"
BANK_PREFIX = b"bk:"

META_REFERRAL_FEE = b"referral_fee"


def _be_u32(n: int) -> bytes:
    if n < 0 or n > 0xFFFFFFFF:
        raise ValueError("length out of range for u32")
    return n.to_bytes(4, "big")


def _k(prefix: bytes, *parts: bytes) -> bytes:
    """Prefix + 4-byte len for each part to avoid accidental collisions."""
    return prefix + b"".join(_be_u32(len(p)) + p for p in parts)


def commitment(h: bytes) -> bytes:
    return COMMITMENTS_PREFIX + h


def balance(addr: bytes) -> bytes:
    return BALANCES_PREFIX + addr


def meta(name: bytes) -> bytes:
    return _k(META_PREFIX, name)


def expiry(label_hash: bytes) -> bytes:
    return EXPIRY_PREFIX + label_hash


def owner(label_hash: bytes) -> bytes:
    return OWNER_PREFIX + label_hash


def wrapped(node: bytes) -> bytes:
    return WRAPPED_PREFIX + node


def addr_record(node: bytes) -> bytes:
    return ADDR_RECORD_PREFIX + node


def text_record(node: bytes, key: str) -> bytes:
    return _k(TEXT_RECORD_PREFIX, node, key.encode("utf-8"))


def contenthash_record(node: bytes) -> bytes:
    return CONTENTHASH_PREFIX + node


def name_record(node: bytes) -> bytes:
    return NAME_RECORD_PREFIX + node


def reverse(addr: bytes) -> bytes:
    return REVERSE_PREFIX + addr


def bank(addr: bytes) -> bytes:
    return BANK_PREFIX + addr
