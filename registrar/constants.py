# Copyright (c) Animica.
# SPDX-License-Identifier: MIT
"""
Registrar constants.

This module centralizes:
- Domain separation tags for commitment hashing
- The null identity and fixed widths used at the storage boundary
- Protocol floors (minimum registration duration, grace period)
- Default commitment-age windows (kept in sync with config defaults)
- Referral fee scale and wrapper fuse bits

Networks may override operational knobs via `registrar.config.RegistrarConfig`,
but code that needs stable compile-time defaults can import from here.
"""

from __future__ import annotations

# -----------------------------
# Domain separation (bytes tags)
# -----------------------------
# Keep these stable; changing them would invalidate every outstanding commitment.
DOMAIN_PREFIX: bytes = b"registrar."

DOMAIN_COMMITMENT: bytes = DOMAIN_PREFIX + b"commitment.v1"

HASH_FN_COMMITMENT: str = "keccak256"
HASH_FN_NAMEHASH: str = "keccak256"

# -----------------------------
# Identities & widths
# -----------------------------
ADDRESS_LEN: int = 20
HASH_LEN: int = 32
SECRET_LEN: int = 32

NULL_ADDRESS: bytes = b"\x00" * ADDRESS_LEN
EMPTY_NODE: bytes = b"\x00" * HASH_LEN

U64_MAX: int = (1 << 64) - 1
U256_MAX: int = (1 << 256) - 1

# -----------------------------
# Time
# -----------------------------
DAY: int = 24 * 60 * 60

# Registrations shorter than this are rejected when a commitment is consumed.
MIN_REGISTRATION_DURATION: int = 28 * DAY

# After expiry a name stays reserved for its previous owner for this long.
GRACE_PERIOD: int = 90 * DAY

# Commitment windows (seconds). Must match registrar.config defaults.
DEFAULT_MIN_COMMITMENT_AGE: int = 60
DEFAULT_MAX_COMMITMENT_AGE: int = DAY

# -----------------------------
# Names
# -----------------------------
DEFAULT_TLD: str = "eth"
MIN_LABEL_LENGTH: int = 3

# -----------------------------
# Fees
# -----------------------------
# Referral fee is expressed in parts-per-thousand.
REFERRAL_FEE_DENOMINATOR: int = 1000

# -----------------------------
# Wrapper fuses (opaque to the controller beyond pass-through)
# -----------------------------
CANNOT_UNWRAP: int = 1
PARENT_CANNOT_CONTROL: int = 64

# -----------------------------
# Record calls
# -----------------------------
# selector(4) || node(32) || args...
RECORD_SELECTOR_LEN: int = 4
RECORD_NODE_OFFSET: int = RECORD_SELECTOR_LEN
RECORD_NODE_END: int = RECORD_NODE_OFFSET + HASH_LEN

__all__ = [
    "DOMAIN_PREFIX",
    "DOMAIN_COMMITMENT",
    "HASH_FN_COMMITMENT",
    "HASH_FN_NAMEHASH",
    "ADDRESS_LEN",
    "HASH_LEN",
    "SECRET_LEN",
    "NULL_ADDRESS",
    "EMPTY_NODE",
    "U64_MAX",
    "U256_MAX",
    "DAY",
    "MIN_REGISTRATION_DURATION",
    "GRACE_PERIOD",
    "DEFAULT_MIN_COMMITMENT_AGE",
    "DEFAULT_MAX_COMMITMENT_AGE",
    "DEFAULT_TLD",
    "MIN_LABEL_LENGTH",
    "REFERRAL_FEE_DENOMINATOR",
    "CANNOT_UNWRAP",
    "PARENT_CANNOT_CONTROL",
    "RECORD_SELECTOR_LEN",
    "RECORD_NODE_OFFSET",
    "RECORD_NODE_END",
]
