# Copyright (c) Animica.
# SPDX-License-Identifier: MIT
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Tuple

"""
Core typed values of the registration protocol.

Types provided:
  • Price              — (base, premium) quote; `total` is what registration costs
  • RegistrationIntent — the plaintext a commitment hides until reveal
  • RegistrationResult — outcome of a successful registration
  • RenewalResult      — outcome of a successful renewal

Intents are never persisted; only their commitment hash is.
"""

_ADDR = 20
_HASH32 = 32
_U32_MAX = (1 << 32) - 1
_U64_MAX = (1 << 64) - 1


def _require_len(name: str, b: bytes, n: int) -> None:
    if len(b) != n:
        raise ValueError(f"{name} must be exactly {n} bytes (got {len(b)})")


def _require_nonneg(name: str, v: int) -> None:
    if not isinstance(v, int) or isinstance(v, bool):
        raise TypeError(f"{name} must be an int")
    if v < 0:
        raise ValueError(f"{name} must be non-negative (got {v})")


@dataclass(frozen=True, slots=True)
class Price:
    """Rent quote in the smallest monetary unit."""

    base: int
    premium: int = 0

    def __post_init__(self) -> None:  # type: ignore[override]
        _require_nonneg("base", self.base)
        _require_nonneg("premium", self.premium)

    @property
    def total(self) -> int:
        return self.base + self.premium

    def to_dict(self) -> Dict[str, int]:
        return {"base": self.base, "premium": self.premium, "total": self.total}


@dataclass(frozen=True, slots=True)
class RegistrationIntent:
    """
    Everything a registration binds.

    Fields:
      label          — the label being registered (without the TLD)
      owner          — 20-byte address receiving ownership
      duration       — seconds of registration
      secret         — 32-byte blinding secret
      resolver       — 20-byte resolver address (null address = none)
      data           — encoded record calls to forward to the resolver
      reverse_record — bind the caller's reverse name to the new name
      fuses          — wrapper fuse bits, passed through
      wrapper_expiry — wrapper expiry, passed through (0 = registration expiry)
    """

    label: str
    owner: bytes
    duration: int
    secret: bytes
    resolver: bytes = b"\x00" * _ADDR
    data: Tuple[bytes, ...] = field(default_factory=tuple)
    reverse_record: bool = False
    fuses: int = 0
    wrapper_expiry: int = 0

    def __post_init__(self) -> None:  # type: ignore[override]
        if not isinstance(self.label, str):
            raise TypeError("label must be a str")
        for name in ("owner", "resolver"):
            v = getattr(self, name)
            if not isinstance(v, (bytes, bytearray)):
                raise TypeError(f"{name} must be bytes")
            _require_len(name, v, _ADDR)
        if not isinstance(self.secret, (bytes, bytearray)):
            raise TypeError("secret must be bytes")
        _require_len("secret", self.secret, _HASH32)
        _require_nonneg("duration", self.duration)
        _require_nonneg("fuses", self.fuses)
        if self.fuses > _U32_MAX:
            raise ValueError("fuses must fit in 32 bits")
        _require_nonneg("wrapper_expiry", self.wrapper_expiry)
        if self.wrapper_expiry > _U64_MAX:
            raise ValueError("wrapper_expiry must fit in 64 bits")
        data = tuple(self.data)
        for i, call in enumerate(data):
            if not isinstance(call, (bytes, bytearray)):
                raise TypeError(f"data[{i}] must be bytes")
        object.__setattr__(self, "data", tuple(bytes(c) for c in data))
        object.__setattr__(self, "reverse_record", bool(self.reverse_record))


@dataclass(frozen=True, slots=True)
class RegistrationResult:
    name: str
    label_hash: bytes
    node: bytes
    owner: bytes
    expires: int
    price: Price
    refund: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "labelHash": "0x" + self.label_hash.hex(),
            "node": "0x" + self.node.hex(),
            "owner": "0x" + self.owner.hex(),
            "expires": self.expires,
            "price": self.price.to_dict(),
            "refund": self.refund,
        }


@dataclass(frozen=True, slots=True)
class RenewalResult:
    name: str
    label_hash: bytes
    expires: int
    cost: int
    refund: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "labelHash": "0x" + self.label_hash.hex(),
            "expires": self.expires,
            "cost": self.cost,
            "refund": self.refund,
        }


__all__ = [
    "Price",
    "RegistrationIntent",
    "RegistrationResult",
    "RenewalResult",
]
