# Copyright (c) Animica.
# SPDX-License-Identifier: MIT
"""
Registrar events.

Each event is a frozen dataclass with a stable ``event_name`` and a JSON-safe
``to_dict()`` (bytes rendered as 0x-hex). Events are buffered by the journal
and reach an event sink only when the emitting operation lands.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar, Dict, Protocol, runtime_checkable


def _hex(b: bytes) -> str:
    return "0x" + bytes(b).hex()


@runtime_checkable
class RegistrarEvent(Protocol):
    event_name: ClassVar[str]

    def to_dict(self) -> Dict[str, Any]:
        ...


@dataclass(frozen=True)
class NameRegistered:
    event_name: ClassVar[str] = "NameRegistered"

    name: str
    label_hash: bytes
    owner: bytes
    base_cost: int
    premium: int
    expires: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "labelHash": _hex(self.label_hash),
            "owner": _hex(self.owner),
            "baseCost": self.base_cost,
            "premium": self.premium,
            "expires": self.expires,
        }


@dataclass(frozen=True)
class NameRenewed:
    event_name: ClassVar[str] = "NameRenewed"

    name: str
    label_hash: bytes
    cost: int
    expires: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "labelHash": _hex(self.label_hash),
            "cost": self.cost,
            "expires": self.expires,
        }


@dataclass(frozen=True)
class ReferrerReceived:
    event_name: ClassVar[str] = "ReferrerReceived"

    referrer: bytes
    amount: int

    def to_dict(self) -> Dict[str, Any]:
        return {"referrer": _hex(self.referrer), "amount": self.amount}


@dataclass(frozen=True)
class ReferralFeeUpdated:
    event_name: ClassVar[str] = "ReferralFeeUpdated"

    previous: int
    value: int

    def to_dict(self) -> Dict[str, Any]:
        return {"previous": self.previous, "value": self.value}


__all__ = [
    "RegistrarEvent",
    "NameRegistered",
    "NameRenewed",
    "ReferrerReceived",
    "ReferralFeeUpdated",
]
