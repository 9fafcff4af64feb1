# Copyright (c) Animica.
# SPDX-License-Identifier: MIT
"""
Commitment construction for name registration.

Definition
----------
C = keccak256( DOMAIN_COMMITMENT
             || labelhash(label)                 32
             || owner                            20
             || u256(duration)                   32
             || resolver                         20
             || u32(len(data))                    4
             || for each call: u32(len) || call
             || secret                           32
             || u8(reverse_record)                1
             || u32(fuses)                        4
             || u64(wrapper_expiry) )             8

Every field of the intent is bound, and the secret keeps the digest opaque
until reveal: an observer of ``commit(C)`` learns nothing about the name.
Variable-length record calls are length-prefixed so no two intents share an
encoding.
"""

from __future__ import annotations

from typing import Iterable, Optional, Sequence, Union

from ..constants import DOMAIN_COMMITMENT, NULL_ADDRESS
from ..errors import ResolverRequired
from ..types.core import RegistrationIntent
from ..utils.bytes import u64_to_bytes, u256_to_bytes
from ..utils.hash import keccak256, labelhash


def _u32(n: int) -> bytes:
    if n < 0 or n > 0xFFFFFFFF:
        raise ValueError("value out of range for u32")
    return n.to_bytes(4, "big")


def commitment_preimage(intent: RegistrationIntent) -> bytes:
    """Canonical byte layout hashed by :func:`make_commitment`."""
    parts = [
        DOMAIN_COMMITMENT,
        labelhash(intent.label),
        intent.owner,
        u256_to_bytes(intent.duration),
        intent.resolver,
        _u32(len(intent.data)),
    ]
    for call in intent.data:
        parts.append(_u32(len(call)))
        parts.append(call)
    parts.extend(
        [
            intent.secret,
            b"\x01" if intent.reverse_record else b"\x00",
            _u32(intent.fuses),
            u64_to_bytes(intent.wrapper_expiry),
        ]
    )
    return b"".join(parts)


def make_commitment(intent: RegistrationIntent) -> bytes:
    """
    Compute the 32-byte commitment for an intent.

    Raises
    ------
    ResolverRequired
        If record calls are supplied with the null resolver.
    """
    if intent.data and intent.resolver == NULL_ADDRESS:
        raise ResolverRequired()
    return keccak256(commitment_preimage(intent))


def build_intent(
    label: str,
    owner: bytes,
    duration: int,
    secret: bytes,
    resolver: Optional[bytes] = None,
    data: Union[Sequence[bytes], Iterable[bytes], None] = None,
    reverse_record: bool = False,
    fuses: int = 0,
    wrapper_expiry: int = 0,
) -> RegistrationIntent:
    """Positional convenience constructor mirroring the registration arguments."""
    return RegistrationIntent(
        label=label,
        owner=owner,
        duration=duration,
        secret=secret,
        resolver=NULL_ADDRESS if resolver is None else resolver,
        data=tuple(data or ()),
        reverse_record=reverse_record,
        fuses=fuses,
        wrapper_expiry=wrapper_expiry,
    )


__all__ = [
    "commitment_preimage",
    "make_commitment",
    "build_intent",
]
