# Copyright (c) Animica.
# SPDX-License-Identifier: MIT
"""
registrar.records — record-call codec and the record binder.

A record call is a self-describing byte payload forwarded to a resolver:

    selector(4) || node(32) || arg_1 || arg_2 || ...

- ``selector`` is ``keccak256(signature)[:4]``.
- ``node`` is the namehash the call writes to. It sits at a fixed offset so
  it can be checked without decoding the rest of the payload.
- every further argument is ``uvarint(len) || bytes`` (unsigned LEB128 length
  prefix, as the VM ABI encodes byte strings); strings are UTF-8.

Allow-listed record kinds:

    setAddr(bytes32,address)
    setText(bytes32,string,string)
    setContenthash(bytes32,bytes)

:class:`RecordBinder` checks the node of every call in a registration batch
against the name being registered, then forwards each call to the resolver
found at the caller-chosen address.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import (Dict, Optional, Protocol, Sequence, Tuple, Union,
                    runtime_checkable)

from .constants import ADDRESS_LEN, RECORD_NODE_END, RECORD_NODE_OFFSET, RECORD_SELECTOR_LEN
from .errors import MalformedRecordCall, RecordNodeMismatch, RegistrarError, ResolverCallFailed
from .utils.bytes import as_bytes, ensure_len, to_hex, uvarint_decode, uvarint_encode
from .utils.hash import selector

logger = logging.getLogger(__name__)

SET_ADDR = "setAddr(bytes32,address)"
SET_TEXT = "setText(bytes32,string,string)"
SET_CONTENTHASH = "setContenthash(bytes32,bytes)"

# signature -> argument types after the node
RECORD_KINDS: Dict[str, Tuple[str, ...]] = {
    SET_ADDR: ("address",),
    SET_TEXT: ("string", "string"),
    SET_CONTENTHASH: ("bytes",),
}

SELECTORS: Dict[bytes, str] = {selector(sig): sig for sig in RECORD_KINDS}

ArgValue = Union[bytes, str]


@dataclass(frozen=True)
class RecordCall:
    signature: str
    node: bytes
    args: Tuple[ArgValue, ...]

    @property
    def selector(self) -> bytes:
        return selector(self.signature)


# ---------------------------------------------------------------------------
# Codec
# ---------------------------------------------------------------------------


def _encode_arg(kind: str, value: ArgValue) -> bytes:
    if kind == "string":
        if not isinstance(value, str):
            raise TypeError("string argument must be str")
        raw = value.encode("utf-8")
    elif kind == "address":
        raw = ensure_len(value if isinstance(value, (bytes, bytearray)) else b"", ADDRESS_LEN,
                         name="address")
    else:
        if not isinstance(value, (bytes, bytearray, memoryview)):
            raise TypeError("bytes argument must be bytes")
        raw = as_bytes(value)
    return uvarint_encode(len(raw)) + raw


def encode_record_call(signature: str, node: bytes, *args: ArgValue) -> bytes:
    """Encode an allow-listed record call."""
    kinds = RECORD_KINDS.get(signature)
    if kinds is None:
        raise ValueError(f"unsupported record kind: {signature}")
    if len(args) != len(kinds):
        raise ValueError(f"{signature} takes {len(kinds)} argument(s) after the node")
    out = bytearray(selector(signature))
    out += ensure_len(node, 32, name="node")
    for kind, value in zip(kinds, args):
        out += _encode_arg(kind, value)
    return bytes(out)


def encode_set_addr(node: bytes, addr: bytes) -> bytes:
    return encode_record_call(SET_ADDR, node, addr)


def encode_set_text(node: bytes, key: str, value: str) -> bytes:
    return encode_record_call(SET_TEXT, node, key, value)


def encode_set_contenthash(node: bytes, contenthash: bytes) -> bytes:
    return encode_record_call(SET_CONTENTHASH, node, contenthash)


def record_node(payload: bytes, *, index: Optional[int] = None) -> bytes:
    """Node embedded at the fixed offset of a record call."""
    payload = as_bytes(payload)
    if len(payload) < RECORD_NODE_END:
        raise MalformedRecordCall(
            f"payload is {len(payload)} bytes, need at least {RECORD_NODE_END}", index=index
        )
    return payload[RECORD_NODE_OFFSET:RECORD_NODE_END]


def decode_record_call(payload: bytes) -> RecordCall:
    """Decode and validate a record call; raises :class:`MalformedRecordCall`."""
    payload = as_bytes(payload)
    node = record_node(payload)
    sig = SELECTORS.get(payload[:RECORD_SELECTOR_LEN])
    if sig is None:
        raise MalformedRecordCall(f"unknown selector {to_hex(payload[:RECORD_SELECTOR_LEN])}")

    args = []
    off = RECORD_NODE_END
    for kind in RECORD_KINDS[sig]:
        try:
            n, off = uvarint_decode(payload, off)
        except ValueError as e:
            raise MalformedRecordCall(str(e)) from e
        if off + n > len(payload):
            raise MalformedRecordCall("argument runs past the end of the payload")
        raw = payload[off:off + n]
        off += n
        if kind == "string":
            try:
                args.append(raw.decode("utf-8"))
            except UnicodeDecodeError as e:
                raise MalformedRecordCall("string argument is not UTF-8") from e
        elif kind == "address":
            if len(raw) != ADDRESS_LEN:
                raise MalformedRecordCall("address argument must be 20 bytes")
            args.append(raw)
        else:
            args.append(raw)
    if off != len(payload):
        raise MalformedRecordCall("trailing bytes after the last argument")
    return RecordCall(signature=sig, node=node, args=tuple(args))


# ---------------------------------------------------------------------------
# Binder
# ---------------------------------------------------------------------------


@runtime_checkable
class Resolver(Protocol):
    """Capability accepting forwarded record calls."""

    def apply_record(self, node: bytes, payload: bytes) -> None:
        ...


@runtime_checkable
class ResolverDirectory(Protocol):
    def resolve(self, address: bytes) -> Optional[Resolver]:
        """Resolver capability at ``address``, or None if there is none."""
        ...


class RecordBinder:
    """Validate a batch of record calls and forward them to a resolver."""

    def __init__(self, directory: ResolverDirectory) -> None:
        self._directory = directory

    def bind(self, node: bytes, resolver: bytes, calls: Sequence[bytes]) -> int:
        """
        Forward ``calls`` to the resolver at ``resolver``. Every call must
        target ``node``. Returns the number of calls applied.
        """
        if not calls:
            return 0
        expected = to_hex(node)
        for i, payload in enumerate(calls):
            got = record_node(payload, index=i)
            if got != node:
                raise RecordNodeMismatch(expected=expected, got=to_hex(got), index=i)

        target = self._directory.resolve(resolver)
        if target is None:
            raise ResolverCallFailed("no resolver at address", resolver=to_hex(resolver))
        for i, payload in enumerate(calls):
            try:
                target.apply_record(node, payload)
            except RegistrarError as e:
                raise ResolverCallFailed(e.message, resolver=to_hex(resolver), index=i) from e
            except (ValueError, TypeError) as e:
                raise ResolverCallFailed(str(e), resolver=to_hex(resolver), index=i) from e
        logger.debug("bound %d record(s)", len(calls), extra={"node": expected})
        return len(calls)


__all__ = [
    "SET_ADDR",
    "SET_TEXT",
    "SET_CONTENTHASH",
    "RECORD_KINDS",
    "RecordCall",
    "encode_record_call",
    "encode_set_addr",
    "encode_set_text",
    "encode_set_contenthash",
    "record_node",
    "decode_record_call",
    "Resolver",
    "ResolverDirectory",
    "RecordBinder",
]
