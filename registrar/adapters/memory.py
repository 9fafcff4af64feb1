# Copyright (c) Animica.
# SPDX-License-Identifier: MIT
"""
In-memory reference collaborators.

These stand in for the ownership ledger, the wrapper, resolvers, the reverse
registry and the value-moving bank. Their state lives in the same journal as
the controller's, so a rolled-back registration rolls their writes back too.

- :class:`InMemoryBaseRegistrar` — label → (owner, expiry) with a grace period.
- :class:`InMemoryNameWrapper`   — registers through the base registrar and
  records the wrapped owner, resolver, fuses and wrapper expiry.
- :class:`PublicResolver`        — allow-listed addr/text/contenthash records
  plus reverse names.
- :class:`InMemoryReverseRegistrar` — binds ``<addr>.addr.reverse`` to a name.
- :class:`InMemoryBank`          — account balances; addresses may refuse
  incoming transfers or run a receive hook.
- :class:`Directory`             — address → resolver capability.

Mutators expect an open journal transaction.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Set

from ..constants import GRACE_PERIOD, NULL_ADDRESS, PARENT_CANNOT_CONTROL
from ..errors import (InsufficientFunds, MalformedRecordCall, NameNotRenewable,
                      NameUnavailable, RegistrarError, ResolverCallFailed,
                      TransferFailed)
from ..records import SET_ADDR, SET_CONTENTHASH, SET_TEXT, Resolver, decode_record_call
from ..state.journal import Journal
from ..store import keys
from ..utils.bytes import (as_address, as_hash32, bytes_to_u64, bytes_to_u256,
                           to_hex, u64_to_bytes, u256_to_bytes)
from ..utils.hash import derive_address, labelhash, namehash, reverse_node
from ..utils.time import Clock

logger = logging.getLogger(__name__)

ReceiveHook = Callable[[bytes, int], None]


# ---------------------------------------------------------------------------
# Ownership ledger
# ---------------------------------------------------------------------------


class InMemoryBaseRegistrar:
    """Label-hash keyed ownership ledger for one TLD."""

    def __init__(self, journal: Journal, clock: Clock, *, grace_period: int = GRACE_PERIOD) -> None:
        self._j = journal
        self._clock = clock
        self.grace_period = int(grace_period)

    def name_expires(self, label_hash: bytes) -> int:
        raw = self._j.get(keys.expiry(as_hash32(label_hash)))
        return 0 if raw is None else bytes_to_u64(raw)

    def owner_of(self, label_hash: bytes) -> Optional[bytes]:
        if self.name_expires(label_hash) <= self._clock.now():
            return None
        return self._j.get(keys.owner(as_hash32(label_hash)))

    def available(self, label_hash: bytes) -> bool:
        """Never registered, or expired past the grace period."""
        return self.name_expires(label_hash) + self.grace_period < self._clock.now()

    def register(self, label_hash: bytes, owner: bytes, duration: int) -> int:
        label_hash = as_hash32(label_hash)
        if not self.available(label_hash):
            raise NameUnavailable(to_hex(label_hash))
        expires = self._clock.now() + int(duration)
        self._j.put(keys.expiry(label_hash), u64_to_bytes(expires))
        self._j.put(keys.owner(label_hash), as_address(owner, name="owner"))
        return expires

    def renew(self, label_hash: bytes, duration: int) -> int:
        label_hash = as_hash32(label_hash)
        current = self.name_expires(label_hash)
        if current == 0 or current + self.grace_period < self._clock.now():
            raise NameNotRenewable(label_hash=to_hex(label_hash))
        expires = current + int(duration)
        self._j.put(keys.expiry(label_hash), u64_to_bytes(expires))
        return expires


# ---------------------------------------------------------------------------
# Wrapper
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class WrappedName:
    owner: bytes
    resolver: bytes
    fuses: int
    expiry: int

    def encode(self) -> bytes:
        return self.owner + self.resolver + self.fuses.to_bytes(4, "big") + u64_to_bytes(self.expiry)

    @classmethod
    def decode(cls, raw: bytes) -> "WrappedName":
        return cls(
            owner=raw[:20],
            resolver=raw[20:40],
            fuses=int.from_bytes(raw[40:44], "big"),
            expiry=bytes_to_u64(raw[44:52]),
        )


class InMemoryNameWrapper:
    """Registers through the base registrar and keeps the wrapped ownership."""

    def __init__(self, journal: Journal, base: InMemoryBaseRegistrar, *, tld: str = "eth",
                 address: Optional[bytes] = None) -> None:
        self._j = journal
        self._base = base
        self.tld = tld
        self.address = address if address is not None else derive_address("name-wrapper")

    def register_and_wrap(
        self,
        label: str,
        owner: bytes,
        duration: int,
        resolver: bytes,
        fuses: int,
        wrapper_expiry: int,
    ) -> int:
        expires = self._base.register(labelhash(label), self.address, duration)
        node = namehash(f"{label}.{self.tld}")
        capped = expires if wrapper_expiry == 0 else min(int(wrapper_expiry), expires)
        rec = WrappedName(
            owner=as_address(owner, name="owner"),
            resolver=as_address(resolver, name="resolver"),
            fuses=int(fuses) | PARENT_CANNOT_CONTROL,
            expiry=capped,
        )
        self._j.put(keys.wrapped(node), rec.encode())
        return expires

    def get_data(self, node: bytes) -> Optional[WrappedName]:
        raw = self._j.get(keys.wrapped(as_hash32(node)))
        return None if raw is None else WrappedName.decode(raw)

    def owner_of(self, node: bytes) -> Optional[bytes]:
        rec = self.get_data(node)
        return None if rec is None else rec.owner


# ---------------------------------------------------------------------------
# Resolver
# ---------------------------------------------------------------------------


class PublicResolver:
    """Resolver accepting the allow-listed record kinds."""

    def __init__(self, journal: Journal, *, address: Optional[bytes] = None) -> None:
        self._j = journal
        self.address = address if address is not None else derive_address("public-resolver")

    def apply_record(self, node: bytes, payload: bytes) -> None:
        call = decode_record_call(payload)
        if call.node != node:
            raise MalformedRecordCall("payload node differs from the forwarded node")
        if call.signature == SET_ADDR:
            self._j.put(keys.addr_record(node), call.args[0])  # type: ignore[arg-type]
        elif call.signature == SET_TEXT:
            key, value = call.args
            self._j.put(keys.text_record(node, key), value.encode("utf-8"))  # type: ignore[union-attr,arg-type]
        elif call.signature == SET_CONTENTHASH:
            self._j.put(keys.contenthash_record(node), call.args[0])  # type: ignore[arg-type]

    def set_name(self, node: bytes, name: str) -> None:
        self._j.put(keys.name_record(as_hash32(node)), name.encode("utf-8"))

    def addr(self, node: bytes) -> bytes:
        return self._j.get(keys.addr_record(as_hash32(node))) or NULL_ADDRESS

    def text(self, node: bytes, key: str) -> str:
        raw = self._j.get(keys.text_record(as_hash32(node), key))
        return "" if raw is None else raw.decode("utf-8")

    def contenthash(self, node: bytes) -> bytes:
        return self._j.get(keys.contenthash_record(as_hash32(node))) or b""

    def name(self, node: bytes) -> str:
        raw = self._j.get(keys.name_record(as_hash32(node)))
        return "" if raw is None else raw.decode("utf-8")


class Directory:
    """Address → resolver capability. Unknown addresses resolve to None."""

    def __init__(self) -> None:
        self._entries: Dict[bytes, Resolver] = {}

    def register(self, address: bytes, resolver: Resolver) -> None:
        self._entries[as_address(address)] = resolver

    def resolve(self, address: bytes) -> Optional[Resolver]:
        return self._entries.get(bytes(address))


# ---------------------------------------------------------------------------
# Reverse registry
# ---------------------------------------------------------------------------


class InMemoryReverseRegistrar:
    def __init__(self, journal: Journal, directory: Directory) -> None:
        self._j = journal
        self._directory = directory

    def set_name_for_addr(self, caller: bytes, addr: bytes, resolver: bytes, name: str) -> bytes:
        """Point ``<addr>.addr.reverse`` at ``name`` through ``resolver``."""
        addr = as_address(addr)
        node = reverse_node(addr)
        target = self._directory.resolve(resolver)
        set_name = getattr(target, "set_name", None)
        if set_name is None:
            raise ResolverCallFailed("resolver cannot hold reverse names", resolver=to_hex(resolver))
        set_name(node, name)
        self._j.put(keys.reverse(addr), as_address(resolver, name="resolver"))
        logger.debug("reverse record set", extra={"addr": to_hex(addr), "caller": to_hex(caller)})
        return node

    def resolver_of(self, addr: bytes) -> Optional[bytes]:
        return self._j.get(keys.reverse(as_address(addr)))

    def name_of(self, addr: bytes) -> str:
        resolver = self.resolver_of(addr)
        if resolver is None:
            return ""
        target = self._directory.resolve(resolver)
        name = getattr(target, "name", None)
        return "" if name is None else name(reverse_node(as_address(addr)))


# ---------------------------------------------------------------------------
# Bank
# ---------------------------------------------------------------------------


class InMemoryBank:
    """
    Account balances that attached value, refunds and withdrawals move through.

    ``reject(addr)`` makes every transfer to ``addr`` fail. A receive hook runs
    after the funds land and may call back into the registrar; if it raises,
    the transfer fails and is rolled back.
    """

    def __init__(self, journal: Journal) -> None:
        self._j = journal
        self._rejecting: Set[bytes] = set()
        self._hooks: Dict[bytes, ReceiveHook] = {}

    def balance_of(self, addr: bytes) -> int:
        raw = self._j.get(keys.bank(as_address(addr)))
        return 0 if raw is None else bytes_to_u256(raw)

    def _set(self, addr: bytes, amount: int) -> None:
        self._j.put(keys.bank(addr), u256_to_bytes(amount))

    def mint(self, addr: bytes, amount: int) -> None:
        if amount < 0:
            raise ValueError("amount must be non-negative")
        addr = as_address(addr)
        self._set(addr, self.balance_of(addr) + amount)

    def reject(self, addr: bytes, enabled: bool = True) -> None:
        addr = as_address(addr)
        if enabled:
            self._rejecting.add(addr)
        else:
            self._rejecting.discard(addr)

    def set_receive_hook(self, addr: bytes, hook: Optional[ReceiveHook]) -> None:
        addr = as_address(addr)
        if hook is None:
            self._hooks.pop(addr, None)
        else:
            self._hooks[addr] = hook

    def transfer(self, sender: bytes, recipient: bytes, amount: int) -> None:
        sender = as_address(sender, name="sender")
        recipient = as_address(recipient, name="recipient")
        if amount < 0:
            raise ValueError("amount must be non-negative")
        if amount == 0:
            return
        if recipient in self._rejecting:
            raise TransferFailed(recipient=to_hex(recipient), amount=amount, reason="recipient rejected")
        with self._j.transaction():
            have = self.balance_of(sender)
            if have < amount:
                raise InsufficientFunds(account=to_hex(sender), balance=have, amount=amount)
            self._set(sender, have - amount)
            self._set(recipient, self.balance_of(recipient) + amount)
            hook = self._hooks.get(recipient)
            if hook is not None:
                try:
                    hook(sender, amount)
                except (RegistrarError, RuntimeError, ValueError) as e:
                    raise TransferFailed(recipient=to_hex(recipient), amount=amount,
                                         reason=str(e)) from e


__all__ = [
    "InMemoryBaseRegistrar",
    "WrappedName",
    "InMemoryNameWrapper",
    "PublicResolver",
    "Directory",
    "InMemoryReverseRegistrar",
    "InMemoryBank",
]
