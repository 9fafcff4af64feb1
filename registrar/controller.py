# Copyright (c) Animica.
# SPDX-License-Identifier: MIT
"""
registrar.controller — registration and renewal state machine.

The controller ties the commitment store, the pricing gateway, the fee
ledger, the record binder and the external collaborators together.

Ordering and atomicity
----------------------
Every state-mutating call runs under the journal's re-entrant lock with one
pinned block timestamp, so operations are applied in a single serial order
and each reads time exactly once.

``register`` runs as two journal checkpoints:

1. consumption — validity, availability, reveal window, delete, duration
   floor. A failure here leaves nothing behind.
2. settlement — collect the attached value, register and wrap, bind records,
   reverse record, event, refund, credit. A failure here rolls back the whole
   settlement but keeps the commitment consumed, so a retry needs a fresh
   commit and wait.

``renew``, ``withdraw``, ``commit`` and ``set_referral_fee`` are one
checkpoint each.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator, Optional, Protocol, Sequence, Tuple

from .commit_reveal.commit import build_intent
from .commit_reveal.commit import make_commitment as _make_commitment
from .commit_reveal.store import CommitmentStore
from .constants import DEFAULT_TLD, MIN_LABEL_LENGTH, MIN_REGISTRATION_DURATION, NULL_ADDRESS
from .errors import InsufficientFunds, InsufficientValue, RegistrarError
from .fees import FeeLedger
from .metrics import METRICS, Metrics, outcome_for
from .pricing import PricingGateway
from .records import RecordBinder
from .state.journal import Journal
from .types.core import Price, RegistrationIntent, RegistrationResult, RenewalResult
from .types.events import NameRegistered, NameRenewed
from .utils.bytes import as_address, to_hex
from .utils.hash import labelhash, namehash, strlen
from .utils.time import BlockClock

logger = logging.getLogger(__name__)


class OwnershipLedger(Protocol):
    def available(self, label_hash: bytes) -> bool: ...
    def name_expires(self, label_hash: bytes) -> int: ...
    def renew(self, label_hash: bytes, duration: int) -> int: ...


class NameWrapper(Protocol):
    def register_and_wrap(self, label: str, owner: bytes, duration: int, resolver: bytes,
                          fuses: int, wrapper_expiry: int) -> int: ...


class ReverseRegistry(Protocol):
    def set_name_for_addr(self, caller: bytes, addr: bytes, resolver: bytes, name: str) -> bytes: ...


class ValueBank(Protocol):
    def balance_of(self, addr: bytes) -> int: ...
    def transfer(self, sender: bytes, recipient: bytes, amount: int) -> None: ...


class RegistrarController:
    def __init__(
        self,
        journal: Journal,
        clock: BlockClock,
        *,
        address: bytes,
        base_registrar: OwnershipLedger,
        name_wrapper: NameWrapper,
        pricing: PricingGateway,
        reverse_registrar: ReverseRegistry,
        records: RecordBinder,
        fees: FeeLedger,
        bank: ValueBank,
        min_commitment_age: int,
        max_commitment_age: int,
        min_registration_duration: int = MIN_REGISTRATION_DURATION,
        tld: str = DEFAULT_TLD,
        metrics: Optional[Metrics] = None,
    ) -> None:
        self._j = journal
        self._clock = clock
        self.address = as_address(address, name="address")
        self._base = base_registrar
        self._wrapper = name_wrapper
        self._pricing = pricing
        self._reverse = reverse_registrar
        self._records = records
        self._fees = fees
        self._bank = bank
        self.tld = tld
        self._metrics = metrics if metrics is not None else METRICS
        self._commitments = CommitmentStore(
            journal,
            min_age=min_commitment_age,
            max_age=max_commitment_age,
            min_duration=min_registration_duration,
            valid=self.valid,
            available=self._ledger_available,
        )

    # ------------------------------------------------------------------ #
    # Operation scaffolding
    # ------------------------------------------------------------------ #

    @contextmanager
    def atomic(self) -> Iterator[int]:
        """Lock, pin block time and open one checkpoint; yields ``now``."""
        with self._j.lock, self._clock.pinned() as now:
            with self._j.transaction(now):
                yield now

    @contextmanager
    def _operation(self, op: str, family: Optional[str] = None) -> Iterator[int]:
        with self._j.lock, self._clock.pinned() as now, self._metrics.timer(op):
            try:
                yield now
            except RegistrarError as e:
                logger.info("%s rejected: %s", op, e.code, extra={"op": op, "code": e.code})
                if family:
                    self._metrics.record(family, outcome_for(e))
                raise
            if family:
                self._metrics.record(family, "ok")

    # ------------------------------------------------------------------ #
    # Read-only queries
    # ------------------------------------------------------------------ #

    @property
    def min_commitment_age(self) -> int:
        return self._commitments.min_age

    @property
    def max_commitment_age(self) -> int:
        return self._commitments.max_age

    @property
    def min_registration_duration(self) -> int:
        return self._commitments.min_duration

    @property
    def referral_fee(self) -> int:
        return self._fees.referral_fee

    @property
    def operator(self) -> bytes:
        return self._fees.operator

    @property
    def metrics(self) -> Metrics:
        return self._metrics

    def commitments(self, commitment: bytes) -> Optional[int]:
        return self._commitments.get(commitment)

    def balance_of(self, addr: bytes) -> int:
        return self._fees.balance_of(addr)

    def valid(self, name: str) -> bool:
        return strlen(name) >= MIN_LABEL_LENGTH

    def _ledger_available(self, name: str) -> bool:
        return self._base.available(labelhash(name))

    def available(self, name: str) -> bool:
        return self.valid(name) and self._ledger_available(name)

    def rent_price(self, name: str, duration: int) -> Price:
        return self._pricing.price(name, self._base.name_expires(labelhash(name)), duration)

    def make_commitment(
        self,
        label: str,
        owner: bytes,
        duration: int,
        secret: bytes,
        resolver: Optional[bytes] = None,
        data: Optional[Sequence[bytes]] = None,
        reverse_record: bool = False,
        fuses: int = 0,
        wrapper_expiry: int = 0,
    ) -> bytes:
        return _make_commitment(build_intent(label, owner, duration, secret, resolver, data,
                                             reverse_record, fuses, wrapper_expiry))

    # ------------------------------------------------------------------ #
    # Mutations
    # ------------------------------------------------------------------ #

    def commit(self, commitment: bytes) -> int:
        """Record a commitment; returns its acceptance timestamp."""
        with self._operation("commit", "commits") as now:
            with self._j.transaction(now):
                self._commitments.commit(commitment, now)
            logger.info("commit accepted", extra={"commitment": to_hex(commitment)})
            return now

    def _collect(self, caller: bytes, value: int) -> None:
        have = self._bank.balance_of(caller)
        if have < value:
            raise InsufficientFunds(account=to_hex(caller), balance=have, amount=value)

    def register(
        self,
        caller: bytes,
        intent: RegistrationIntent,
        value: int,
        referrer: bytes = NULL_ADDRESS,
    ) -> RegistrationResult:
        caller = as_address(caller, name="caller")
        referrer = as_address(referrer, name="referrer")
        with self._operation("register", "registrations") as now:
            label = intent.label
            price = self.rent_price(label, intent.duration)
            due = price.total
            if value < due:
                raise InsufficientValue(required=due, provided=value)
            self._collect(caller, value)
            commitment = _make_commitment(intent)

            with self._j.transaction(now):
                self._commitments.consume(label, intent.duration, commitment, now)

            name = f"{label}.{self.tld}"
            node = namehash(name)
            label_hash = labelhash(label)
            with self._j.transaction(now):
                self._bank.transfer(caller, self.address, value)
                expires = self._wrapper.register_and_wrap(
                    label, intent.owner, intent.duration, intent.resolver,
                    intent.fuses, intent.wrapper_expiry,
                )
                if intent.data:
                    self._records.bind(node, intent.resolver, intent.data)
                if intent.reverse_record:
                    self._reverse.set_name_for_addr(caller, caller, intent.resolver, name)
                self._j.emit(NameRegistered(
                    name=label, label_hash=label_hash, owner=intent.owner,
                    base_cost=price.base, premium=price.premium, expires=expires,
                ))
                refund = value - due
                if refund > 0:
                    self._bank.transfer(self.address, caller, refund)
                share = self._fees.credit(referrer, due)

            self._metrics.record_fees(referrer=share, operator=due - share)
            logger.info("name registered", extra={"domain": name, "expires": expires})
            return RegistrationResult(
                name=name, label_hash=label_hash, node=node, owner=intent.owner,
                expires=expires, price=price, refund=refund,
            )

    def renew(
        self,
        caller: bytes,
        name: str,
        duration: int,
        value: int,
        referrer: bytes = NULL_ADDRESS,
    ) -> RenewalResult:
        caller = as_address(caller, name="caller")
        referrer = as_address(referrer, name="referrer")
        with self._operation("renew", "renewals") as now:
            result, share = self.apply_renewal(caller, name, duration, value, referrer, now)
            self._metrics.record_fees(referrer=share, operator=result.cost - share)
            logger.info("name renewed", extra={"domain": name, "expires": result.expires})
            return result

    def apply_renewal(
        self,
        caller: bytes,
        name: str,
        duration: int,
        value: int,
        referrer: bytes,
        now: int,
    ) -> Tuple[RenewalResult, int]:
        """
        One renewal as a checkpoint at ``now``; returns the result and the
        referrer's share. Callers hold the lock (``atomic()`` or
        ``renew``) and own metrics and logging.
        """
        label_hash = labelhash(name)
        price = self.rent_price(name, duration)
        cost = price.base
        if value < cost:
            raise InsufficientValue(required=cost, provided=value)
        self._collect(caller, value)

        with self._j.transaction(now):
            self._bank.transfer(caller, self.address, value)
            expires = self._base.renew(label_hash, duration)
            refund = value - cost
            if refund > 0:
                self._bank.transfer(self.address, caller, refund)
            share = self._fees.credit(referrer, cost)
            self._j.emit(NameRenewed(name=name, label_hash=label_hash, cost=cost, expires=expires))

        result = RenewalResult(name=name, label_hash=label_hash, expires=expires,
                               cost=cost, refund=refund)
        return result, share

    def withdraw(self, caller: bytes) -> int:
        caller = as_address(caller, name="caller")
        with self._operation("withdraw", "withdrawals") as now:
            with self._j.transaction(now):
                amount = self._fees.withdraw(caller)
            logger.info("withdrawal", extra={"account": to_hex(caller), "amount": amount})
            return amount

    def set_referral_fee(self, caller: bytes, rate: int) -> None:
        with self._operation("set_referral_fee") as now:
            with self._j.transaction(now):
                self._fees.set_referral_fee(caller, rate)


__all__ = [
    "OwnershipLedger",
    "NameWrapper",
    "ReverseRegistry",
    "ValueBank",
    "RegistrarController",
]
