# Copyright (c) Animica.
# SPDX-License-Identifier: MIT
"""
registrar.fees — pull-payment fee ledger.

Fees collected by registrations and renewals are never pushed anywhere. They
are credited to per-address balances, which their owners withdraw on demand.
The controller's bank account holds the sum of all balances.

Split rule (parts-per-thousand)
-------------------------------
    share    = (amount // 1000) * rate      -> referrer
    operator = amount - share               -> operator

With a null referrer or a zero rate the operator receives everything.

Withdrawal zeroes the balance *before* paying out, so a recipient that calls
back into ``withdraw`` during the transfer sees nothing left. A failed
transfer propagates, and the enclosing journal checkpoint restores the
balance together with everything else.

All mutators expect an open journal transaction (the controller provides it).
"""

from __future__ import annotations

import logging
from typing import Protocol

from .constants import NULL_ADDRESS, REFERRAL_FEE_DENOMINATOR
from .errors import InvalidReferralFee, NothingToWithdraw, Unauthorized
from .state.journal import Journal
from .store import keys
from .types.events import ReferralFeeUpdated, ReferrerReceived
from .utils.bytes import as_address, bytes_to_u256, to_hex, u256_to_bytes

logger = logging.getLogger(__name__)


class Bank(Protocol):
    def transfer(self, sender: bytes, recipient: bytes, amount: int) -> None:
        ...


def split_fee(amount: int, rate: int, denominator: int = REFERRAL_FEE_DENOMINATOR) -> int:
    """Referrer's share of ``amount`` at ``rate`` parts-per-``denominator``."""
    if amount < 0:
        raise ValueError("amount must be non-negative")
    return (amount // denominator) * rate


class FeeLedger:
    """
    Parameters
    ----------
    journal : Journal
    bank : Bank
        Moves funds out on withdrawal.
    operator : bytes
        Privileged identity; receives the non-referral part of every credit.
    account : bytes
        Bank account holding the credited funds (the controller's).
    referral_fee : int
        Rate used until the operator sets one.
    """

    def __init__(
        self,
        journal: Journal,
        bank: Bank,
        *,
        operator: bytes,
        account: bytes,
        referral_fee: int = 0,
    ) -> None:
        if not 0 <= referral_fee <= REFERRAL_FEE_DENOMINATOR:
            raise InvalidReferralFee(rate=referral_fee, maximum=REFERRAL_FEE_DENOMINATOR)
        self._j = journal
        self._bank = bank
        self.operator = as_address(operator, name="operator")
        self.account = as_address(account, name="account")
        self._default_rate = int(referral_fee)

    # ---- reads ----------------------------------------------------------------

    @property
    def referral_fee(self) -> int:
        raw = self._j.get(keys.meta(keys.META_REFERRAL_FEE))
        return self._default_rate if raw is None else bytes_to_u256(raw)

    def balance_of(self, addr: bytes) -> int:
        raw = self._j.get(keys.balance(as_address(addr)))
        return 0 if raw is None else bytes_to_u256(raw)

    # ---- writes ---------------------------------------------------------------

    def _add(self, addr: bytes, amount: int) -> None:
        self._j.put(keys.balance(addr), u256_to_bytes(self.balance_of(addr) + amount))

    def credit(self, referrer: bytes, amount: int) -> int:
        """Credit ``amount``; returns the referrer's share (0 if none)."""
        referrer = as_address(referrer, name="referrer")
        if amount < 0:
            raise ValueError("amount must be non-negative")
        rate = self.referral_fee
        if referrer == NULL_ADDRESS or rate == 0:
            self._add(self.operator, amount)
            return 0

        share = split_fee(amount, rate)
        self._add(referrer, share)
        self._add(self.operator, amount - share)
        self._j.emit(ReferrerReceived(referrer=referrer, amount=share))
        return share

    def set_referral_fee(self, caller: bytes, rate: int) -> None:
        caller = as_address(caller, name="caller")
        if caller != self.operator:
            raise Unauthorized(caller=to_hex(caller), action="set the referral fee")
        if not 0 <= rate <= REFERRAL_FEE_DENOMINATOR:
            raise InvalidReferralFee(rate=rate, maximum=REFERRAL_FEE_DENOMINATOR)
        previous = self.referral_fee
        self._j.put(keys.meta(keys.META_REFERRAL_FEE), u256_to_bytes(rate))
        self._j.emit(ReferralFeeUpdated(previous=previous, value=rate))
        logger.info("referral fee updated", extra={"previous": previous, "value": rate})

    def withdraw(self, caller: bytes) -> int:
        """Pay out the caller's whole balance; returns the amount."""
        caller = as_address(caller, name="caller")
        amount = self.balance_of(caller)
        if amount == 0:
            raise NothingToWithdraw(account=to_hex(caller))
        self._j.put(keys.balance(caller), u256_to_bytes(0))
        self._bank.transfer(self.account, caller, amount)
        return amount


__all__ = ["Bank", "FeeLedger", "split_fee"]
