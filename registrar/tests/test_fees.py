# Copyright (c) Animica.
# SPDX-License-Identifier: MIT
import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from registrar.adapters.memory import InMemoryBank
from registrar.errors import (InvalidReferralFee, NothingToWithdraw, TransferFailed,
                              Unauthorized)
from registrar.fees import FeeLedger, split_fee
from registrar.state.journal import Journal
from registrar.store import MemoryKeyValue

from .conftest import ALICE, BOB, OPERATOR, REFERRER, YEAR, counter, intent_for, register

ACCOUNT = b"\xcc" * 20


@pytest.mark.parametrize(
    "amount,rate,share",
    [
        (1_000, 0, 0),
        (1_999, 100, 100),
        (999, 1_000, 0),
        (31_536_000, 50, 1_576_800),
        (10_000, 1_000, 10_000),
    ],
)
def test_split_fee_truncates_to_whole_thousandths(amount, rate, share):
    assert split_fee(amount, rate) == share


@settings(max_examples=200, deadline=None)
@given(amount=st.integers(min_value=0, max_value=10**30), rate=st.integers(min_value=0, max_value=1_000))
def test_credit_conserves_value(amount, rate):
    j = Journal(MemoryKeyValue())
    ledger = FeeLedger(j, InMemoryBank(j), operator=OPERATOR, account=ACCOUNT, referral_fee=rate)
    with j.transaction():
        share = ledger.credit(REFERRER, amount)
    assert 0 <= share <= amount
    assert ledger.balance_of(REFERRER) + ledger.balance_of(OPERATOR) == amount
    assert ledger.balance_of(REFERRER) == share


@pytest.mark.parametrize(
    "referrer,rate,to_referrer,to_operator",
    [
        (REFERRER, 50, 50, 950),
        (REFERRER, 0, 0, 1_000),
        (b"\x00" * 20, 50, 0, 1_000),
    ],
)
def test_credit_splits_between_referrer_and_operator(referrer, rate, to_referrer, to_operator):
    j = Journal(MemoryKeyValue())
    ledger = FeeLedger(j, InMemoryBank(j), operator=OPERATOR, account=ACCOUNT, referral_fee=rate)
    with j.transaction():
        assert ledger.credit(referrer, 1_000) == to_referrer
    assert ledger.balance_of(REFERRER) == to_referrer
    assert ledger.balance_of(OPERATOR) == to_operator


def test_null_referrer_pays_operator_only():
    j = Journal(MemoryKeyValue())
    ledger = FeeLedger(j, InMemoryBank(j), operator=OPERATOR, account=ACCOUNT, referral_fee=500)
    with j.transaction():
        assert ledger.credit(b"\x00" * 20, 10_000) == 0
    assert ledger.balance_of(OPERATOR) == 10_000


def test_set_referral_fee(service):
    c = service.controller
    c.set_referral_fee(OPERATOR, 100)
    assert c.referral_fee == 100
    [ev] = service.sink.get_logs(event="ReferralFeeUpdated")
    assert ev.args == {"previous": 0, "value": 100}


def test_set_referral_fee_guards(service):
    c = service.controller
    with pytest.raises(Unauthorized):
        c.set_referral_fee(ALICE, 100)
    with pytest.raises(InvalidReferralFee):
        c.set_referral_fee(OPERATOR, 1_001)
    assert c.referral_fee == 0
    assert list(service.sink.get_logs(event="ReferralFeeUpdated")) == []


def test_referrer_receives_share_of_registration(service, clock, metrics):
    c = service.controller
    c.set_referral_fee(OPERATOR, 50)
    register(service, clock, intent_for("alice"), referrer=REFERRER)
    share = (YEAR // 1_000) * 50
    assert c.balance_of(REFERRER) == share
    assert c.balance_of(OPERATOR) == YEAR - share
    [ev] = service.sink.get_logs(event="ReferrerReceived")
    assert ev.args == {"referrer": "0x" + REFERRER.hex(), "amount": share}
    assert metrics.registry.get_sample_value(
        "animica_registrar_fees_credited_total", {"party": "referrer"}) == share


def test_referrer_receives_share_of_renewal(service, clock):
    c = service.controller
    register(service, clock, intent_for("alice"))
    c.set_referral_fee(OPERATOR, 1_000)
    c.renew(BOB, "alice", YEAR, YEAR, REFERRER)
    assert c.balance_of(REFERRER) == YEAR


def test_withdraw_pays_out_and_zeroes(service, clock, metrics):
    c = service.controller
    register(service, clock, intent_for("alice"))
    assert c.withdraw(OPERATOR) == YEAR
    assert service.bank.balance_of(OPERATOR) == YEAR
    assert service.bank.balance_of(c.address) == 0
    assert c.balance_of(OPERATOR) == 0
    with pytest.raises(NothingToWithdraw):
        c.withdraw(OPERATOR)
    assert counter(metrics, "withdrawals", "ok") == 1
    assert counter(metrics, "withdrawals", "precondition") == 1


def test_reentrant_withdraw_sees_zero_balance(service, clock):
    c = service.controller
    register(service, clock, intent_for("alice"))
    seen = []

    def hook(sender, amount):
        try:
            c.withdraw(OPERATOR)
        except NothingToWithdraw as e:
            seen.append(e.code)

    service.bank.set_receive_hook(OPERATOR, hook)
    assert c.withdraw(OPERATOR) == YEAR
    assert seen == ["NOTHING_TO_WITHDRAW"]
    assert service.bank.balance_of(OPERATOR) == YEAR


def test_failed_payout_restores_balance(service, clock):
    c = service.controller
    register(service, clock, intent_for("alice"))
    service.bank.reject(OPERATOR)
    with pytest.raises(TransferFailed):
        c.withdraw(OPERATOR)
    assert c.balance_of(OPERATOR) == YEAR
    service.bank.reject(OPERATOR, enabled=False)
    assert c.withdraw(OPERATOR) == YEAR
