# Copyright (c) Animica.
# SPDX-License-Identifier: MIT
import pytest

from registrar.constants import DAY
from registrar.errors import InsufficientValue, NameNotRenewable
from registrar.utils.hash import labelhash

from .conftest import ALICE, BOB, CAROL, FUNDS, YEAR, counter, intent_for, register


@pytest.fixture
def alice(service, clock):
    return register(service, clock, intent_for("alice"))


def test_renew_extends_from_current_expiry(service, clock, alice, metrics):
    c = service.controller
    clock.advance(30 * DAY)
    res = c.renew(BOB, "alice", YEAR, YEAR + 7)
    assert res.expires == alice.expires + YEAR
    assert res.cost == YEAR
    assert res.refund == 7
    assert service.base_registrar.name_expires(labelhash("alice")) == alice.expires + YEAR
    assert service.bank.balance_of(BOB) == FUNDS - YEAR

    [ev] = service.sink.get_logs(event="NameRenewed")
    assert ev.args == {
        "name": "alice",
        "labelHash": "0x" + labelhash("alice").hex(),
        "cost": YEAR,
        "expires": alice.expires + YEAR,
    }
    assert counter(metrics, "renewals", "ok") == 1


def test_renew_in_grace_period(service, clock, alice):
    clock.set(alice.expires + service.config.grace_period)
    assert service.controller.renew(ALICE, "alice", YEAR, YEAR).expires == alice.expires + YEAR


def test_renew_after_grace_fails(service, clock, alice, metrics):
    clock.set(alice.expires + service.config.grace_period + 1)
    with pytest.raises(NameNotRenewable):
        service.controller.renew(ALICE, "alice", YEAR, YEAR)
    assert counter(metrics, "renewals", "collaborator") == 1


def test_renew_unregistered_fails(service):
    with pytest.raises(NameNotRenewable):
        service.controller.renew(ALICE, "nobody", YEAR, 10 * YEAR)
    assert service.bank.balance_of(ALICE) == FUNDS


def test_renew_requires_base_price(service, alice):
    with pytest.raises(InsufficientValue):
        service.controller.renew(ALICE, "alice", YEAR, YEAR - 1)


def test_rent_price_bulk_sums_quotes(service, clock):
    register(service, clock, intent_for("alice"))
    register(service, clock, intent_for("carol", owner=CAROL), caller=CAROL)
    assert service.bulk.rent_price(["alice", "carol", "dan"], DAY) == DAY + DAY + 4 * DAY


def test_renew_all(service, clock, metrics):
    a = register(service, clock, intent_for("alice"))
    b = register(service, clock, intent_for("bobby", owner=BOB), caller=BOB)
    res = service.bulk.renew_all(CAROL, ["alice", "bobby"], YEAR, 2 * YEAR + 100)
    assert [r.expires for r in res.renewals] == [a.expires + YEAR, b.expires + YEAR]
    assert res.cost == 2 * YEAR
    assert res.refund == 100
    assert service.bank.balance_of(CAROL) == FUNDS - 2 * YEAR
    assert counter(metrics, "renewals", "ok") == 2
    assert metrics.registry.get_sample_value(
        "animica_registrar_fees_credited_total", {"party": "operator"}) == 4 * YEAR


def test_renew_all_is_all_or_nothing(service, clock, metrics):
    a = register(service, clock, intent_for("alice"))
    before = service.bank.balance_of(CAROL)
    with pytest.raises(NameNotRenewable):
        service.bulk.renew_all(CAROL, ["alice", "ghost"], YEAR, 10 * YEAR)
    assert service.base_registrar.name_expires(labelhash("alice")) == a.expires
    assert service.bank.balance_of(CAROL) == before
    assert list(service.sink.get_logs(event="NameRenewed")) == []
    # the undone renewal of "alice" is not counted
    assert counter(metrics, "renewals", "ok") == 0
    assert counter(metrics, "renewals", "collaborator") == 1


def test_renew_all_checks_total(service, clock):
    register(service, clock, intent_for("alice"))
    with pytest.raises(InsufficientValue):
        service.bulk.renew_all(CAROL, ["alice"], YEAR, YEAR - 1)
