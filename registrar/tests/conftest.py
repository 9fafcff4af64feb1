# Copyright (c) Animica.
# SPDX-License-Identifier: MIT
from __future__ import annotations

from typing import Optional, Sequence

import pytest
from prometheus_client import CollectorRegistry

from registrar.commit_reveal.commit import build_intent, make_commitment
from registrar.config import RegistrarConfig
from registrar.constants import DAY
from registrar.metrics import Metrics
from registrar.service import RegistrarService, build_service
from registrar.types.core import RegistrationIntent
from registrar.utils.bytes import to_hex
from registrar.utils.time import ManualClock

START = 1_700_000_000
YEAR = 365 * DAY
FUNDS = 10**12

OPERATOR = bytes.fromhex("0f" * 20)
ALICE = bytes.fromhex("a1" * 20)
BOB = bytes.fromhex("b0" * 20)
CAROL = bytes.fromhex("c4" * 20)
REFERRER = bytes.fromhex("5e" * 20)
SECRET = bytes.fromhex("11" * 32)


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock(START)


@pytest.fixture
def metrics() -> Metrics:
    return Metrics(registry=CollectorRegistry())


@pytest.fixture
def config() -> RegistrarConfig:
    return RegistrarConfig(operator=to_hex(OPERATOR))


@pytest.fixture
def service(config, clock, metrics):
    svc = build_service(config, clock=clock, metrics=metrics)
    for acct in (ALICE, BOB, CAROL):
        svc.fund(acct, FUNDS)
    yield svc
    svc.close()


@pytest.fixture
def controller(service):
    return service.controller


def intent_for(
    label: str,
    owner: bytes = ALICE,
    duration: int = YEAR,
    *,
    secret: bytes = SECRET,
    resolver: Optional[bytes] = None,
    data: Optional[Sequence[bytes]] = None,
    reverse_record: bool = False,
    fuses: int = 0,
    wrapper_expiry: int = 0,
) -> RegistrationIntent:
    return build_intent(label, owner, duration, secret, resolver, data, reverse_record,
                        fuses, wrapper_expiry)


def commit_and_wait(service: RegistrarService, clock: ManualClock,
                    intent: RegistrationIntent) -> bytes:
    """Commit the intent and advance past the minimum commitment age."""
    h = make_commitment(intent)
    service.controller.commit(h)
    clock.advance(service.controller.min_commitment_age)
    return h


def register(service: RegistrarService, clock: ManualClock, intent: RegistrationIntent, *,
             caller: bytes = ALICE, value: Optional[int] = None, referrer: Optional[bytes] = None):
    commit_and_wait(service, clock, intent)
    c = service.controller
    if value is None:
        value = c.rent_price(intent.label, intent.duration).total
    if referrer is None:
        return c.register(caller, intent, value)
    return c.register(caller, intent, value, referrer)


def counter(metrics: Metrics, family: str, outcome: str) -> float:
    value = metrics.registry.get_sample_value(
        f"animica_registrar_{family}_total", {"outcome": outcome}
    )
    return value or 0.0
