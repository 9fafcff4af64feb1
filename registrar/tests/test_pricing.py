# Copyright (c) Animica.
# SPDX-License-Identifier: MIT
import pytest
from hypothesis import given
from hypothesis import strategies as st

from registrar.constants import DAY, GRACE_PERIOD
from registrar.pricing import PricingGateway, StablePricing
from registrar.utils.time import ManualClock

RENT = [0, 0, 4, 2, 1]
T0 = 1_700_000_000


def mk(start_premium=0, now=T0):
    return StablePricing(RENT, ManualClock(now), start_premium=start_premium,
                         premium_half_life=DAY, premium_duration=21 * DAY)


@pytest.mark.parametrize(
    "label,rate",
    [("ab", 0), ("abc", 4), ("abcd", 2), ("abcde", 1), ("a-very-long-label", 1), ("你好吗", 4)],
)
def test_rent_rate_by_length(label, rate):
    assert mk().rent_rate(label) == rate


def test_price_never_registered_has_no_premium():
    p = mk(start_premium=10**6).price("alice", 0, 100)
    assert (p.base, p.premium, p.total) == (100, 0, 100)


def test_satisfies_gateway_protocol():
    assert isinstance(mk(), PricingGateway)


@pytest.mark.parametrize(
    "elapsed,premium",
    [
        (-1, 0),                     # still inside grace
        (0, 1_000_000),
        (DAY // 2, 750_000),
        (DAY, 500_000),
        (2 * DAY, 250_000),
        (3 * DAY + DAY // 2, 93_750),
        (21 * DAY, 0),
    ],
)
def test_premium_decay(elapsed, premium):
    expires = T0 - GRACE_PERIOD - elapsed
    assert mk(start_premium=1_000_000).premium(expires) == premium


def test_negative_duration_rejected():
    with pytest.raises(ValueError):
        mk().price("alice", 0, -1)


@given(
    label=st.text(min_size=3, max_size=12),
    d1=st.integers(min_value=0, max_value=10 * 365 * DAY),
    d2=st.integers(min_value=0, max_value=10 * 365 * DAY),
)
def test_price_is_monotonic_in_duration(label, d1, d2):
    pricing = mk()
    lo, hi = sorted((d1, d2))
    assert pricing.price(label, 0, lo).total <= pricing.price(label, 0, hi).total


@given(elapsed=st.integers(min_value=0, max_value=30 * DAY), step=st.integers(min_value=0, max_value=DAY))
def test_premium_never_increases_over_time(elapsed, step):
    expires = T0 - GRACE_PERIOD - elapsed - step
    later = mk(start_premium=10**18, now=T0).premium(expires)
    earlier = mk(start_premium=10**18, now=T0 - step).premium(expires)
    assert later <= earlier
