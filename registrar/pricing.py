# Copyright (c) Animica.
# SPDX-License-Identifier: MIT
"""
registrar.pricing — rent quotes.

The controller asks a :class:`PricingGateway` for ``(base, premium)`` given a
label, the label's current expiry (0 when never registered) and the requested
duration. Quotes are side-effect free.

:class:`StablePricing` is the reference gateway:

- **base**: per-second rent picked by label length. ``rent_prices[i]`` is the
  rate for labels of ``i + 1`` characters; the last entry covers every longer
  label. Length is counted with :func:`registrar.utils.hash.strlen`.
- **premium**: for a label whose registration lapsed, ``start_premium`` halves
  every ``premium_half_life`` seconds from the moment the grace period ends,
  interpolated linearly inside each half-life, and drops to zero once
  ``premium_duration`` seconds have passed.
"""

from __future__ import annotations

from typing import Protocol, Sequence, Tuple, runtime_checkable

from .constants import DAY, GRACE_PERIOD
from .types.core import Price
from .utils.hash import strlen
from .utils.time import Clock


@runtime_checkable
class PricingGateway(Protocol):
    def price(self, name: str, expires: int, duration: int) -> Price:
        """Quote (base, premium) for renting ``name`` for ``duration`` seconds."""
        ...


class StablePricing:
    __slots__ = ("rent_prices", "start_premium", "premium_half_life", "premium_duration",
                 "grace_period", "_clock")

    def __init__(
        self,
        rent_prices: Sequence[int],
        clock: Clock,
        *,
        start_premium: int = 0,
        premium_half_life: int = DAY,
        premium_duration: int = 21 * DAY,
        grace_period: int = GRACE_PERIOD,
    ) -> None:
        prices: Tuple[int, ...] = tuple(int(p) for p in rent_prices)
        if not prices:
            raise ValueError("rent_prices must not be empty")
        if any(p < 0 for p in prices):
            raise ValueError("rent_prices must be non-negative")
        if start_premium < 0:
            raise ValueError("start_premium must be non-negative")
        if premium_half_life <= 0 or premium_duration < 0:
            raise ValueError("premium timing must be positive")
        self.rent_prices = prices
        self.start_premium = int(start_premium)
        self.premium_half_life = int(premium_half_life)
        self.premium_duration = int(premium_duration)
        self.grace_period = int(grace_period)
        self._clock = clock

    def rent_rate(self, name: str) -> int:
        """Per-second rent for a label."""
        n = strlen(name)
        if n == 0:
            return self.rent_prices[0]
        return self.rent_prices[min(n, len(self.rent_prices)) - 1]

    def premium(self, expires: int) -> int:
        if expires <= 0 or self.start_premium == 0:
            return 0
        released = expires + self.grace_period
        now = self._clock.now()
        if now < released:
            return 0
        elapsed = now - released
        if elapsed >= self.premium_duration:
            return 0
        halvings, rem = divmod(elapsed, self.premium_half_life)
        p = self.start_premium >> halvings
        return p - (p * rem) // (2 * self.premium_half_life)

    def price(self, name: str, expires: int, duration: int) -> Price:
        if duration < 0:
            raise ValueError("duration must be non-negative")
        return Price(base=self.rent_rate(name) * int(duration), premium=self.premium(int(expires)))


__all__ = ["PricingGateway", "StablePricing"]
