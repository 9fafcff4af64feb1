# Copyright (c) Animica.
# SPDX-License-Identifier: MIT
"""
registrar.utils.time
====================

Clocks for the registrar. Every state-mutating operation reads time exactly
once: the controller *pins* a timestamp on a :class:`BlockClock` for the
duration of the operation, and collaborators sharing that clock observe the
same "block time" until the pin is released.

Clocks
------
- :class:`SystemClock`  — wall clock, integer seconds, never moves backwards.
- :class:`ManualClock`  — explicit time for tests and devnets (`advance`, `set`).
- :class:`BlockClock`   — wraps a source clock and supports nested pinning.

Time is never caller-suppliable: RPC/CLI surfaces take no timestamp arguments.
"""

from __future__ import annotations

import threading
import time
from contextlib import contextmanager
from typing import Iterator, List, Protocol, runtime_checkable

__all__ = [
    "Clock",
    "SystemClock",
    "ManualClock",
    "BlockClock",
]


@runtime_checkable
class Clock(Protocol):
    def now(self) -> int:
        """Current time in integer UNIX seconds."""
        ...


class SystemClock:
    """Wall clock that clamps to the highest value it has returned."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._last = 0

    def now(self) -> int:
        t = int(time.time())
        with self._lock:
            if t < self._last:
                t = self._last
            self._last = t
        return t


class ManualClock:
    """Deterministic clock; only moves when told to."""

    def __init__(self, start: int = 1_700_000_000) -> None:
        if start < 0:
            raise ValueError("start must be non-negative")
        self._now = int(start)

    def now(self) -> int:
        return self._now

    def advance(self, seconds: int) -> int:
        if seconds < 0:
            raise ValueError("clock cannot move backwards")
        self._now += int(seconds)
        return self._now

    def set(self, ts: int) -> None:
        if ts < self._now:
            raise ValueError("clock cannot move backwards")
        self._now = int(ts)


class BlockClock:
    """
    Source clock plus a pin stack.

    While pinned, :meth:`now` returns the pinned timestamp. Nested pins (a
    re-entrant operation started from inside another) reuse the outer value so
    an operation and everything it triggers share one timestamp.
    """

    def __init__(self, source: Clock) -> None:
        self._source = source
        self._local = threading.local()

    @property
    def source(self) -> Clock:
        return self._source

    def _stack(self) -> List[int]:
        st = getattr(self._local, "stack", None)
        if st is None:
            st = []
            self._local.stack = st
        return st

    def now(self) -> int:
        st = self._stack()
        if st:
            return st[-1]
        return self._source.now()

    @contextmanager
    def pinned(self) -> Iterator[int]:
        st = self._stack()
        ts = st[-1] if st else self._source.now()
        st.append(ts)
        try:
            yield ts
        finally:
            st.pop()
