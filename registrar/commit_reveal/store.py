# Copyright (c) Animica.
# SPDX-License-Identifier: MIT
"""
Commitment store and reveal-window enforcement.

A commitment moves through:

    Unsubmitted --commit--> Committed --(min_age)--> Revealable --consume--> Consumed
                                      \\----------------(max_age)-------> Stale

Windows are relative to the acceptance timestamp ``t``:

    [t, t + min_age)          too new
    [t + min_age, t + max_age) revealable
    [t + max_age, ...)         stale (inert, never purged)

Entries live in the journal under ``rc:c:<hash>`` as a big-endian u64. All
helpers are time-passive: the caller passes the operation's pinned ``now``.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

from ..errors import (CommitmentNotFound, CommitmentTooNew, CommitmentTooOld,
                      DurationTooShort, InvalidName, NameUnavailable,
                      UnexpiredCommitmentExists)
from ..state.journal import Journal
from ..store import keys
from ..utils.bytes import bytes_to_u64, ensure_len, to_hex, u64_to_bytes

logger = logging.getLogger(__name__)

NamePredicate = Callable[[str], bool]


class CommitmentStore:
    """
    Map commitment hash → acceptance timestamp over the shared journal.

    Parameters
    ----------
    journal : Journal
    min_age, max_age : int
        Reveal window bounds in seconds (``0 <= min_age < max_age``).
    min_duration : int
        Registration duration floor checked on consumption.
    valid, available : callables
        Name predicates consulted before the entry is looked at.
    """

    __slots__ = ("_j", "min_age", "max_age", "min_duration", "_valid", "_available")

    def __init__(
        self,
        journal: Journal,
        *,
        min_age: int,
        max_age: int,
        min_duration: int,
        valid: NamePredicate,
        available: NamePredicate,
    ) -> None:
        if min_age < 0 or max_age <= min_age:
            raise ValueError("commitment ages must satisfy 0 <= min_age < max_age")
        self._j = journal
        self.min_age = int(min_age)
        self.max_age = int(max_age)
        self.min_duration = int(min_duration)
        self._valid = valid
        self._available = available

    def get(self, commitment: bytes) -> Optional[int]:
        raw = self._j.get(keys.commitment(ensure_len(commitment, 32, name="commitment")))
        return None if raw is None else bytes_to_u64(raw)

    def commit(self, commitment: bytes, now: int) -> None:
        """Record ``now`` for a commitment unless a live entry already holds it."""
        commitment = ensure_len(commitment, 32, name="commitment")
        accepted_at = self.get(commitment)
        if accepted_at is not None and accepted_at + self.max_age >= now:
            raise UnexpiredCommitmentExists(commitment=to_hex(commitment), accepted_at=accepted_at)
        self._j.put(keys.commitment(commitment), u64_to_bytes(now))

    def consume(self, name: str, duration: int, commitment: bytes, now: int) -> None:
        """
        Validate and delete a commitment for a registration of ``name``.

        The entry is deleted before the duration floor is checked; callers run
        this inside its own journal checkpoint so a failure leaves no trace.
        """
        commitment = ensure_len(commitment, 32, name="commitment")
        if not self._valid(name):
            raise InvalidName(name)
        if not self._available(name):
            raise NameUnavailable(name)

        hexc = to_hex(commitment)
        accepted_at = self.get(commitment)
        if accepted_at is None:
            raise CommitmentNotFound(commitment=hexc)
        if accepted_at + self.min_age > now:
            raise CommitmentTooNew(commitment=hexc, now=now, reveal_open=accepted_at + self.min_age)
        if accepted_at + self.max_age <= now:
            raise CommitmentTooOld(commitment=hexc, now=now, expired_at=accepted_at + self.max_age)

        self._j.delete(keys.commitment(commitment))

        if duration < self.min_duration:
            raise DurationTooShort(duration=duration, minimum=self.min_duration)
        logger.debug("commitment consumed", extra={"commitment": hexc, "label": name})


__all__ = ["CommitmentStore"]
