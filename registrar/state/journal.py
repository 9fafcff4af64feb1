# Copyright (c) Animica.
# SPDX-License-Identifier: MIT
"""
registrar.state.journal — single-writer write journal with nested checkpoints.

Every piece of registrar state (commitments, fee balances, the referral rate,
and the state of the in-memory collaborators) lives in one byte-keyed
:class:`~registrar.store.KeyValue`. The journal layers a stack of
copy-on-write overlays on top of it:

- Writes always target the top overlay; reads consult overlays from top to
  bottom and then the base.
- ``commit()`` merges the top overlay into its parent, or, when it is the
  outermost one, applies it to the base inside a single base transaction.
- ``revert()`` discards the top overlay.
- Events emitted while an overlay is open travel with that overlay and reach
  the event sink only when the outermost overlay lands. A revert drops writes
  and events together.
- Writes with no open overlay are rejected, so nothing reaches the base
  outside a transaction.

The journal owns a re-entrant lock. ``transaction()`` holds it for its whole
extent and reads take it too, so another thread never observes a half-built
overlay.

Intended usage
--------------
    j = Journal(MemoryKeyValue(), InMemoryEventSink())
    with j.transaction(timestamp=now):
        j.put(b"rc:b:" + addr, u256_to_bytes(100))
        j.emit(ReferrerReceived(referrer=addr, amount=100))
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Tuple

from ..errors import StorageError
from ..store import KeyValue
from ..types.events import RegistrarEvent
from .events import EventSink, NullEventSink

logger = logging.getLogger(__name__)


@dataclass
class _Overlay:
    # None marks a deletion.
    writes: Dict[bytes, Optional[bytes]] = field(default_factory=dict)
    events: List[Tuple[RegistrarEvent, int]] = field(default_factory=list)
    timestamp: int = 0


class Journal:
    """
    Copy-on-write journal over a KeyValue base.

    Parameters
    ----------
    base : KeyValue
        The persisted store.
    sink : EventSink, optional
        Where landed events go. Defaults to :class:`NullEventSink`.
    """

    def __init__(self, base: KeyValue, sink: Optional[EventSink] = None) -> None:
        self._base = base
        self._sink: EventSink = sink if sink is not None else NullEventSink()
        self._layers: List[_Overlay] = []
        self.lock = threading.RLock()

    @property
    def base(self) -> KeyValue:
        return self._base

    @property
    def sink(self) -> EventSink:
        return self._sink

    # ------------------------------------------------------------------ #
    # Checkpointing
    # ------------------------------------------------------------------ #

    def depth(self) -> int:
        """Number of open overlays (0 = no transaction)."""
        return len(self._layers)

    def begin(self, timestamp: Optional[int] = None) -> int:
        """Open a checkpoint. Nested checkpoints inherit the parent's timestamp."""
        if timestamp is None:
            timestamp = self._layers[-1].timestamp if self._layers else 0
        self._layers.append(_Overlay(timestamp=int(timestamp)))
        return len(self._layers)

    def commit(self) -> None:
        """Merge the top overlay into its parent, or land it on the base."""
        if not self._layers:
            raise StorageError("commit without an open transaction")
        top = self._layers.pop()
        if self._layers:
            parent = self._layers[-1]
            parent.writes.update(top.writes)
            parent.events.extend(top.events)
            return
        self._apply_to_base(top)

    def revert(self) -> None:
        """Discard the top overlay."""
        if not self._layers:
            raise StorageError("revert without an open transaction")
        self._layers.pop()

    @contextmanager
    def transaction(self, timestamp: Optional[int] = None) -> Iterator["Journal"]:
        """
        Run a block as one checkpoint: commit on normal exit, revert on any
        exception (which is re-raised).
        """
        with self.lock:
            self.begin(timestamp)
            try:
                yield self
            except BaseException:
                self.revert()
                raise
            else:
                self.commit()

    # ------------------------------------------------------------------ #
    # Reads
    # ------------------------------------------------------------------ #

    def get(self, key: bytes) -> Optional[bytes]:
        key = bytes(key)
        with self.lock:
            for layer in reversed(self._layers):
                if key in layer.writes:
                    return layer.writes[key]
            return self._base.get(key)

    def has(self, key: bytes) -> bool:
        return self.get(key) is not None

    def iter_prefix(self, prefix: bytes) -> List[Tuple[bytes, bytes]]:
        """Merged (key, value) view for a prefix, ascending by key."""
        prefix = bytes(prefix)
        with self.lock:
            merged: Dict[bytes, Optional[bytes]] = dict(self._base.iter_prefix(prefix))
            for layer in self._layers:
                for k, v in layer.writes.items():
                    if k.startswith(prefix):
                        merged[k] = v
        return [(k, v) for k, v in sorted(merged.items()) if v is not None]

    # ------------------------------------------------------------------ #
    # Writes
    # ------------------------------------------------------------------ #

    def _top(self) -> _Overlay:
        if not self._layers:
            raise StorageError("write outside of a transaction")
        return self._layers[-1]

    def put(self, key: bytes, value: bytes) -> None:
        if not isinstance(key, (bytes, bytearray)) or not isinstance(value, (bytes, bytearray)):
            raise TypeError("key and value must be bytes")
        with self.lock:
            self._top().writes[bytes(key)] = bytes(value)

    def delete(self, key: bytes) -> None:
        with self.lock:
            self._top().writes[bytes(key)] = None

    def emit(self, event: RegistrarEvent) -> None:
        """Buffer an event with the current checkpoint."""
        with self.lock:
            top = self._top()
            top.events.append((event, top.timestamp))

    # ------------------------------------------------------------------ #
    # Internal apply
    # ------------------------------------------------------------------ #

    def _apply_to_base(self, layer: _Overlay) -> None:
        with self._base.transaction():
            for k, v in layer.writes.items():
                if v is None:
                    self._base.delete(k)
                else:
                    self._base.put(k, v)
        logger.debug("journal landed %d writes, %d events", len(layer.writes), len(layer.events))
        if not layer.events:
            return
        for event, ts in layer.events:
            self._sink.append(event, timestamp=ts)
        self._sink.flush()


__all__ = ["Journal"]
