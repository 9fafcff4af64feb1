# Copyright (c) Animica.
# SPDX-License-Identifier: MIT
"""
registrar.state.events — pluggable event sinks.

Registrar events (NameRegistered, NameRenewed, ReferrerReceived,
ReferralFeeUpdated) are emitted into the journal while an operation runs and
only reach a sink once the operation has landed. A sink assigns each record a
strictly increasing sequence number in arrival order.

Backends
--------
- InMemoryEventSink: keeps every record in RAM; tests and devnets.
- JsonlEventSink: append-only JSONL file; `flush()` fsyncs.
- NullEventSink: drops everything.
"""

from __future__ import annotations

import json
import logging
import os
import threading
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Protocol, runtime_checkable

from ..types.events import RegistrarEvent

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EventRecord:
    """
    A landed event.

    Fields
    ------
    seq : int
        0-based position in the sink, in landing order.
    timestamp : int
        Block time of the operation that emitted the event.
    event : str
        Stable event name, e.g. "NameRegistered".
    args : dict
        JSON-safe event arguments (hex strings for bytes).
    """

    seq: int
    timestamp: int
    event: str
    args: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {"seq": self.seq, "timestamp": self.timestamp, "event": self.event, "args": dict(self.args)}


@runtime_checkable
class EventSink(Protocol):
    def append(self, event: RegistrarEvent, *, timestamp: int) -> EventRecord:
        """Store one event; returns the stored record."""

    def get_logs(
        self,
        *,
        event: Optional[str] = None,
        from_seq: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> Iterable[EventRecord]:
        """Iterate matching records in ascending seq order."""

    def flush(self) -> None:
        """Force persistence, if applicable."""

    def close(self) -> None:
        """Release resources."""


def _matches(rec: EventRecord, event: Optional[str], from_seq: Optional[int]) -> bool:
    if event is not None and rec.event != event:
        return False
    if from_seq is not None and rec.seq < from_seq:
        return False
    return True


def _take(records: Iterable[EventRecord], event: Optional[str], from_seq: Optional[int],
          limit: Optional[int]) -> List[EventRecord]:
    out: List[EventRecord] = []
    for rec in records:
        if limit is not None and len(out) >= limit:
            break
        if _matches(rec, event, from_seq):
            out.append(rec)
    return out


class InMemoryEventSink:
    """Thread-safe in-memory sink."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._records: List[EventRecord] = []

    def append(self, event: RegistrarEvent, *, timestamp: int) -> EventRecord:
        with self._lock:
            rec = EventRecord(
                seq=len(self._records),
                timestamp=int(timestamp),
                event=event.event_name,
                args=event.to_dict(),
            )
            self._records.append(rec)
        return rec

    def get_logs(
        self,
        *,
        event: Optional[str] = None,
        from_seq: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> Iterable[EventRecord]:
        with self._lock:
            return _take(list(self._records), event, from_seq, limit)

    def flush(self) -> None:
        return

    def close(self) -> None:
        with self._lock:
            self._records.clear()

    def __len__(self) -> int:
        return len(self._records)


class JsonlEventSink:
    """
    Append-only JSONL sink; one EventRecord per line:

        {"seq":0,"timestamp":1700000000,"event":"NameRegistered","args":{...}}

    Reopening a file continues the sequence after the last stored record.
    """

    def __init__(self, path: str) -> None:
        self._path = path
        os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
        self._fh = open(path, "a+", encoding="utf-8", buffering=1)
        self._lock = threading.RLock()
        self._next_seq = sum(1 for _ in self._scan())

    @property
    def path(self) -> str:
        return self._path

    def _scan(self) -> Iterable[EventRecord]:
        self._fh.flush()
        self._fh.seek(0)
        for line in self._fh.readlines():
            if not line.strip():
                continue
            try:
                obj = json.loads(line)
                yield EventRecord(
                    seq=int(obj["seq"]),
                    timestamp=int(obj["timestamp"]),
                    event=str(obj["event"]),
                    args=dict(obj.get("args") or {}),
                )
            except (ValueError, KeyError, TypeError) as e:
                logger.warning("skipping malformed event line: %s (%r)", line[:120], e)

    def append(self, event: RegistrarEvent, *, timestamp: int) -> EventRecord:
        with self._lock:
            rec = EventRecord(
                seq=self._next_seq,
                timestamp=int(timestamp),
                event=event.event_name,
                args=event.to_dict(),
            )
            self._fh.seek(0, os.SEEK_END)
            self._fh.write(json.dumps(rec.to_dict(), separators=(",", ":")) + "\n")
            self._next_seq += 1
        return rec

    def get_logs(
        self,
        *,
        event: Optional[str] = None,
        from_seq: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> Iterable[EventRecord]:
        with self._lock:
            return _take(list(self._scan()), event, from_seq, limit)

    def flush(self) -> None:
        with self._lock:
            self._fh.flush()
            os.fsync(self._fh.fileno())

    def close(self) -> None:
        with self._lock:
            if not self._fh.closed:
                self._fh.flush()
                self._fh.close()


class NullEventSink:
    """A sink that drops everything."""

    def __init__(self) -> None:
        self._seq = 0

    def append(self, event: RegistrarEvent, *, timestamp: int) -> EventRecord:
        rec = EventRecord(seq=self._seq, timestamp=int(timestamp), event=event.event_name,
                          args=event.to_dict())
        self._seq += 1
        return rec

    def get_logs(
        self,
        *,
        event: Optional[str] = None,
        from_seq: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> Iterable[EventRecord]:
        return []

    def flush(self) -> None:
        return

    def close(self) -> None:
        return


__all__ = [
    "EventRecord",
    "EventSink",
    "InMemoryEventSink",
    "JsonlEventSink",
    "NullEventSink",
]
