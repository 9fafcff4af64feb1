# Copyright (c) Animica.
# SPDX-License-Identifier: MIT
"""Transactional state: the write journal and the event sinks it flushes into."""

from __future__ import annotations

from .events import (EventRecord, EventSink, InMemoryEventSink, JsonlEventSink,
                     NullEventSink)
from .journal import Journal

__all__ = [
    "Journal",
    "EventRecord",
    "EventSink",
    "InMemoryEventSink",
    "JsonlEventSink",
    "NullEventSink",
]
