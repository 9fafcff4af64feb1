# Copyright (c) Animica.
# SPDX-License-Identifier: MIT
"""
registrar.logging
-----------------

Process-level logging setup for the registrar service and CLI:

- JSON or concise text output on the root logger
- context-local fields via `contextvars` (trace_id, component, method)
- bytes rendered as 0x-hex in structured output

Modules log through ``logging.getLogger(__name__)``; this module only decides
how records are rendered and which context rides along.

Usage
-----
    from registrar import logging as rlog

    rlog.configure(level="INFO", json=False)
    with rlog.trace_scope():
        rlog.bind(component="rpc", method="registrar.register")
        ...
"""

from __future__ import annotations

import datetime as _dt
import json as _json
import logging
import os
import sys
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, Dict, Iterator, Optional, TextIO, Union

_LOG_CONTEXT: ContextVar[Dict[str, Any]] = ContextVar("_REGISTRAR_LOG_CONTEXT", default={})

DEFAULT_CONTEXT_KEYS = ("trace_id", "component", "method")

_RESERVED = frozenset(
    (
        "name", "msg", "args", "levelname", "levelno", "pathname", "filename",
        "module", "exc_info", "exc_text", "stack_info", "lineno", "funcName",
        "created", "msecs", "relativeCreated", "thread", "threadName",
        "processName", "process", "taskName", "message", "asctime",
    )
)


# ----------------------------
# Context
# ----------------------------


def context() -> Dict[str, Any]:
    """Copy of the active logging context."""
    return dict(_LOG_CONTEXT.get())


def bind(**fields: Any) -> None:
    cur = dict(_LOG_CONTEXT.get())
    cur.update({k: _coerce_value(v) for k, v in fields.items()})
    _LOG_CONTEXT.set(cur)


def unbind(*keys: str) -> None:
    cur = dict(_LOG_CONTEXT.get())
    for k in keys:
        cur.pop(k, None)
    _LOG_CONTEXT.set(cur)


def short_uuid() -> str:
    return uuid.uuid4().hex[:12]


@contextmanager
def trace_scope(trace_id: Optional[str] = None) -> Iterator[str]:
    """Ensure a trace_id for the scope; restores the prior context on exit."""
    prev = dict(_LOG_CONTEXT.get())
    tid = trace_id or short_uuid()
    try:
        bind(trace_id=tid)
        yield tid
    finally:
        _LOG_CONTEXT.set(prev)


# ----------------------------
# Formatters
# ----------------------------


def _coerce_value(v: Any) -> Any:
    if v is None or isinstance(v, (bool, int, float, str, list, dict)):
        return v
    if isinstance(v, (bytes, bytearray, memoryview)):
        return "0x" + bytes(v).hex()
    return str(v)


def _utcnow_iso() -> str:
    return _dt.datetime.now(_dt.timezone.utc).isoformat(timespec="milliseconds")


def _extras(record: logging.LogRecord) -> Dict[str, Any]:
    return {
        k: _coerce_value(v)
        for k, v in record.__dict__.items()
        if not k.startswith("_") and k not in _RESERVED
    }


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "ts": _utcnow_iso(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        payload.update(context())
        for k, v in _extras(record).items():
            payload.setdefault(k, v)
        if record.exc_info:
            payload["err"] = self.formatException(record.exc_info)
        return _json.dumps(payload, separators=(",", ":"), default=str)


class TextFormatter(logging.Formatter):
    """
    One-liner:
      2025-01-05T12:34:56.789+00:00 | INFO  | registrar.controller | trace_id=abc123 | name registered name=alice.eth
    """

    def format(self, record: logging.LogRecord) -> str:
        ctx = context()
        ctx_str = " ".join(f"{k}={ctx[k]}" for k in DEFAULT_CONTEXT_KEYS if ctx.get(k) is not None)
        extras = " ".join(f"{k}={v}" for k, v in _extras(record).items() if k not in ctx)
        line = f"{_utcnow_iso()} | {record.levelname:<5} | {record.name}"
        if ctx_str:
            line += f" | {ctx_str}"
        line += f" | {record.getMessage()}"
        if extras:
            line += f" {extras}"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


# ----------------------------
# Setup
# ----------------------------


def _coerce_level(level: Union[str, int]) -> int:
    if isinstance(level, int):
        return level
    value = logging.getLevelName(str(level).upper())
    if not isinstance(value, int):
        raise ValueError(f"unknown log level: {level!r}")
    return value


def configure(
    *,
    level: Union[str, int] = "INFO",
    json: Optional[bool] = None,
    stream: TextIO = sys.stderr,
) -> None:
    """
    Configure the root logger with one console handler.

    ``json=None`` picks JSON when ``REGISTRAR_LOG_FORMAT=json`` or the stream
    is not a TTY.
    """
    if json is None:
        fmt = os.environ.get("REGISTRAR_LOG_FORMAT", "").lower()
        if fmt in ("json", "text"):
            json = fmt == "json"
        else:
            try:
                json = not stream.isatty()
            except (AttributeError, ValueError):
                json = True

    root = logging.getLogger()
    root.setLevel(_coerce_level(level))
    for h in list(root.handlers):
        root.removeHandler(h)
    handler = logging.StreamHandler(stream)
    handler.setFormatter(JSONFormatter() if json else TextFormatter())
    root.addHandler(handler)

    for noisy in ("urllib3", "asyncio"):
        logging.getLogger(noisy).setLevel(max(_coerce_level(level), logging.WARNING))


__all__ = [
    "configure",
    "bind",
    "unbind",
    "context",
    "trace_scope",
    "short_uuid",
    "JSONFormatter",
    "TextFormatter",
]
