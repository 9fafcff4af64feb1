# Copyright (c) Animica.
# SPDX-License-Identifier: MIT
"""
registrar.store
===============

Byte-oriented key/value backends that hold the registrar's committed state
(commitments, balances, referral rate, and the state of the in-memory
collaborators). The journal in `registrar.state.journal` layers transactional
overlays on top of one of these.

Backends
--------
- :class:`MemoryKeyValue` — dict-backed, for tests and ephemeral devnets.
- :class:`registrar.store.sqlite.SQLiteKeyValue` — durable, WAL-mode SQLite.

:func:`open_store` picks one from a storage URI:
``memory://`` or ``sqlite:///absolute/or/relative/path.db``.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Dict, Iterable, Iterator, Optional, Protocol, Tuple


class KeyValue(Protocol):
    """Minimal byte-oriented KV interface.

    Namespaces are handled by the caller via prefixed keys, e.g.
    ``b"rc:c:" + commitment_hash``.
    """

    def get(self, key: bytes) -> Optional[bytes]:
        """Return value for key, or None if missing."""
        ...

    def put(self, key: bytes, value: bytes) -> None:
        """Insert or replace key with value."""
        ...

    def delete(self, key: bytes) -> None:
        """Remove key if present (no-op if absent)."""
        ...

    def has(self, key: bytes) -> bool:
        ...

    def iter_prefix(self, prefix: bytes) -> Iterable[Tuple[bytes, bytes]]:
        """Yield (key, value) pairs whose keys start with prefix, ascending by key."""
        ...

    def transaction(self):  # -> ContextManager[None]
        """All writes inside the context land together or not at all."""
        ...

    def close(self) -> None:
        ...


class MemoryKeyValue:
    """Dict-backed KeyValue. Transactions snapshot and restore on error."""

    def __init__(self, initial: Optional[Dict[bytes, bytes]] = None) -> None:
        self._data: Dict[bytes, bytes] = dict(initial or {})

    def get(self, key: bytes) -> Optional[bytes]:
        return self._data.get(bytes(key))

    def put(self, key: bytes, value: bytes) -> None:
        if not isinstance(key, (bytes, bytearray)) or not isinstance(value, (bytes, bytearray)):
            raise TypeError("key and value must be bytes")
        self._data[bytes(key)] = bytes(value)

    def delete(self, key: bytes) -> None:
        self._data.pop(bytes(key), None)

    def has(self, key: bytes) -> bool:
        return bytes(key) in self._data

    def iter_prefix(self, prefix: bytes) -> Iterable[Tuple[bytes, bytes]]:
        for k in sorted(k for k in self._data if k.startswith(prefix)):
            yield k, self._data[k]

    @contextmanager
    def transaction(self) -> Iterator[None]:
        snapshot = dict(self._data)
        try:
            yield
        except BaseException:
            self._data = snapshot
            raise

    def close(self) -> None:
        return

    def __len__(self) -> int:
        return len(self._data)


def open_store(uri: str) -> KeyValue:
    """Open a backend from a storage URI."""
    if uri in ("memory://", "memory:", "mem://"):
        return MemoryKeyValue()
    if uri.startswith("sqlite://"):
        from .sqlite import SQLiteKeyValue

        path = uri[len("sqlite://"):]
        # sqlite:///abs/path -> /abs/path ; sqlite://rel/path -> rel/path
        if path.startswith("//"):
            path = path[1:]
        if not path:
            raise ValueError("sqlite URI requires a path")
        return SQLiteKeyValue(path)
    raise ValueError(f"unsupported storage URI: {uri!r}")


__all__ = [
    "KeyValue",
    "MemoryKeyValue",
    "open_store",
]
