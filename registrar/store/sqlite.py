# Copyright (c) Animica.
# SPDX-License-Identifier: MIT
"""
SQLite-backed KeyValue store for the registrar.

Features
--------
- Byte-oriented KV table: (key BLOB PRIMARY KEY, value BLOB NOT NULL)
- Write transactions via `with kv.transaction(): ...` (BEGIN IMMEDIATE)
- Prefix iteration with range scans [prefix, next_prefix(prefix))
- WAL journal, synchronous=NORMAL

The journal applies each outermost registrar operation inside exactly one
`transaction()`, so a crash mid-apply leaves either the whole operation or
none of it on disk.

One connection is shared by the service. RPC handlers may run on worker
threads, so the connection is opened with ``check_same_thread=False`` and
every statement goes through an internal lock; ordering between operations is
the controller's job.
"""

from __future__ import annotations

import logging
import os
import sqlite3
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Generator, Iterable, List, Optional, Tuple

from ..errors import StorageError

logger = logging.getLogger(__name__)


def _ensure_dir(path: str) -> None:
    d = os.path.dirname(os.path.abspath(path))
    if d and not os.path.exists(d):
        os.makedirs(d, exist_ok=True)


def _apply_pragmas(conn: sqlite3.Connection) -> None:
    conn.execute("PRAGMA journal_mode=WAL;")
    conn.execute("PRAGMA synchronous=NORMAL;")
    conn.execute("PRAGMA temp_store=MEMORY;")


def _init_schema(conn: sqlite3.Connection) -> None:
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS kv (
            key   BLOB PRIMARY KEY,
            value BLOB NOT NULL
        );
        """
    )


def _next_prefix(prefix: bytes) -> Optional[bytes]:
    """
    Smallest byte-string strictly greater than every key starting with
    `prefix`, or None when no such bound exists (empty or all-0xFF prefix).
    """
    if not prefix:
        return None
    b = bytearray(prefix)
    for i in range(len(b) - 1, -1, -1):
        if b[i] != 0xFF:
            b[i] += 1
            return bytes(b[: i + 1])
    return None


@dataclass
class SQLiteKeyValue:
    """
    SQLite implementation of :class:`registrar.store.KeyValue`.

    >>> kv = SQLiteKeyValue("/tmp/registrar.db")
    >>> with kv.transaction():
    ...     kv.put(b"rc:c:abc", b"\\x00" * 8)
    >>> kv.get(b"rc:c:abc")
    b'\\x00\\x00\\x00\\x00\\x00\\x00\\x00\\x00'
    >>> kv.close()
    """

    path: str
    _lock: threading.RLock = field(default_factory=threading.RLock, init=False, repr=False)

    def __post_init__(self) -> None:
        _ensure_dir(self.path)
        try:
            # isolation_level=None -> autocommit; BEGIN/COMMIT are issued explicitly.
            self._conn = sqlite3.connect(
                self.path, isolation_level=None, timeout=30.0, check_same_thread=False
            )
            _apply_pragmas(self._conn)
            _init_schema(self._conn)
        except sqlite3.Error as e:
            raise StorageError(f"cannot open sqlite store: {e}", data={"path": self.path}) from e
        logger.debug("sqlite store opened", extra={"path": self.path})

    def __enter__(self) -> "SQLiteKeyValue":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # --- KV API --------------------------------------------------------------

    def put(self, key: bytes, value: bytes) -> None:
        if not isinstance(key, (bytes, bytearray)) or not isinstance(value, (bytes, bytearray)):
            raise TypeError("key and value must be bytes")
        with self._lock:
            self._conn.execute(
                "INSERT OR REPLACE INTO kv(key, value) VALUES(?, ?)", (bytes(key), bytes(value))
            )

    def get(self, key: bytes) -> Optional[bytes]:
        with self._lock:
            row = self._conn.execute("SELECT value FROM kv WHERE key = ?", (bytes(key),)).fetchone()
        return bytes(row[0]) if row else None

    def has(self, key: bytes) -> bool:
        with self._lock:
            row = self._conn.execute("SELECT 1 FROM kv WHERE key = ?", (bytes(key),)).fetchone()
        return row is not None

    def delete(self, key: bytes) -> None:
        with self._lock:
            self._conn.execute("DELETE FROM kv WHERE key = ?", (bytes(key),))

    def iter_prefix(self, prefix: bytes) -> Iterable[Tuple[bytes, bytes]]:
        """
        Iterate (key, value) for keys that start with `prefix`, ascending.

        Rows are fetched eagerly so callers may write while iterating.
        """
        upper = _next_prefix(prefix)
        if upper is not None:
            sql = "SELECT key, value FROM kv WHERE key >= ? AND key < ? ORDER BY key ASC"
            args: Tuple[bytes, ...] = (prefix, upper)
        else:
            sql = "SELECT key, value FROM kv WHERE key >= ? ORDER BY key ASC"
            args = (prefix,)

        with self._lock:
            rows: List[Tuple[bytes, bytes]] = [
                (bytes(k), bytes(v)) for k, v in self._conn.execute(sql, args)
            ]
        for k, v in rows:
            if not k.startswith(prefix):
                break
            yield k, v

    # --- Transactions --------------------------------------------------------

    @contextmanager
    def transaction(self) -> Generator[None, None, None]:
        """Write transaction (IMMEDIATE). Commits on success, rolls back on error."""
        with self._lock:
            self._conn.execute("BEGIN IMMEDIATE;")
            try:
                yield
            except BaseException:
                self._conn.execute("ROLLBACK;")
                raise
            else:
                try:
                    self._conn.execute("COMMIT;")
                except sqlite3.Error as e:
                    self._conn.execute("ROLLBACK;")
                    raise StorageError(f"commit failed: {e}", data={"path": self.path}) from e

    def close(self) -> None:
        with self._lock:
            self._conn.close()


__all__ = ["SQLiteKeyValue"]
