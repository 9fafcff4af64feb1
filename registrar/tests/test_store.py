# Copyright (c) Animica.
# SPDX-License-Identifier: MIT
import json

import pytest

from registrar.state.events import JsonlEventSink
from registrar.store import MemoryKeyValue, open_store
from registrar.store.sqlite import SQLiteKeyValue
from registrar.types.events import NameRenewed, ReferralFeeUpdated


def test_open_store_uris(tmp_path):
    assert isinstance(open_store("memory://"), MemoryKeyValue)
    kv = open_store(f"sqlite://{tmp_path}/state.db")
    try:
        assert isinstance(kv, SQLiteKeyValue)
        assert kv.path == f"{tmp_path}/state.db"
    finally:
        kv.close()
    with pytest.raises(ValueError):
        open_store("redis://localhost")


def test_sqlite_roundtrip_and_prefix_order(tmp_path):
    path = str(tmp_path / "kv.db")
    with SQLiteKeyValue(path) as kv:
        with kv.transaction():
            kv.put(b"rc:c:\x02", b"two")
            kv.put(b"rc:c:\x01", b"one")
            kv.put(b"rc:b:\x01", b"other")
        assert kv.get(b"rc:c:\x01") == b"one"
        assert kv.has(b"rc:c:\x02")
        assert list(kv.iter_prefix(b"rc:c:")) == [(b"rc:c:\x01", b"one"), (b"rc:c:\x02", b"two")]
        with kv.transaction():
            kv.delete(b"rc:c:\x01")
        assert kv.get(b"rc:c:\x01") is None

    with SQLiteKeyValue(path) as again:
        assert again.get(b"rc:c:\x02") == b"two"


def test_sqlite_transaction_rolls_back(tmp_path):
    with SQLiteKeyValue(str(tmp_path / "kv.db")) as kv:
        with pytest.raises(RuntimeError):
            with kv.transaction():
                kv.put(b"k", b"v")
                raise RuntimeError("abort")
        assert kv.get(b"k") is None


def test_memory_transaction_restores_snapshot():
    kv = MemoryKeyValue({b"k": b"old"})
    with pytest.raises(ValueError):
        with kv.transaction():
            kv.put(b"k", b"new")
            kv.put(b"k2", b"x")
            raise ValueError
    assert kv.get(b"k") == b"old"
    assert len(kv) == 1


def test_jsonl_sink_continues_sequence_and_filters(tmp_path):
    path = str(tmp_path / "events.jsonl")
    sink = JsonlEventSink(path)
    sink.append(ReferralFeeUpdated(previous=0, value=10), timestamp=1)
    sink.append(NameRenewed(name="alice", label_hash=b"\x01" * 32, cost=5, expires=9), timestamp=2)
    sink.flush()
    sink.close()

    reopened = JsonlEventSink(path)
    rec = reopened.append(ReferralFeeUpdated(previous=10, value=20), timestamp=3)
    assert rec.seq == 2
    assert [r.seq for r in reopened.get_logs(event="ReferralFeeUpdated")] == [0, 2]
    assert [r.event for r in reopened.get_logs(from_seq=1, limit=1)] == ["NameRenewed"]
    reopened.close()

    with open(path, encoding="utf-8") as f:
        lines = [json.loads(line) for line in f]
    assert lines[1]["args"]["labelHash"] == "0x" + "01" * 32


def test_jsonl_sink_skips_malformed_lines(tmp_path):
    path = tmp_path / "events.jsonl"
    path.write_text('not json\n{"seq":0,"timestamp":1,"event":"X","args":{}}\n', encoding="utf-8")
    sink = JsonlEventSink(str(path))
    assert [r.event for r in sink.get_logs()] == ["X"]
    sink.close()
