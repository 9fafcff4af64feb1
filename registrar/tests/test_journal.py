# Copyright (c) Animica.
# SPDX-License-Identifier: MIT
import pytest

from registrar.errors import StorageError
from registrar.state.events import InMemoryEventSink
from registrar.state.journal import Journal
from registrar.store import MemoryKeyValue
from registrar.types.events import ReferralFeeUpdated


def mk():
    kv = MemoryKeyValue()
    sink = InMemoryEventSink()
    return Journal(kv, sink), kv, sink


def test_write_outside_transaction_is_rejected():
    j, _, _ = mk()
    with pytest.raises(StorageError):
        j.put(b"k", b"v")
    with pytest.raises(StorageError):
        j.emit(ReferralFeeUpdated(previous=0, value=1))


def test_commit_lands_writes_and_events():
    j, kv, sink = mk()
    with j.transaction(timestamp=123):
        j.put(b"k", b"v")
        j.emit(ReferralFeeUpdated(previous=0, value=5))
        assert kv.get(b"k") is None
        assert len(sink) == 0
        assert j.get(b"k") == b"v"
    assert kv.get(b"k") == b"v"
    [rec] = sink.get_logs()
    assert rec.event == "ReferralFeeUpdated"
    assert rec.timestamp == 123
    assert rec.args == {"previous": 0, "value": 5}


def test_exception_reverts_everything():
    j, kv, sink = mk()
    with pytest.raises(RuntimeError):
        with j.transaction(timestamp=1):
            j.put(b"k", b"v")
            j.emit(ReferralFeeUpdated(previous=0, value=5))
            raise RuntimeError("boom")
    assert kv.get(b"k") is None
    assert len(sink) == 0
    assert j.depth() == 0


def test_inner_failure_keeps_outer_writes():
    j, kv, _ = mk()
    with j.transaction(timestamp=1):
        j.put(b"a", b"1")
        with pytest.raises(ValueError):
            with j.transaction():
                j.put(b"b", b"2")
                raise ValueError
        assert j.get(b"b") is None
    assert kv.get(b"a") == b"1"
    assert kv.get(b"b") is None


def test_nested_commit_merges_into_parent_until_outer_lands():
    j, kv, sink = mk()
    with pytest.raises(KeyError):
        with j.transaction(timestamp=7):
            with j.transaction():
                j.put(b"x", b"1")
                j.emit(ReferralFeeUpdated(previous=0, value=1))
            assert j.get(b"x") == b"1"
            raise KeyError("outer fails")
    assert kv.get(b"x") is None
    assert len(sink) == 0


def test_nested_checkpoint_inherits_timestamp():
    j, _, sink = mk()
    with j.transaction(timestamp=42):
        with j.transaction():
            j.emit(ReferralFeeUpdated(previous=0, value=1))
    assert [r.timestamp for r in sink.get_logs()] == [42]


def test_delete_and_iter_prefix_merge_layers():
    kv = MemoryKeyValue({b"p:1": b"a", b"p:2": b"b", b"q:1": b"c"})
    j = Journal(kv)
    with j.transaction():
        j.delete(b"p:1")
        j.put(b"p:3", b"d")
        assert not j.has(b"p:1")
        assert j.iter_prefix(b"p:") == [(b"p:2", b"b"), (b"p:3", b"d")]
    assert kv.get(b"p:1") is None
    assert j.iter_prefix(b"p:") == [(b"p:2", b"b"), (b"p:3", b"d")]


def test_commit_without_transaction_raises():
    j, _, _ = mk()
    with pytest.raises(StorageError):
        j.commit()
    with pytest.raises(StorageError):
        j.revert()
