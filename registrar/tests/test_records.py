# Copyright (c) Animica.
# SPDX-License-Identifier: MIT
import pytest

from registrar.adapters.memory import Directory
from registrar.errors import MalformedRecordCall, RecordNodeMismatch, ResolverCallFailed
from registrar.records import (SET_ADDR, SET_TEXT, RecordBinder, decode_record_call,
                               encode_record_call, encode_set_addr, encode_set_text,
                               record_node)
from registrar.utils.hash import namehash, selector

NODE = namehash("alice.eth")
ADDR = b"\xa1" * 20


def test_layout_puts_node_after_selector():
    payload = encode_set_addr(NODE, ADDR)
    assert payload[:4] == selector(SET_ADDR)
    assert payload[4:36] == NODE
    assert payload[36:] == bytes([20]) + ADDR
    assert record_node(payload) == NODE


def test_decode_text_call():
    call = decode_record_call(encode_set_text(NODE, "com.github", "alice"))
    assert call.signature == SET_TEXT
    assert call.node == NODE
    assert call.args == ("com.github", "alice")


@pytest.mark.parametrize(
    "payload",
    [
        b"",
        b"\xd5\xfa\x2b\x00" + b"\x00" * 31,                  # node truncated
        b"\xde\xad\xbe\xef" + NODE + bytes([20]) + ADDR,     # unknown selector
        encode_set_addr(NODE, ADDR)[:-1],                    # argument truncated
        encode_set_addr(NODE, ADDR) + b"\x00",               # trailing byte
        selector(SET_ADDR) + NODE + bytes([19]) + ADDR[:19],  # short address
        selector(SET_TEXT) + NODE + b"\x01\xff\x01a",        # invalid UTF-8 key
    ],
)
def test_decode_rejects_malformed(payload):
    with pytest.raises(MalformedRecordCall):
        decode_record_call(payload)


def test_encode_rejects_unknown_kind_and_arity():
    with pytest.raises(ValueError):
        encode_record_call("setABI(bytes32,uint256,bytes)", NODE, b"")
    with pytest.raises(ValueError):
        encode_record_call(SET_TEXT, NODE, "only-key")


class Recorder:
    def __init__(self, fail_on=None):
        self.calls = []
        self.fail_on = fail_on

    def apply_record(self, node, payload):
        if len(self.calls) == self.fail_on:
            raise ValueError("resolver refused")
        self.calls.append((node, payload))


def _binder(resolver=None):
    directory = Directory()
    if resolver is not None:
        directory.register(b"\x0e" * 20, resolver)
    return RecordBinder(directory)


def test_binder_forwards_in_order():
    rec = Recorder()
    calls = [encode_set_addr(NODE, ADDR), encode_set_text(NODE, "url", "x")]
    assert _binder(rec).bind(NODE, b"\x0e" * 20, calls) == 2
    assert rec.calls == [(NODE, calls[0]), (NODE, calls[1])]


def test_binder_checks_every_node_before_forwarding():
    rec = Recorder()
    calls = [encode_set_addr(NODE, ADDR), encode_set_addr(namehash("bob.eth"), ADDR)]
    with pytest.raises(RecordNodeMismatch) as ei:
        _binder(rec).bind(NODE, b"\x0e" * 20, calls)
    assert ei.value.data["got"] == "0x" + namehash("bob.eth").hex()
    assert rec.calls == []


def test_binder_short_payload():
    with pytest.raises(MalformedRecordCall) as ei:
        _binder(Recorder()).bind(NODE, b"\x0e" * 20, [b"\x00" * 10])
    assert ei.value.data == {"index": 0}


def test_binder_missing_resolver():
    with pytest.raises(ResolverCallFailed):
        _binder().bind(NODE, b"\x0e" * 20, [encode_set_addr(NODE, ADDR)])


def test_binder_wraps_resolver_failures():
    calls = [encode_set_addr(NODE, ADDR), encode_set_addr(NODE, ADDR)]
    with pytest.raises(ResolverCallFailed) as ei:
        _binder(Recorder(fail_on=1)).bind(NODE, b"\x0e" * 20, calls)
    assert ei.value.data["index"] == 1
    assert ei.value.reason == "resolver refused"


def test_binder_empty_batch_is_noop():
    assert _binder().bind(NODE, b"\x00" * 20, []) == 0
