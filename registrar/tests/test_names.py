# Copyright (c) Animica.
# SPDX-License-Identifier: MIT
import pytest

from registrar.utils.hash import labelhash, namehash, reverse_node, selector, strlen
from registrar.utils.bytes import to_hex


def test_namehash_vectors():
    assert namehash("") == b"\x00" * 32
    assert to_hex(namehash("eth")) == (
        "0x93cdeb708b7545dc668eb9280176169d1c33cfd8ed6f04690a0bcc88a93fc4ae"
    )
    assert to_hex(namehash("foo.eth")) == (
        "0xde9b09fd7c5f901e23a3f19fecc54828e9c848539801e86591bd9801b019f84f"
    )


def test_labelhash_vector():
    assert to_hex(labelhash("eth")) == (
        "0x4f5b812789fc606be1b3b16908db13fc7a9adf7ca72641f84d75b47069d3d7f0"
    )


def test_namehash_composes_labelhashes():
    from registrar.utils.hash import keccak256

    assert namehash("alice.eth") == keccak256(namehash("eth") + labelhash("alice"))


@pytest.mark.parametrize(
    "sig,expected",
    [
        ("setAddr(bytes32,address)", "0xd5fa2b00"),
        ("setText(bytes32,string,string)", "0x10f13a8c"),
        ("setContenthash(bytes32,bytes)", "0x304e6ade"),
    ],
)
def test_record_selectors(sig, expected):
    assert to_hex(selector(sig)) == expected


@pytest.mark.parametrize(
    "label,length",
    [
        ("", 0),
        ("abc", 3),
        ("alice", 5),
        ("你好吗", 3),
        ("💩💩", 2),
        ("é", 1),
    ],
)
def test_strlen_counts_characters(label, length):
    assert strlen(label) == length


@pytest.mark.parametrize(
    "label,valid",
    [
        ("", False),
        ("ab", False),
        ("abc", True),
        ("你好", False),
        ("你好吗", True),
        ("💩💩", False),
        ("💩💩💩", True),
    ],
)
def test_valid_label_table(controller, label, valid):
    assert controller.valid(label) is valid


def test_reverse_node_uses_lowercase_hex():
    addr = bytes.fromhex("AB" * 20)
    assert reverse_node(addr) == namehash("ab" * 20 + ".addr.reverse")
