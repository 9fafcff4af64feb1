# Copyright (c) Animica.
# SPDX-License-Identifier: MIT
import pytest

from registrar.commit_reveal.commit import commitment_preimage, make_commitment
from registrar.errors import (CommitmentNotFound, CommitmentTooNew, CommitmentTooOld,
                              DurationTooShort, InvalidName, NameUnavailable,
                              ResolverRequired, UnexpiredCommitmentExists)
from registrar.records import encode_set_addr
from registrar.utils.hash import namehash

from .conftest import ALICE, BOB, START, YEAR, commit_and_wait, counter, intent_for


def test_commitment_binds_every_field():
    base = intent_for("alice")
    variants = [
        intent_for("alicf"),
        intent_for("alice", owner=BOB),
        intent_for("alice", duration=YEAR + 1),
        intent_for("alice", secret=b"\x22" * 32),
        intent_for("alice", resolver=b"\x01" * 20),
        intent_for("alice", reverse_record=True),
        intent_for("alice", fuses=1),
        intent_for("alice", wrapper_expiry=1),
        intent_for("alice", resolver=b"\x01" * 20,
                   data=[encode_set_addr(namehash("alice.eth"), ALICE)]),
    ]
    digests = {make_commitment(base)} | {make_commitment(v) for v in variants}
    assert len(digests) == len(variants) + 1
    assert make_commitment(base) == make_commitment(intent_for("alice"))


def test_record_data_is_length_prefixed():
    a = intent_for("alice", resolver=b"\x01" * 20, data=[b"\x01\x02", b"\x03"])
    b = intent_for("alice", resolver=b"\x01" * 20, data=[b"\x01", b"\x02\x03"])
    assert commitment_preimage(a) != commitment_preimage(b)


def test_data_with_null_resolver_is_rejected(controller):
    with pytest.raises(ResolverRequired):
        controller.make_commitment("alice", ALICE, YEAR, b"\x11" * 32, None, [b"\x00" * 36])


def test_commit_records_block_time(controller):
    h = make_commitment(intent_for("alice"))
    assert controller.commit(h) == START
    assert controller.commitments(h) == START
    assert controller.commitments(b"\x00" * 32) is None


@pytest.mark.parametrize("offset,accepted", [(0, False), (86_400, False), (86_401, True)])
def test_recommit_only_after_max_age(service, clock, metrics, offset, accepted):
    c = service.controller
    h = make_commitment(intent_for("alice"))
    c.commit(h)
    clock.advance(offset)
    if accepted:
        assert c.commit(h) == START + offset
        assert c.commitments(h) == START + offset
    else:
        with pytest.raises(UnexpiredCommitmentExists):
            c.commit(h)
        assert c.commitments(h) == START
        assert counter(metrics, "commits", "commitment") == 1


def test_reveal_too_early(service, clock):
    c = service.controller
    intent = intent_for("alice")
    c.commit(make_commitment(intent))
    clock.advance(c.min_commitment_age - 1)
    with pytest.raises(CommitmentTooNew):
        c.register(ALICE, intent, c.rent_price("alice", YEAR).total)


def test_reveal_window_opens_at_min_age(service, clock):
    c = service.controller
    intent = intent_for("alice")
    commit_and_wait(service, clock, intent)
    res = c.register(ALICE, intent, c.rent_price("alice", YEAR).total)
    assert res.name == "alice.eth"


def test_reveal_too_late(service, clock):
    c = service.controller
    intent = intent_for("alice")
    h = make_commitment(intent)
    c.commit(h)
    clock.advance(c.max_commitment_age)
    with pytest.raises(CommitmentTooOld):
        c.register(ALICE, intent, c.rent_price("alice", YEAR).total)
    # stale entries are inert, not purged
    assert c.commitments(h) == START


def test_reveal_without_commit(controller):
    with pytest.raises(CommitmentNotFound):
        controller.register(ALICE, intent_for("alice"), 10**10)


def test_invalid_name_checked_before_commitment(controller):
    with pytest.raises(InvalidName) as ei:
        controller.register(ALICE, intent_for("ab"), 10**10)
    assert isinstance(ei.value, NameUnavailable)


def test_duration_floor_leaves_commitment_in_place(service, clock):
    c = service.controller
    intent = intent_for("alice", duration=c.min_registration_duration - 1)
    h = commit_and_wait(service, clock, intent)
    with pytest.raises(DurationTooShort):
        c.register(ALICE, intent, 10**10)
    assert c.commitments(h) == START
    assert c.available("alice")
