# Copyright (c) Animica.
# SPDX-License-Identifier: MIT
"""
registrar.commit_reveal
=======================

Commit–reveal front-running protection for registrations.

Flow (block-time driven):
    1) Build a commitment over the full intent plus a secret and submit it.
    2) Wait at least ``min_age`` seconds.
    3) Register with the plaintext intent before ``max_age`` elapses; the
       matching commitment is consumed exactly once.

Submodules:
    - commit.py : commitment construction (`make_commitment`).
    - store.py  : `CommitmentStore`, window checks and single-use consumption.
"""

from __future__ import annotations

from .commit import build_intent, commitment_preimage, make_commitment
from .store import CommitmentStore

__all__ = [
    "build_intent",
    "commitment_preimage",
    "make_commitment",
    "CommitmentStore",
]
