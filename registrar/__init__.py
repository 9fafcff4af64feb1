# Copyright (c) Animica.
# SPDX-License-Identifier: MIT
"""
Name registrar controller package.

Implements the commit–reveal registration protocol for a hierarchical name
ledger: commitments, pricing glue, registration/renewal, record binding at
registration time and the pull-payment fee ledger.

Only light, stable exports are surfaced here to avoid import cycles; the
controller lives in `registrar.controller` and the wired-up service in
`registrar.service`.
"""

from __future__ import annotations

from .version import __version__

__all__ = ["__version__"]
