# Copyright (c) Animica.
# SPDX-License-Identifier: MIT
"""
Registrar — types package

  • core   — Price, RegistrationIntent, RegistrationResult, RenewalResult
  • events — NameRegistered, NameRenewed, ReferrerReceived, ReferralFeeUpdated

Commonly used symbols are re-exported:
    from registrar.types import Price, RegistrationIntent
"""

from __future__ import annotations

from .core import Price, RegistrationIntent, RegistrationResult, RenewalResult
from .events import (NameRegistered, NameRenewed, ReferralFeeUpdated,
                     ReferrerReceived, RegistrarEvent)

__all__ = [
    "Price",
    "RegistrationIntent",
    "RegistrationResult",
    "RenewalResult",
    "RegistrarEvent",
    "NameRegistered",
    "NameRenewed",
    "ReferrerReceived",
    "ReferralFeeUpdated",
]
