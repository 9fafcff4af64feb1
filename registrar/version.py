# Copyright (c) Animica.
# SPDX-License-Identifier: MIT
"""
Version helpers for the registrar package.

Resolution order:
1) importlib.metadata (if the distribution is installed),
2) the static fallback BASE_VERSION.

The returned version is normalized to PEP 440.
"""
from __future__ import annotations

import re
from functools import lru_cache
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as _pkg_version

# Bump this when making intentional, source-level releases.
BASE_VERSION = "0.1.0"

_PKG_NAME = "name-registrar"

_PEP440_RE = re.compile(r"^\d+(\.\d+)*((a|b|rc)\d+)?(\.post\d+)?(\.dev\d+)?(\+[0-9A-Za-z.]+)?$")


def _normalize(v: str) -> str:
    v = v.strip()
    if v.startswith(("v", "V")):
        v = v[1:]
    return v if _PEP440_RE.match(v) else BASE_VERSION


@lru_cache(maxsize=1)
def get_version() -> str:
    """Return the installed distribution version, or BASE_VERSION from a source tree."""
    try:
        return _normalize(_pkg_version(_PKG_NAME))
    except PackageNotFoundError:
        return BASE_VERSION


__version__ = get_version()

__all__ = ["BASE_VERSION", "get_version", "__version__"]
