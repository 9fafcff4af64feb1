# Copyright (c) Animica.
# SPDX-License-Identifier: MIT
"""Command-line entry points (``registrar``)."""

from .main import app

__all__ = ["app"]
