# Copyright (c) Animica.
# SPDX-License-Identifier: MIT
"""Small, dependency-light helpers shared across the registrar package."""
