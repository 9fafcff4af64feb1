# Copyright (c) Animica.
# SPDX-License-Identifier: MIT
"""
Adapters around the registrar core.

- memory.py    : in-memory collaborators sharing the controller's journal.
- rpc_mount.py : FastAPI app exposing the JSON-RPC dispatcher and REST reads.
"""
