# Copyright (c) Animica.
# SPDX-License-Identifier: MIT
"""JSON-RPC surface of the registrar: method handlers, auth and the dispatcher."""

from .auth import AuthContext, TokenStore, bind_caller
from .jsonrpc import Dispatcher, JsonRpcError, error_obj
from .methods import RPC_METHODS

__all__ = [
    "AuthContext",
    "Dispatcher",
    "JsonRpcError",
    "RPC_METHODS",
    "TokenStore",
    "bind_caller",
    "error_obj",
]
