# Copyright (c) Animica.
# SPDX-License-Identifier: MIT
"""
Registrar RPC — JSON-RPC 2.0 dispatcher
=======================================

Features
--------
• Single & batch requests with named params; notifications get no response.
• Structured error mapping:
    - RegistrarError         → -32000, data = err.to_dict()
    - pydantic ValidationError, ValueError/TypeError → -32602 Invalid params
    - unknown method         → -32601
    - malformed JSON         → -32700
• Handlers are plain sync callables ``(service, params) -> result`` taken
  from ``registrar.rpc.methods.RPC_METHODS``.

The dispatcher is framework-free; `registrar.adapters.rpc_mount` wraps it in
a FastAPI endpoint.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from pydantic import ValidationError

from .. import logging as rlog
from ..errors import RegistrarError

log = logging.getLogger(__name__)

Json = Dict[str, Any]

# (service, method, params, auth) -> params; may raise to reject the call.
Guard = Callable[[Any, str, Dict[str, Any], Any], Dict[str, Any]]


class JsonRpcError(Exception):
    code: int = -32000
    message: str = "Server error"

    def __init__(self, message: Optional[str] = None, *, code: Optional[int] = None,
                 data: Any = None):
        if message is not None:
            self.message = message
        if code is not None:
            self.code = code
        self.data = data
        super().__init__(self.message)


class ParseError(JsonRpcError):
    code = -32700
    message = "Parse error"


class InvalidRequest(JsonRpcError):
    code = -32600
    message = "Invalid Request"


class MethodNotFound(JsonRpcError):
    code = -32601
    message = "Method not found"


class InvalidParams(JsonRpcError):
    code = -32602
    message = "Invalid params"


class InternalError(JsonRpcError):
    code = -32603
    message = "Internal error"


_NO_ID = object()  # sentinel for notification


def error_obj(exc: BaseException) -> Json:
    """Convert an exception into a JSON-RPC error object."""
    if isinstance(exc, JsonRpcError):
        err: Json = {"code": exc.code, "message": exc.message}
        if exc.data is not None:
            err["data"] = exc.data
        return err
    if isinstance(exc, RegistrarError):
        return {"code": -32000, "message": exc.message, "data": exc.to_dict()}
    if isinstance(exc, ValidationError):
        return {"code": -32602, "message": "Invalid params",
                "data": json.loads(exc.json(include_url=False))}
    if isinstance(exc, (ValueError, TypeError)):
        return {"code": -32602, "message": "Invalid params", "data": str(exc)}
    return {"code": -32603, "message": "Internal error", "data": str(exc)}


def _validate_request_obj(obj: Any) -> tuple:
    if not isinstance(obj, dict):
        raise InvalidRequest("Request must be an object")
    if obj.get("jsonrpc") != "2.0":
        raise InvalidRequest("jsonrpc must be '2.0'")
    method = obj.get("method")
    if not isinstance(method, str) or not method:
        raise InvalidRequest("method must be a non-empty string")
    params = obj.get("params")
    if params is None:
        params = {}
    if not isinstance(params, dict):
        raise InvalidParams("params must be an object")
    req_id = obj.get("id", _NO_ID)
    if req_id is not _NO_ID and not (req_id is None or isinstance(req_id, (str, int))):
        raise InvalidRequest("id must be string, number, or null")
    return method, params, req_id


class Dispatcher:
    """Binds a method table to one service instance."""

    def __init__(self, service: Any, methods: Mapping[str, Callable[..., Any]],
                 guard: Optional[Guard] = None) -> None:
        self.service = service
        self._methods = dict(methods)
        self._guard = guard

    @property
    def names(self) -> List[str]:
        return sorted(self._methods)

    def dispatch_one(self, obj: Any, auth: Any = None) -> Optional[Json]:
        req_id: Any = obj.get("id", _NO_ID) if isinstance(obj, dict) else None
        try:
            method, params, req_id = _validate_request_obj(obj)
            fn = self._methods.get(method)
            if fn is None:
                raise MethodNotFound(data={"method": method})
            rlog.bind(method=method)
            if self._guard is not None:
                params = self._guard(self.service, method, params, auth)
            result = fn(self.service, params)
        except Exception as exc:
            if req_id is _NO_ID:
                log.debug("error in notification %s: %s", obj.get("method"), exc)
                return None
            if not isinstance(exc, (JsonRpcError, RegistrarError, ValidationError,
                                    ValueError, TypeError)):
                log.exception("unhandled error in %s", obj.get("method"))
            return {"jsonrpc": "2.0", "id": req_id, "error": error_obj(exc)}
        if req_id is _NO_ID:
            return None
        return {"jsonrpc": "2.0", "id": req_id, "result": result}

    def dispatch(self, payload: Any, auth: Any = None) -> Union[Json, List[Json], None]:
        if isinstance(payload, list):
            if not payload:
                return {"jsonrpc": "2.0", "id": None,
                        "error": error_obj(InvalidRequest("empty batch"))}
            out = [self.dispatch_one(obj, auth) for obj in payload]
            return [r for r in out if r is not None] or None
        return self.dispatch_one(payload, auth)

    def handle_body(self, body: Union[bytes, str], auth: Any = None) -> Union[Json, List[Json], None]:
        """Parse and dispatch a raw HTTP body; ``auth`` is handed to the guard."""
        try:
            payload = json.loads(body)
        except (ValueError, UnicodeDecodeError):
            return {"jsonrpc": "2.0", "id": None, "error": error_obj(ParseError())}
        return self.dispatch(payload, auth)


__all__ = [
    "JsonRpcError",
    "ParseError",
    "InvalidRequest",
    "MethodNotFound",
    "InvalidParams",
    "InternalError",
    "Dispatcher",
    "error_obj",
]
