# Copyright (c) Animica.
# SPDX-License-Identifier: MIT
"""
registrar.adapters.rpc_mount
----------------------------

Mount HTTP endpoints for the registrar:

- JSON-RPC:
    POST /rpc                       → JSON-RPC 2.0 (single or batch), methods
                                      from `registrar.rpc.methods.RPC_METHODS`
                                      (Bearer API key binds `caller`, see
                                      `registrar.rpc.auth`)

- REST (prefix `/registrar`, read-only):
    GET  /params                    → protocol parameters
    GET  /available/{name}          → validity & availability of a label
    GET  /price/{name}?duration=    → rent price (base, premium)
    GET  /commitments/{hash}        → acceptance timestamp of a commitment
    GET  /balances/{addr}           → fee-ledger balance
    GET  /events                    → event log (filter by name, seq, limit)

- GET /metrics                      → Prometheus exposition

Handlers are sync and run in FastAPI's threadpool; the journal lock
serializes them against mutations.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Query, Request, Response
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from .. import logging as rlog
from ..errors import RegistrarError
from ..rpc import methods as m
from ..rpc.auth import AuthContext, TokenStore, authenticate, bind_caller
from ..rpc.jsonrpc import Dispatcher
from ..service import RegistrarService
from ..version import __version__

logger = logging.getLogger(__name__)


def _bad_request(e: Exception) -> HTTPException:
    return HTTPException(status_code=400, detail=str(e))


# --------------------------------------------------------------------------------------
# REST router
# --------------------------------------------------------------------------------------

def get_router(service: RegistrarService) -> APIRouter:
    r = APIRouter(prefix="/registrar", tags=["registrar"])

    @r.get("/params")
    def params() -> Dict[str, Any]:
        return m.get_params(service)

    @r.get("/available/{name}")
    def available(name: str) -> Dict[str, Any]:
        return {
            "name": name,
            "valid": m.valid(service, {"name": name}),
            "available": m.available(service, {"name": name}),
        }

    @r.get("/price/{name}")
    def price(name: str, duration: int = Query(..., ge=0)) -> Dict[str, Any]:
        return m.rent_price(service, {"name": name, "duration": duration})

    @r.get("/commitments/{commitment}")
    def commitment(commitment: str) -> Dict[str, Any]:
        try:
            out = m.get_commitment(service, {"commitment": commitment})
        except ValueError as e:
            raise _bad_request(e)
        if out["acceptedAt"] is None:
            raise HTTPException(status_code=404, detail="commitment not found")
        return out

    @r.get("/balances/{address}")
    def balance(address: str) -> Dict[str, Any]:
        try:
            return m.balance_of(service, {"address": address})
        except ValueError as e:
            raise _bad_request(e)

    @r.get("/events")
    def events(
        event: Optional[str] = Query(None),
        from_seq: Optional[int] = Query(None, ge=0),
        limit: int = Query(100, ge=1, le=1000),
    ) -> List[Dict[str, Any]]:
        return m.get_events(service, {"event": event, "from_seq": from_seq, "limit": limit})

    return r


# --------------------------------------------------------------------------------------
# App factory
# --------------------------------------------------------------------------------------

def create_app(service: RegistrarService) -> FastAPI:
    app = FastAPI(title="Name Registrar", version=__version__)
    dispatcher = Dispatcher(service, m.RPC_METHODS, guard=bind_caller)
    app.state.service = service
    app.state.dispatcher = dispatcher
    app.state.tokens = TokenStore.from_config(service.config.rpc.api_keys)

    def _handle(body: bytes, auth: AuthContext) -> Any:
        with rlog.trace_scope():
            rlog.bind(component="rpc", authenticated=auth.is_authenticated)
            return dispatcher.handle_body(body, auth)

    @app.post("/rpc")
    async def rpc(request: Request, auth: AuthContext = Depends(authenticate)) -> Any:
        body = await request.body()
        result = await run_in_threadpool(_handle, body, auth)
        if result is None:
            return Response(status_code=204)
        return result

    @app.get("/metrics")
    def metrics() -> Response:
        return Response(generate_latest(service.metrics.registry), media_type=CONTENT_TYPE_LATEST)

    @app.get("/healthz")
    def healthz() -> Dict[str, Any]:
        return {"ok": True, "version": __version__}

    app.include_router(get_router(service))

    @app.exception_handler(RegistrarError)
    async def _registrar_error(_request: Request, exc: RegistrarError) -> Response:
        return JSONResponse(status_code=400, content=exc.to_dict())

    if service.config.dev_trust_caller:
        logger.warning("dev_trust_caller is on: RPC callers are not authenticated")
    logger.info(
        "registrar RPC app created",
        extra={"methods": len(dispatcher.names), "api_keys": len(app.state.tokens)},
    )
    return app


__all__ = ["get_router", "create_app"]
