# Copyright (c) Animica.
# SPDX-License-Identifier: MIT
"""
Registrar RPC — API-key authentication

Methods that act for an account (register, renew, renewAll, withdraw,
setReferralFee) never trust a client-supplied ``caller``. The acting account
comes from a bearer token configured in ``RegistrarConfig.rpc.api_keys``:

    Authorization: Bearer <token>        (or ?api_key=<token>)

- no token          → anonymous; read-only methods and ``commit`` still work
- unknown token     → HTTP 401
- known token       → AuthContext(subject=<account>) bound to the request

``dev_trust_caller`` switches the check off for local devnets, the same way
``dev_faucet`` gates ``registrar.fund``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from fastapi import HTTPException, Request, status

from ..errors import Unauthorized
from ..utils.bytes import as_address, to_hex

# Methods whose ``caller`` param names the account being charged or privileged.
CALLER_METHODS = frozenset({
    "registrar.register",
    "registrar.renew",
    "registrar.renewAll",
    "registrar.withdraw",
    "registrar.setReferralFee",
})


@dataclass(frozen=True)
class AuthContext:
    token: Optional[str]
    subject: Optional[bytes] = None

    @property
    def is_authenticated(self) -> bool:
        return self.subject is not None


ANONYMOUS = AuthContext(token=None)


class TokenStore:
    """In-memory token → account lookup built from config."""

    def __init__(self, mapping: Optional[Mapping[str, bytes]] = None):
        self._map: Dict[str, bytes] = dict(mapping or {})

    @classmethod
    def from_config(cls, api_keys: Mapping[str, str]) -> "TokenStore":
        return cls({token: as_address(acct, name="api key account") for token, acct in api_keys.items()})

    def __len__(self) -> int:
        return len(self._map)

    def check(self, token: Optional[str]) -> Optional[AuthContext]:
        if not token:
            return None
        subject = self._map.get(token)
        if subject is None:
            return None
        return AuthContext(token=token, subject=subject)


def token_from_request(request: Request) -> Optional[str]:
    """Bearer header first, then ``?api_key=``."""
    auth = request.headers.get("authorization")
    if auth:
        parts = auth.split()
        if len(parts) == 2 and parts[0].lower() == "bearer":
            return parts[1].strip()
    return request.query_params.get("api_key") or None


def authenticate(request: Request) -> AuthContext:
    """FastAPI dependency: resolve the request's AuthContext or raise 401."""
    token = token_from_request(request)
    if token is None:
        return ANONYMOUS
    ctx = request.app.state.tokens.check(token)
    if ctx is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="invalid API key",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return ctx


def bind_caller(service: Any, method: str, params: Dict[str, Any],
                auth: Optional[AuthContext]) -> Dict[str, Any]:
    """
    Fill in ``caller`` for account-acting methods from the authenticated
    subject. A ``caller`` naming any other account is rejected.
    """
    if method not in CALLER_METHODS:
        return params
    claimed = params.get("caller")
    if auth is not None and auth.subject is not None:
        subject = to_hex(auth.subject)
        if claimed is not None and (not isinstance(claimed, str) or claimed.lower() != subject):
            raise Unauthorized(caller=str(claimed), action=f"act for another account in {method}")
        return {**params, "caller": subject}
    if service.config.dev_trust_caller:
        return params
    raise Unauthorized(caller=claimed if isinstance(claimed, str) else "",
                       action=f"call {method} without an API key")


__all__ = [
    "CALLER_METHODS",
    "AuthContext",
    "ANONYMOUS",
    "TokenStore",
    "token_from_request",
    "authenticate",
    "bind_caller",
]
