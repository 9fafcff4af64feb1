# Copyright (c) Animica.
# SPDX-License-Identifier: MIT
"""
registrar.cli.main
------------------

Command-line interface for the name registrar.

Offline helpers (no node needed):
  - namehash         : namehash of a dotted name
  - labelhash        : keccak256 of a single label
  - valid            : whether a label meets the minimum length
  - secret           : fresh random 32-byte commitment secret
  - make-commitment  : commitment hash for a registration intent
  - price            : rent price of a fresh name under a config's pricing curve

Service:
  - serve            : run the JSON-RPC/REST server (uvicorn)

JSON-RPC client commands (against a running `serve`):
  - commit, register, renew, withdraw, balance, params

Environment:
  REGISTRAR_RPC_URL may override the default RPC endpoint.
  REGISTRAR_API_KEY is sent as a Bearer token; the server derives the acting
  account (`--caller`) from it.

Example:
  registrar make-commitment --label alice --owner 0x… --duration 31536000 --secret 0x…
  registrar commit 0x<commitment>
  registrar register --api-key <token> --value 200000000 --label alice --owner 0x… \\
      --duration 31536000 --secret 0x…
"""

from __future__ import annotations

import json
import os
import secrets
from typing import Any, Dict, List, Optional

import requests
import typer

from .. import logging as rlog
from ..commit_reveal.commit import build_intent, make_commitment
from ..config import load_config
from ..constants import MIN_LABEL_LENGTH
from ..pricing import StablePricing
from ..utils.bytes import as_address, as_hash32, from_hex, to_hex
from ..utils.hash import labelhash, namehash, strlen
from ..utils.time import BlockClock, SystemClock

_DEFAULT_RPC = os.getenv("REGISTRAR_RPC_URL") or "http://127.0.0.1:8645/rpc"

app = typer.Typer(
    name="registrar",
    help="Name registrar: commit, register, renew and collect fees.",
    no_args_is_help=True,
    add_completion=False,
)


def _rpc_call(url: str, method: str, params: Optional[Dict[str, Any]] = None,
              timeout: float = 10.0, api_key: Optional[str] = None) -> Any:
    """Minimal JSON-RPC 2.0 helper."""
    body = {"jsonrpc": "2.0", "id": 1, "method": method, "params": dict(params or {})}
    headers = {"Authorization": f"Bearer {api_key}"} if api_key else {}
    try:
        r = requests.post(url, json=body, timeout=timeout, headers=headers)
    except requests.RequestException as e:
        raise SystemExit(f"RPC POST failed: {e}")
    if r.status_code != 200:
        raise SystemExit(f"RPC error HTTP {r.status_code}: {r.text}")
    try:
        data = r.json()
    except ValueError:
        raise SystemExit(f"RPC response not JSON: {r.text}")
    if data.get("error"):
        raise SystemExit(f"RPC error: {json.dumps(data['error'], indent=2)}")
    return data.get("result")


def _echo(obj: Any) -> None:
    typer.echo(json.dumps(obj, indent=2))


def _opt_rpc() -> str:
    return typer.Option(_DEFAULT_RPC, "--rpc", help=f"JSON-RPC endpoint (default: {_DEFAULT_RPC})")  # type: ignore[return-value]


def _opt_api_key() -> Optional[str]:
    return typer.Option(None, "--api-key", envvar="REGISTRAR_API_KEY", help="Bearer API key.")  # type: ignore[return-value]


def _with_caller(params: Dict[str, Any], caller: Optional[str]) -> Dict[str, Any]:
    if caller:
        params["caller"] = caller
    return params


def _checked(fn, value: str, what: str) -> bytes:
    try:
        return fn(value)
    except (TypeError, ValueError) as e:
        raise typer.BadParameter(f"{what}: {e}")


# ---------------------------------------------------------------------------
# Offline helpers
# ---------------------------------------------------------------------------


@app.command("namehash")
def cmd_namehash(name: str = typer.Argument(..., help="Dotted name, e.g. alice.eth")) -> None:
    """Print the namehash of NAME."""
    typer.echo(to_hex(namehash(name)))


@app.command("labelhash")
def cmd_labelhash(label: str = typer.Argument(..., help="Single label, e.g. alice")) -> None:
    typer.echo(to_hex(labelhash(label)))


@app.command("valid")
def cmd_valid(label: str = typer.Argument(...)) -> None:
    """Exit 0 if LABEL is long enough to register, 1 otherwise."""
    ok = strlen(label) >= MIN_LABEL_LENGTH
    typer.echo("valid" if ok else "invalid")
    if not ok:
        raise typer.Exit(1)


@app.command("secret")
def cmd_secret() -> None:
    """Print a fresh random 32-byte secret."""
    typer.echo(to_hex(secrets.token_bytes(32)))


@app.command("make-commitment")
def cmd_make_commitment(
    label: str = typer.Option(..., "--label", "-l"),
    owner: str = typer.Option(..., "--owner", "-o", help="0x-hex owner address."),
    duration: int = typer.Option(..., "--duration", "-d", min=0, help="Seconds."),
    secret: str = typer.Option(..., "--secret", "-s", help="0x-hex 32-byte secret."),
    resolver: Optional[str] = typer.Option(None, "--resolver", help="0x-hex resolver address."),
    data: Optional[List[str]] = typer.Option(None, "--data", help="0x-hex record call (repeatable)."),
    reverse_record: bool = typer.Option(False, "--reverse-record/--no-reverse-record"),
    fuses: int = typer.Option(0, "--fuses", min=0),
    wrapper_expiry: int = typer.Option(0, "--wrapper-expiry", min=0),
) -> None:
    """Compute the commitment hash for a registration intent."""
    try:
        intent = build_intent(
            label,
            _checked(as_address, owner, "owner"),
            duration,
            _checked(as_hash32, secret, "secret"),
            _checked(as_address, resolver, "resolver") if resolver else None,
            [_checked(from_hex, d, "data") for d in (data or [])],
            reverse_record,
            fuses,
            wrapper_expiry,
        )
    except ValueError as e:
        raise typer.BadParameter(str(e))
    typer.echo(to_hex(make_commitment(intent)))


@app.command("price")
def cmd_price(
    label: str = typer.Argument(...),
    duration: int = typer.Option(..., "--duration", "-d", min=0),
    config: Optional[str] = typer.Option(None, "--config", "-c", help="JSON/YAML config file."),
) -> None:
    """Price of LABEL as a never-registered name under the configured curve."""
    cfg = load_config(config)
    pricing = StablePricing(
        cfg.pricing.rent_prices,
        BlockClock(SystemClock()),
        start_premium=cfg.pricing.start_premium,
        premium_half_life=cfg.pricing.premium_half_life_s,
        premium_duration=cfg.pricing.premium_duration_s,
        grace_period=cfg.grace_period,
    )
    _echo(pricing.price(label, 0, duration).to_dict())


# ---------------------------------------------------------------------------
# Server
# ---------------------------------------------------------------------------


@app.command("serve")
def cmd_serve(
    config: Optional[str] = typer.Option(None, "--config", "-c", help="JSON/YAML config file."),
    host: Optional[str] = typer.Option(None, "--host"),
    port: Optional[int] = typer.Option(None, "--port"),
) -> None:
    """Run the registrar JSON-RPC server."""
    import uvicorn

    from ..adapters.rpc_mount import create_app
    from ..service import build_service

    cfg = load_config(config)
    if host:
        cfg.rpc.host = host
    if port:
        cfg.rpc.port = port
    cfg.validate()
    rlog.configure(level=cfg.log_level, json=cfg.log_json)

    service = build_service(cfg)
    try:
        uvicorn.run(
            create_app(service),
            host=cfg.rpc.host,
            port=cfg.rpc.port,
            log_config=None,
            log_level=cfg.log_level.lower(),
        )
    finally:
        service.close()


# ---------------------------------------------------------------------------
# JSON-RPC client commands
# ---------------------------------------------------------------------------


@app.command("params")
def cmd_params(rpc: str = _opt_rpc()) -> None:
    """Show registrar parameters."""
    _echo(_rpc_call(rpc, "registrar.getParams"))


@app.command("commit")
def cmd_commit(
    commitment: str = typer.Argument(..., help="0x-hex commitment from make-commitment."),
    rpc: str = _opt_rpc(),
) -> None:
    """Submit a commitment; reveal with `register` after the minimum age."""
    _echo(_rpc_call(rpc, "registrar.commit", {"commitment": commitment}))


@app.command("register")
def cmd_register(
    caller: Optional[str] = typer.Option(None, "--caller", help="Paying account (checked against the API key)."),
    value: int = typer.Option(..., "--value", min=0, help="Value attached; excess is refunded."),
    label: str = typer.Option(..., "--label", "-l"),
    owner: str = typer.Option(..., "--owner", "-o"),
    duration: int = typer.Option(..., "--duration", "-d", min=0),
    secret: str = typer.Option(..., "--secret", "-s"),
    resolver: Optional[str] = typer.Option(None, "--resolver"),
    data: Optional[List[str]] = typer.Option(None, "--data", help="0x-hex record call (repeatable)."),
    reverse_record: bool = typer.Option(False, "--reverse-record/--no-reverse-record"),
    fuses: int = typer.Option(0, "--fuses", min=0),
    wrapper_expiry: int = typer.Option(0, "--wrapper-expiry", min=0),
    referrer: Optional[str] = typer.Option(None, "--referrer"),
    rpc: str = _opt_rpc(),
    api_key: Optional[str] = _opt_api_key(),
) -> None:
    """Reveal a commitment and register the name."""
    params: Dict[str, Any] = {
        "value": value,
        "label": label,
        "owner": owner,
        "duration": duration,
        "secret": secret,
        "data": list(data or []),
        "reverse_record": reverse_record,
        "fuses": fuses,
        "wrapper_expiry": wrapper_expiry,
    }
    if resolver:
        params["resolver"] = resolver
    if referrer:
        params["referrer"] = referrer
    _echo(_rpc_call(rpc, "registrar.register", _with_caller(params, caller), api_key=api_key))


@app.command("renew")
def cmd_renew(
    name: str = typer.Argument(..., help="Label to renew (without the TLD)."),
    caller: Optional[str] = typer.Option(None, "--caller"),
    duration: int = typer.Option(..., "--duration", "-d", min=0),
    value: int = typer.Option(..., "--value", min=0),
    referrer: Optional[str] = typer.Option(None, "--referrer"),
    rpc: str = _opt_rpc(),
    api_key: Optional[str] = _opt_api_key(),
) -> None:
    params: Dict[str, Any] = {"name": name, "duration": duration, "value": value}
    if referrer:
        params["referrer"] = referrer
    _echo(_rpc_call(rpc, "registrar.renew", _with_caller(params, caller), api_key=api_key))


@app.command("withdraw")
def cmd_withdraw(
    caller: Optional[str] = typer.Option(None, "--caller"),
    rpc: str = _opt_rpc(),
    api_key: Optional[str] = _opt_api_key(),
) -> None:
    """Pull the fee-ledger balance of the API key's account."""
    _echo(_rpc_call(rpc, "registrar.withdraw", _with_caller({}, caller), api_key=api_key))


@app.command("balance")
def cmd_balance(address: str = typer.Argument(...), rpc: str = _opt_rpc()) -> None:
    """Fee-ledger balance of ADDRESS."""
    _echo(_rpc_call(rpc, "registrar.balanceOf", {"address": address}))


def main() -> None:  # pragma: no cover
    app(prog_name="registrar")


if __name__ == "__main__":  # pragma: no cover
    main()
