# Copyright (c) Animica.
# SPDX-License-Identifier: MIT
"""
Registrar configuration.

Typed dataclass configs with validation for:
- commitment windows and protocol floors
- the operator identity and initial referral fee
- the reference pricing curve
- storage (state URI, event log path) and the RPC listener

Loaders:
- `RegistrarConfig.from_env(prefix="REGISTRAR_")`
- `RegistrarConfig.from_file(path)` — JSON or YAML (PyYAML)
- `load_config(path=None)` — file (if any), then environment overrides
"""

from __future__ import annotations

import json
import os
from dataclasses import asdict, dataclass, field, fields
from typing import Any, Callable, Dict, List, Mapping, Optional

import yaml

from .constants import (DAY, DEFAULT_MAX_COMMITMENT_AGE, DEFAULT_MIN_COMMITMENT_AGE,
                        DEFAULT_TLD, GRACE_PERIOD, MIN_REGISTRATION_DURATION,
                        NULL_ADDRESS, REFERRAL_FEE_DENOMINATOR)
from .utils.bytes import as_address

DEFAULT_OPERATOR = "0x" + "00" * 19 + "01"
DEFAULT_RENT_PRICES = [0, 0, 4, 2, 1]

# -------------------------
# Sub-configs
# -------------------------


@dataclass
class PricingConfig:
    """
    Reference pricing curve.

    rent_prices: per-second rent by label length; index i is for length i+1,
                 the last entry covers all longer labels.
    start_premium: premium right after a lapsed name leaves its grace period.
    premium_half_life_s: seconds per halving of the premium.
    premium_duration_s: premium drops to zero after this many seconds.
    """

    rent_prices: List[int] = field(default_factory=lambda: list(DEFAULT_RENT_PRICES))
    start_premium: int = 0
    premium_half_life_s: int = DAY
    premium_duration_s: int = 21 * DAY

    def validate(self) -> None:
        if not self.rent_prices:
            raise ValueError("rent_prices must not be empty")
        if any(int(p) < 0 for p in self.rent_prices):
            raise ValueError("rent_prices must be non-negative")
        if self.start_premium < 0:
            raise ValueError("start_premium must be >= 0")
        if self.premium_half_life_s <= 0:
            raise ValueError("premium_half_life_s must be > 0")
        if self.premium_duration_s < 0:
            raise ValueError("premium_duration_s must be >= 0")


@dataclass
class StorageConfig:
    """
    state_uri:   "memory://" or "sqlite:///path/to/registrar.db"
    events_path: JSONL event log; None keeps events in memory.
    """

    state_uri: str = "memory://"
    events_path: Optional[str] = None

    def validate(self) -> None:
        if not (self.state_uri.startswith("memory:") or self.state_uri.startswith("mem://")
                or self.state_uri.startswith("sqlite://")):
            raise ValueError("state_uri must be memory:// or sqlite:///path")


@dataclass
class RpcConfig:
    """
    host, port: listener address.
    api_keys:   bearer token -> 0x-hex account the token acts for. Methods that
                act for a caller (register, renew, withdraw, ...) take the
                caller from the presented token.
    """

    host: str = "127.0.0.1"
    port: int = 8645
    api_keys: Dict[str, str] = field(default_factory=dict)

    def validate(self) -> None:
        if not self.host:
            raise ValueError("rpc host must be non-empty")
        if not (0 < self.port < 65536):
            raise ValueError("rpc port must be in 1..65535")
        for token, account in self.api_keys.items():
            if not token or any(c.isspace() for c in token):
                raise ValueError("rpc api key tokens must be non-empty without whitespace")
            try:
                as_address(account, name="api key account")
            except (TypeError, ValueError) as e:
                raise ValueError(f"rpc api key account must be a 0x-hex address: {e}") from e


# -------------------------
# Top-level config
# -------------------------


@dataclass
class RegistrarConfig:
    """
    Commitment windows:
      - min_commitment_age: reveal delay after commit (seconds)
      - max_commitment_age: commitment lifetime (seconds)

    Protocol:
      - min_registration_duration, grace_period (seconds)
      - tld: the second-level names are registered under (no dots)

    Roles & fees:
      - operator: 0x-hex address allowed to set the referral fee
      - referral_fee: initial rate in parts-per-thousand

    Devnet:
      - dev_faucet: expose `registrar.fund` over RPC to mint bank balances
      - dev_trust_caller: accept the `caller` RPC param without an API key
    """

    min_commitment_age: int = DEFAULT_MIN_COMMITMENT_AGE
    max_commitment_age: int = DEFAULT_MAX_COMMITMENT_AGE
    min_registration_duration: int = MIN_REGISTRATION_DURATION
    grace_period: int = GRACE_PERIOD
    tld: str = DEFAULT_TLD
    operator: str = DEFAULT_OPERATOR
    referral_fee: int = 0
    dev_faucet: bool = False
    dev_trust_caller: bool = False
    log_level: str = "INFO"
    log_json: Optional[bool] = None

    pricing: PricingConfig = field(default_factory=PricingConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    rpc: RpcConfig = field(default_factory=RpcConfig)

    def validate(self) -> None:
        if self.min_commitment_age <= 0:
            raise ValueError("min_commitment_age must be > 0")
        if self.max_commitment_age <= self.min_commitment_age:
            raise ValueError("max_commitment_age must be > min_commitment_age")
        if self.min_registration_duration <= 0:
            raise ValueError("min_registration_duration must be > 0")
        if self.grace_period < 0:
            raise ValueError("grace_period must be >= 0")
        if not self.tld or "." in self.tld:
            raise ValueError("tld must be a single non-empty label")
        if not (0 <= self.referral_fee <= REFERRAL_FEE_DENOMINATOR):
            raise ValueError(f"referral_fee must be in [0, {REFERRAL_FEE_DENOMINATOR}]")
        try:
            op = as_address(self.operator, name="operator")
        except (TypeError, ValueError) as e:
            raise ValueError(f"operator must be a 20-byte 0x-hex address: {e}") from e
        if op == NULL_ADDRESS:
            raise ValueError("operator must not be the null address")

        self.pricing.validate()
        self.storage.validate()
        self.rpc.validate()

    @property
    def operator_bytes(self) -> bytes:
        return as_address(self.operator, name="operator")

    # -------------------------
    # Serialization helpers
    # -------------------------

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent, sort_keys=True)

    # -------------------------
    # Loaders
    # -------------------------

    @staticmethod
    def from_dict(data: Mapping[str, Any]) -> "RegistrarConfig":
        data = dict(data or {})
        pricing_d = dict(data.pop("pricing", None) or {})
        storage_d = dict(data.pop("storage", None) or {})
        rpc_d = dict(data.pop("rpc", None) or {})
        _reject_unknown(RegistrarConfig, data, "")
        _reject_unknown(PricingConfig, pricing_d, "pricing.")
        _reject_unknown(StorageConfig, storage_d, "storage.")
        _reject_unknown(RpcConfig, rpc_d, "rpc.")
        cfg = RegistrarConfig(
            **data,
            pricing=PricingConfig(**pricing_d),
            storage=StorageConfig(**storage_d),
            rpc=RpcConfig(**rpc_d),
        )
        cfg.validate()
        return cfg

    @staticmethod
    def from_file(path: str) -> "RegistrarConfig":
        """
        Load from a JSON or YAML file; keys mirror the dataclass structure:

            min_commitment_age: 60
            max_commitment_age: 86400
            operator: "0x00000000000000000000000000000000000000aa"
            pricing:
              rent_prices: [0, 0, 4, 2, 1]
            storage:
              state_uri: "sqlite:///./data/registrar.db"
              events_path: "./data/registrar-events.jsonl"
            rpc:
              port: 8645
              api_keys:
                "s3cret-token": "0x00000000000000000000000000000000000000aa"
        """
        return RegistrarConfig.from_dict(_parse_json_or_yaml(_read_text(path), path))

    @staticmethod
    def from_env(prefix: str = "REGISTRAR_",
                 environ: Optional[Mapping[str, str]] = None) -> "RegistrarConfig":
        """
        Defaults overridden by environment variables, e.g.

          REGISTRAR_MIN_COMMITMENT_AGE=60
          REGISTRAR_OPERATOR=0x…
          REGISTRAR_RENT_PRICES=0,0,4,2,1
          REGISTRAR_STATE_URI=sqlite:///./data/registrar.db
          REGISTRAR_RPC_PORT=8645
          REGISTRAR_RPC_API_KEYS=token1=0x…,token2=0x…
        """
        cfg = apply_env(RegistrarConfig(), prefix=prefix, environ=environ)
        cfg.validate()
        return cfg


# -------------------------
# Environment overrides
# -------------------------


def _bool(raw: str) -> bool:
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _int_list(raw: str) -> List[int]:
    return [int(p) for p in raw.split(",") if p.strip()]


def _str_map(raw: str) -> Dict[str, str]:
    """``k1=v1,k2=v2`` -> dict."""
    out: Dict[str, str] = {}
    for item in raw.split(","):
        if not item.strip():
            continue
        key, sep, value = item.partition("=")
        if not sep:
            raise ValueError(f"expected key=value, got {item!r}")
        out[key.strip()] = value.strip()
    return out


# env suffix -> (section or None, attribute, cast)
_ENV_KEYS: Dict[str, Any] = {
    "MIN_COMMITMENT_AGE": (None, "min_commitment_age", int),
    "MAX_COMMITMENT_AGE": (None, "max_commitment_age", int),
    "MIN_REGISTRATION_DURATION": (None, "min_registration_duration", int),
    "GRACE_PERIOD": (None, "grace_period", int),
    "TLD": (None, "tld", str),
    "OPERATOR": (None, "operator", str),
    "REFERRAL_FEE": (None, "referral_fee", int),
    "DEV_FAUCET": (None, "dev_faucet", _bool),
    "DEV_TRUST_CALLER": (None, "dev_trust_caller", _bool),
    "LOG_LEVEL": (None, "log_level", str),
    "LOG_JSON": (None, "log_json", _bool),
    "RENT_PRICES": ("pricing", "rent_prices", _int_list),
    "START_PREMIUM": ("pricing", "start_premium", int),
    "PREMIUM_HALF_LIFE_S": ("pricing", "premium_half_life_s", int),
    "PREMIUM_DURATION_S": ("pricing", "premium_duration_s", int),
    "STATE_URI": ("storage", "state_uri", str),
    "EVENTS_PATH": ("storage", "events_path", str),
    "RPC_HOST": ("rpc", "host", str),
    "RPC_PORT": ("rpc", "port", int),
    "RPC_API_KEYS": ("rpc", "api_keys", _str_map),
}


def apply_env(cfg: RegistrarConfig, *, prefix: str = "REGISTRAR_",
              environ: Optional[Mapping[str, str]] = None) -> RegistrarConfig:
    """Override fields of ``cfg`` in place from environment variables."""
    env = os.environ if environ is None else environ
    for suffix, (section, attr, cast) in _ENV_KEYS.items():
        key = prefix + suffix
        raw = env.get(key)
        if raw is None:
            continue
        try:
            value = cast(raw)
        except ValueError as e:
            raise ValueError(f"Invalid value for {key}: {raw!r}") from e
        target = cfg if section is None else getattr(cfg, section)
        setattr(target, attr, value)
    return cfg


def load_config(path: Optional[str] = None, *, prefix: str = "REGISTRAR_",
                environ: Optional[Mapping[str, str]] = None) -> RegistrarConfig:
    """File (if given) then environment overrides; validated."""
    cfg = RegistrarConfig.from_file(path) if path else RegistrarConfig()
    apply_env(cfg, prefix=prefix, environ=environ)
    cfg.validate()
    return cfg


# -------------------------
# Utilities
# -------------------------


def _reject_unknown(cls: Callable[..., Any], data: Mapping[str, Any], where: str) -> None:
    known = {f.name for f in fields(cls)}  # type: ignore[arg-type]
    unknown = sorted(set(data) - known)
    if unknown:
        raise ValueError(f"unknown config key(s): {', '.join(where + k for k in unknown)}")


def _read_text(path: str) -> str:
    with open(path, "r", encoding="utf-8") as f:
        return f.read()


def _parse_json_or_yaml(text: str, path_hint: str) -> Dict[str, Any]:
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise ValueError(f"Failed to parse {path_hint!r} as JSON or YAML: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"{path_hint!r} must contain a mapping at the top level")
    return data


DEFAULT: RegistrarConfig = RegistrarConfig()

__all__ = [
    "PricingConfig",
    "StorageConfig",
    "RpcConfig",
    "RegistrarConfig",
    "apply_env",
    "load_config",
    "DEFAULT",
]
