# Copyright (c) Animica.
# SPDX-License-Identifier: MIT
"""
registrar.rpc.methods
---------------------

JSON-RPC method shims for the registrar. They validate and normalize params
with pydantic, then delegate to a `RegistrarService` (see
`registrar.service`) that owns state and logic.

Exposed methods:

- registrar.getParams()
- registrar.valid(name) / registrar.available(name)
- registrar.rentPrice(name, duration)
- registrar.makeCommitment(label, owner, duration, secret, resolver?, data?,
                           reverse_record?, fuses?, wrapper_expiry?)
- registrar.commit(commitment)
- registrar.getCommitment(commitment)
- registrar.register(caller, value, referrer?, <intent fields>)
- registrar.renew(caller, name, duration, value, referrer?)
- registrar.rentPriceBulk(names, duration)
- registrar.renewAll(caller, names, duration, value, referrer?)
- registrar.withdraw(caller)
- registrar.setReferralFee(caller, rate)
- registrar.balanceOf(address) / registrar.bankBalanceOf(address)
- registrar.getEvents(event?, from_seq?, limit?)
- registrar.fund(address, amount)           (only with dev_faucet)

Time is never a parameter: every mutation reads the service clock. The
``caller`` param names the identity an operation acts for; over HTTP it is
bound from the request's API key by `registrar.rpc.auth.bind_caller` before
these handlers run. All hex-typed inputs/outputs are 0x-prefixed.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..commit_reveal.commit import build_intent, make_commitment
from ..constants import NULL_ADDRESS
from ..errors import Unauthorized
from ..service import RegistrarService
from ..utils.bytes import as_address, as_hash32, from_hex, to_hex
from ..version import __version__

# ---------- helpers ----------


def _addr(v: str) -> str:
    as_address(v)
    return v.lower()


def _hash32(v: str) -> str:
    as_hash32(v)
    return v.lower()


# ---------- request models ----------


class _Params(BaseModel):
    model_config = ConfigDict(extra="forbid")


class NameQuery(_Params):
    name: str = Field(..., description="Label without the TLD.")


class PriceQuery(NameQuery):
    duration: int = Field(..., ge=0, description="Seconds.")


class CommitmentParams(_Params):
    commitment: str = Field(..., description="0x-hex 32-byte commitment.")

    @field_validator("commitment")
    @classmethod
    def _commitment(cls, v: str) -> str:
        return _hash32(v)


class IntentParams(_Params):
    label: str
    owner: str
    duration: int = Field(..., ge=0)
    secret: str = Field(..., description="0x-hex 32-byte secret.")
    resolver: str = Field(default=to_hex(NULL_ADDRESS))
    data: List[str] = Field(default_factory=list, description="0x-hex record calls.")
    reverse_record: bool = False
    fuses: int = Field(default=0, ge=0, le=0xFFFFFFFF)
    wrapper_expiry: int = Field(default=0, ge=0, le=(1 << 64) - 1)

    @field_validator("owner", "resolver")
    @classmethod
    def _addresses(cls, v: str) -> str:
        return _addr(v)

    @field_validator("secret")
    @classmethod
    def _secret(cls, v: str) -> str:
        return _hash32(v)

    @field_validator("data")
    @classmethod
    def _data(cls, v: List[str]) -> List[str]:
        for item in v:
            from_hex(item)
        return v

    def to_intent(self):
        return build_intent(
            self.label,
            as_address(self.owner),
            self.duration,
            as_hash32(self.secret),
            as_address(self.resolver),
            [from_hex(d) for d in self.data],
            self.reverse_record,
            self.fuses,
            self.wrapper_expiry,
        )


class _CallerParams(_Params):
    caller: str

    @field_validator("caller")
    @classmethod
    def _caller(cls, v: str) -> str:
        return _addr(v)


class _PaymentParams(_CallerParams):
    value: int = Field(..., ge=0)
    referrer: str = Field(default=to_hex(NULL_ADDRESS))

    @field_validator("referrer")
    @classmethod
    def _referrer(cls, v: str) -> str:
        return _addr(v)


class RegisterParams(IntentParams, _PaymentParams):
    pass


class RenewParams(_PaymentParams):
    name: str
    duration: int = Field(..., ge=0)


class BulkPriceQuery(_Params):
    names: List[str] = Field(..., min_length=1, max_length=256)
    duration: int = Field(..., ge=0)


class RenewAllParams(_PaymentParams):
    names: List[str] = Field(..., min_length=1, max_length=256)
    duration: int = Field(..., ge=0)


class WithdrawParams(_CallerParams):
    pass


class ReferralFeeParams(_CallerParams):
    rate: int = Field(..., ge=0)


class AddressQuery(_Params):
    address: str

    @field_validator("address")
    @classmethod
    def _address(cls, v: str) -> str:
        return _addr(v)


class EventsQuery(_Params):
    event: Optional[str] = None
    from_seq: Optional[int] = Field(default=None, ge=0)
    limit: int = Field(default=100, ge=1, le=1000)


class FundParams(AddressQuery):
    amount: int = Field(..., ge=0)


# ---------- method handlers ----------


def get_params(service: RegistrarService, _args: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
    c = service.controller
    return {
        "version": __version__,
        "tld": c.tld,
        "minCommitmentAge": c.min_commitment_age,
        "maxCommitmentAge": c.max_commitment_age,
        "minRegistrationDuration": c.min_registration_duration,
        "referralFee": c.referral_fee,
        "operator": to_hex(c.operator),
        "controller": to_hex(c.address),
        "publicResolver": to_hex(service.resolver.address),
        "nameWrapper": to_hex(service.name_wrapper.address),
    }


def valid(service: RegistrarService, args: Mapping[str, Any]) -> bool:
    return service.controller.valid(NameQuery(**args).name)


def available(service: RegistrarService, args: Mapping[str, Any]) -> bool:
    return service.controller.available(NameQuery(**args).name)


def rent_price(service: RegistrarService, args: Mapping[str, Any]) -> Dict[str, int]:
    q = PriceQuery(**args)
    return service.controller.rent_price(q.name, q.duration).to_dict()


def make_commitment_(service: RegistrarService, args: Mapping[str, Any]) -> Dict[str, str]:
    p = IntentParams(**args)
    return {"commitment": to_hex(make_commitment(p.to_intent()))}


def commit(service: RegistrarService, args: Mapping[str, Any]) -> Dict[str, Any]:
    p = CommitmentParams(**args)
    accepted_at = service.controller.commit(as_hash32(p.commitment))
    return {"commitment": p.commitment, "acceptedAt": accepted_at}


def get_commitment(service: RegistrarService, args: Mapping[str, Any]) -> Dict[str, Any]:
    p = CommitmentParams(**args)
    return {"commitment": p.commitment,
            "acceptedAt": service.controller.commitments(as_hash32(p.commitment))}


def register(service: RegistrarService, args: Mapping[str, Any]) -> Dict[str, Any]:
    p = RegisterParams(**args)
    res = service.controller.register(
        as_address(p.caller), p.to_intent(), p.value, as_address(p.referrer)
    )
    return res.to_dict()


def renew(service: RegistrarService, args: Mapping[str, Any]) -> Dict[str, Any]:
    p = RenewParams(**args)
    res = service.controller.renew(
        as_address(p.caller), p.name, p.duration, p.value, as_address(p.referrer)
    )
    return res.to_dict()


def rent_price_bulk(service: RegistrarService, args: Mapping[str, Any]) -> Dict[str, int]:
    q = BulkPriceQuery(**args)
    return {"total": service.bulk.rent_price(q.names, q.duration)}


def renew_all(service: RegistrarService, args: Mapping[str, Any]) -> Dict[str, Any]:
    p = RenewAllParams(**args)
    res = service.bulk.renew_all(
        as_address(p.caller), p.names, p.duration, p.value, as_address(p.referrer)
    )
    return res.to_dict()


def withdraw(service: RegistrarService, args: Mapping[str, Any]) -> Dict[str, Any]:
    p = WithdrawParams(**args)
    amount = service.controller.withdraw(as_address(p.caller))
    return {"account": p.caller, "amount": amount}


def set_referral_fee(service: RegistrarService, args: Mapping[str, Any]) -> Dict[str, Any]:
    p = ReferralFeeParams(**args)
    service.controller.set_referral_fee(as_address(p.caller), p.rate)
    return {"referralFee": service.controller.referral_fee}


def balance_of(service: RegistrarService, args: Mapping[str, Any]) -> Dict[str, Any]:
    q = AddressQuery(**args)
    return {"address": q.address, "balance": service.controller.balance_of(as_address(q.address))}


def bank_balance_of(service: RegistrarService, args: Mapping[str, Any]) -> Dict[str, Any]:
    q = AddressQuery(**args)
    return {"address": q.address, "balance": service.bank.balance_of(as_address(q.address))}


def get_events(service: RegistrarService, args: Optional[Mapping[str, Any]] = None) -> List[Dict[str, Any]]:
    q = EventsQuery(**(args or {}))
    return [r.to_dict() for r in service.sink.get_logs(event=q.event, from_seq=q.from_seq, limit=q.limit)]


def fund(service: RegistrarService, args: Mapping[str, Any]) -> Dict[str, Any]:
    q = FundParams(**args)
    if not service.config.dev_faucet:
        raise Unauthorized(caller=q.address, action="use the faucet")
    return {"address": q.address, "balance": service.fund(as_address(q.address), q.amount)}


# Public registry mapping JSON-RPC method names to callables.
# Each callable has signature: (service, args_dict) -> result
RPC_METHODS: Dict[str, Callable[..., Any]] = {
    "registrar.getParams": get_params,
    "registrar.valid": valid,
    "registrar.available": available,
    "registrar.rentPrice": rent_price,
    "registrar.makeCommitment": make_commitment_,
    "registrar.commit": commit,
    "registrar.getCommitment": get_commitment,
    "registrar.register": register,
    "registrar.renew": renew,
    "registrar.rentPriceBulk": rent_price_bulk,
    "registrar.renewAll": renew_all,
    "registrar.withdraw": withdraw,
    "registrar.setReferralFee": set_referral_fee,
    "registrar.balanceOf": balance_of,
    "registrar.bankBalanceOf": bank_balance_of,
    "registrar.getEvents": get_events,
    "registrar.fund": fund,
}

__all__ = [
    "NameQuery",
    "PriceQuery",
    "CommitmentParams",
    "IntentParams",
    "RegisterParams",
    "RenewParams",
    "BulkPriceQuery",
    "RenewAllParams",
    "WithdrawParams",
    "ReferralFeeParams",
    "AddressQuery",
    "EventsQuery",
    "FundParams",
    "RPC_METHODS",
]
