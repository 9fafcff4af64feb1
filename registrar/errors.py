# Copyright (c) Animica.
# SPDX-License-Identifier: MIT
"""
registrar.errors — typed failures of the registration protocol.

Every rejected operation surfaces as a *typed exception* carrying a stable
machine code. Higher layers (RPC, CLI) convert these into structured error
payloads via :meth:`RegistrarError.to_dict`. A raised error is always scoped to
the single attempted operation: the controller rolls the operation back before
the exception leaves it.

Hierarchy
---------
RegistrarError (base)
 ├─ PreconditionError          : caller-side input/payment problems
 │   ├─ InsufficientValue      : attached value below the required amount
 │   ├─ InvalidName            : label shorter than the minimum length
 │   ├─ DurationTooShort       : duration below the registration floor
 │   ├─ ResolverRequired       : record data supplied with the null resolver
 │   ├─ MalformedRecordCall    : record payload too short / undecodable
 │   ├─ RecordNodeMismatch     : record call targets a different name
 │   └─ NothingToWithdraw      : withdrawal with a zero balance
 ├─ CommitmentError            : commit–reveal window violations
 │   ├─ CommitmentNotFound
 │   ├─ CommitmentTooNew
 │   ├─ CommitmentTooOld
 │   └─ UnexpiredCommitmentExists
 ├─ CollaboratorError          : failures reported by collaborating subsystems
 │   ├─ NameUnavailable
 │   ├─ NameNotRenewable
 │   ├─ ResolverCallFailed
 │   ├─ TransferFailed
 │   └─ InsufficientFunds
 ├─ AuthorizationError
 │   ├─ Unauthorized
 │   └─ InvalidReferralFee
 └─ StorageError

`InvalidName` is also a `NameUnavailable` so callers that only care about
"can this name be taken" can catch one type.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass
class RegistrarError(Exception):
    """
    Base registrar error.

    Attributes:
        message: Human-readable explanation.
        code:    Stable machine code string (e.g., 'INSUFFICIENT_VALUE').
        data:    Optional structured details (kept JSON-serializable).
    """
    message: str = "registrar error"
    code: str = "REGISTRAR_ERROR"
    data: Optional[Dict[str, Any]] = field(default=None)

    def __str__(self) -> str:  # pragma: no cover - trivial
        if self.data:
            return f"{self.code}: {self.message} ({self.data})"
        return f"{self.code}: {self.message}"

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to a JSON-safe dict for RPC errors and logs."""
        out: Dict[str, Any] = {"code": self.code, "message": self.message}
        if self.data is not None:
            out["data"] = self.data
        return out


def _merge(data: Optional[Dict[str, Any]], **fields: Any) -> Optional[Dict[str, Any]]:
    d: Dict[str, Any] = {}
    if data:
        d.update(data)
    for k, v in fields.items():
        if v is not None:
            d.setdefault(k, v)
    return d or None


# -------- grouping bases -----------------------------------------------------


class PreconditionError(RegistrarError):
    def __init__(self, message: str = "precondition failed", *, code: str = "PRECONDITION",
                 data: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, code=code, data=data)


class CommitmentError(RegistrarError):
    def __init__(self, message: str = "commitment invalid", *, code: str = "COMMITMENT_INVALID",
                 data: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, code=code, data=data)


class CollaboratorError(RegistrarError):
    def __init__(self, message: str = "collaborator failure", *, code: str = "COLLABORATOR",
                 data: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, code=code, data=data)


class AuthorizationError(RegistrarError):
    def __init__(self, message: str = "not authorized", *, code: str = "UNAUTHORIZED",
                 data: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, code=code, data=data)


# -------- preconditions ------------------------------------------------------


class InsufficientValue(PreconditionError):
    """Attached value does not cover the price."""

    def __init__(self, *, required: int, provided: int, data: Optional[Dict[str, Any]] = None):
        super().__init__(
            "not enough value provided",
            code="INSUFFICIENT_VALUE",
            data=_merge(data, required=required, provided=provided),
        )
        self.required = required
        self.provided = provided


class DurationTooShort(PreconditionError):
    def __init__(self, *, duration: int, minimum: int):
        super().__init__(
            "duration below the minimum registration duration",
            code="DURATION_TOO_SHORT",
            data={"duration": duration, "minimum": minimum},
        )


class ResolverRequired(PreconditionError):
    def __init__(self) -> None:
        super().__init__("resolver is required when data is supplied", code="RESOLVER_REQUIRED")


class MalformedRecordCall(PreconditionError):
    def __init__(self, reason: str, *, index: Optional[int] = None):
        super().__init__(
            f"malformed record call: {reason}",
            code="MALFORMED_RECORD_CALL",
            data=_merge(None, index=index),
        )


class RecordNodeMismatch(PreconditionError):
    """A record call targets a node other than the one being registered."""

    def __init__(self, *, expected: str, got: str, index: int):
        super().__init__(
            "namehash on record does not match the name being registered",
            code="RECORD_NODE_MISMATCH",
            data={"expected": expected, "got": got, "index": index},
        )


class NothingToWithdraw(PreconditionError):
    def __init__(self, *, account: str):
        super().__init__("nothing to withdraw", code="NOTHING_TO_WITHDRAW", data={"account": account})


# -------- commitment windows -------------------------------------------------


class CommitmentNotFound(CommitmentError):
    def __init__(self, *, commitment: str):
        super().__init__("no such commitment", code="COMMITMENT_NOT_FOUND",
                         data={"commitment": commitment})


class CommitmentTooNew(CommitmentError):
    """Reveal attempted before the minimum commitment age elapsed."""

    def __init__(self, *, commitment: str, now: int, reveal_open: int):
        super().__init__(
            "commitment is too new",
            code="COMMITMENT_TOO_NEW",
            data={"commitment": commitment, "now": now, "reveal_open": reveal_open},
        )


class CommitmentTooOld(CommitmentError):
    """Commitment passed its max age without being consumed."""

    def __init__(self, *, commitment: str, now: int, expired_at: int):
        super().__init__(
            "commitment has expired",
            code="COMMITMENT_TOO_OLD",
            data={"commitment": commitment, "now": now, "expired_at": expired_at},
        )


class UnexpiredCommitmentExists(CommitmentError):
    def __init__(self, *, commitment: str, accepted_at: int):
        super().__init__(
            "an unexpired commitment already exists",
            code="UNEXPIRED_COMMITMENT_EXISTS",
            data={"commitment": commitment, "accepted_at": accepted_at},
        )


# -------- collaborators ------------------------------------------------------


class NameUnavailable(CollaboratorError):
    def __init__(self, name: str, *, message: str = "name is unavailable",
                 code: str = "NAME_UNAVAILABLE"):
        super().__init__(message, code=code, data={"name": name})
        self.name = name


class InvalidName(NameUnavailable):
    def __init__(self, name: str):
        super().__init__(name, message="name is too short", code="INVALID_NAME")


class NameNotRenewable(CollaboratorError):
    def __init__(self, *, label_hash: str):
        super().__init__("name is not registered or past its grace period",
                         code="NAME_NOT_RENEWABLE", data={"label_hash": label_hash})


class ResolverCallFailed(CollaboratorError):
    """Forwarding a record call to the resolver failed."""

    def __init__(self, reason: str, *, resolver: str, index: Optional[int] = None):
        super().__init__(
            "failed to set record",
            code="RESOLVER_CALL_FAILED",
            data=_merge(None, reason=reason, resolver=resolver, index=index),
        )
        self.reason = reason


class TransferFailed(CollaboratorError):
    def __init__(self, *, recipient: str, amount: int, reason: Optional[str] = None):
        super().__init__(
            "outbound transfer failed",
            code="TRANSFER_FAILED",
            data=_merge(None, recipient=recipient, amount=amount, reason=reason),
        )


class InsufficientFunds(CollaboratorError):
    def __init__(self, *, account: str, balance: int, amount: int):
        super().__init__(
            "account balance too low",
            code="INSUFFICIENT_FUNDS",
            data={"account": account, "balance": balance, "amount": amount},
        )


# -------- authorization ------------------------------------------------------


class Unauthorized(AuthorizationError):
    def __init__(self, *, caller: str, action: str):
        super().__init__(f"caller may not {action}", code="UNAUTHORIZED",
                         data={"caller": caller, "action": action})


class InvalidReferralFee(AuthorizationError):
    def __init__(self, *, rate: int, maximum: int):
        super().__init__("referral fee out of range", code="INVALID_REFERRAL_FEE",
                         data={"rate": rate, "maximum": maximum})


# -------- storage ------------------------------------------------------------


class StorageError(RegistrarError):
    def __init__(self, message: str = "storage error", *, data: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, code="STORAGE_ERROR", data=data)


__all__ = [
    "RegistrarError",
    "PreconditionError",
    "CommitmentError",
    "CollaboratorError",
    "AuthorizationError",
    "InsufficientValue",
    "DurationTooShort",
    "ResolverRequired",
    "MalformedRecordCall",
    "RecordNodeMismatch",
    "NothingToWithdraw",
    "CommitmentNotFound",
    "CommitmentTooNew",
    "CommitmentTooOld",
    "UnexpiredCommitmentExists",
    "NameUnavailable",
    "InvalidName",
    "NameNotRenewable",
    "ResolverCallFailed",
    "TransferFailed",
    "InsufficientFunds",
    "Unauthorized",
    "InvalidReferralFee",
    "StorageError",
]
