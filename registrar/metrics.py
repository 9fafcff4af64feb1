# Copyright (c) Animica.
# SPDX-License-Identifier: MIT
"""
Prometheus metrics for the registrar.

Instruments:
  • commits_total{outcome}        — commitment submissions
  • registrations_total{outcome}  — register attempts
  • renewals_total{outcome}       — renew attempts (bulk renewals count per name)
  • withdrawals_total{outcome}    — withdrawal attempts
  • fees_credited_total{party}    — value credited to the fee ledger
  • operation_seconds{op}         — latency of state-mutating operations

Outcome labels use a small fixed vocabulary derived from the error family, so
label cardinality stays bounded regardless of what callers send.

Usage
-----
    from registrar.metrics import METRICS

    METRICS.record("registrations", "ok")
    with METRICS.timer("register"):
        ...

Tests construct their own `Metrics` with a fresh `CollectorRegistry`.
"""

from __future__ import annotations

from contextlib import contextmanager
from time import perf_counter
from typing import Iterable, Iterator, Optional

from prometheus_client import REGISTRY, Counter, Histogram

from .errors import (AuthorizationError, CollaboratorError, CommitmentError,
                     PreconditionError)

_OUTCOMES = (
    "ok",            # operation landed
    "precondition",  # bad input / insufficient value / nothing to withdraw
    "commitment",    # commit-reveal window violation
    "collaborator",  # ledger, resolver or transfer failure
    "unauthorized",  # privileged call by a non-operator
    "error",         # anything else
)

_FAMILIES = ("commits", "registrations", "renewals", "withdrawals")

_PARTIES = ("referrer", "operator")

_OPERATIONS = ("commit", "register", "renew", "renew_all", "withdraw", "set_referral_fee")

_LATENCY_BUCKETS = (
    0.0005, 0.001, 0.0025, 0.005,
    0.01, 0.025, 0.05, 0.1,
    0.25, 0.5, 1.0,
)


def outcome_for(err: Optional[BaseException]) -> str:
    """Map an exception (or None) to an outcome label."""
    if err is None:
        return "ok"
    if isinstance(err, PreconditionError):
        return "precondition"
    if isinstance(err, CommitmentError):
        return "commitment"
    if isinstance(err, CollaboratorError):
        return "collaborator"
    if isinstance(err, AuthorizationError):
        return "unauthorized"
    return "error"


class Metrics:
    """
    Container for all registrar Prometheus instruments.

    Args:
        namespace: Prometheus metric namespace (prefix).
        subsystem: Prometheus metric subsystem.
        registry:  Prometheus registry to register the metrics with.
    """

    def __init__(
        self,
        *,
        namespace: str = "animica",
        subsystem: str = "registrar",
        registry=REGISTRY,
        latency_buckets: Iterable[float] = _LATENCY_BUCKETS,
    ) -> None:
        self.registry = registry

        def _counter(name: str, doc: str, label: str) -> Counter:
            return Counter(name, doc, labelnames=(label,), namespace=namespace,
                           subsystem=subsystem, registry=registry)

        self.commits_total = _counter(
            "commits_total", "Commitment submissions processed, labeled by outcome.", "outcome")
        self.registrations_total = _counter(
            "registrations_total", "Registration attempts, labeled by outcome.", "outcome")
        self.renewals_total = _counter(
            "renewals_total", "Renewal attempts, labeled by outcome.", "outcome")
        self.withdrawals_total = _counter(
            "withdrawals_total", "Withdrawal attempts, labeled by outcome.", "outcome")
        self.fees_credited_total = _counter(
            "fees_credited_total", "Value credited to the fee ledger, labeled by party.", "party")

        self.operation_seconds = Histogram(
            "operation_seconds",
            "Latency of state-mutating registrar operations (seconds).",
            labelnames=("op",),
            buckets=tuple(latency_buckets),
            namespace=namespace,
            subsystem=subsystem,
            registry=registry,
        )

    # ----- Recording helpers -------------------------------------------------

    def record(self, family: str, outcome: str) -> None:
        """Increment ``<family>_total`` for an outcome in the fixed vocabulary."""
        if family not in _FAMILIES:
            raise ValueError(f"unknown metric family: {family}")
        if outcome not in _OUTCOMES:
            outcome = "error"
        getattr(self, f"{family}_total").labels(outcome=outcome).inc()

    def record_fees(self, *, referrer: int, operator: int) -> None:
        if referrer:
            self.fees_credited_total.labels(party="referrer").inc(referrer)
        if operator:
            self.fees_credited_total.labels(party="operator").inc(operator)

    @contextmanager
    def timer(self, op: str) -> Iterator[None]:
        if op not in _OPERATIONS:
            op = "other"
        start = perf_counter()
        try:
            yield
        finally:
            self.operation_seconds.labels(op=op).observe(perf_counter() - start)


# Singleton used by default
METRICS = Metrics()

__all__ = [
    "Metrics",
    "METRICS",
    "outcome_for",
]
