# Copyright (c) Animica.
# SPDX-License-Identifier: MIT
"""
registrar.service — wire a complete registrar from a config.

`build_service(cfg)` opens the state store and event sink, builds the shared
journal and block clock, the in-memory collaborators, the controller and the
bulk renewer, and returns them bundled in a `RegistrarService` used by the RPC
app and the CLI.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from .adapters.memory import (Directory, InMemoryBank, InMemoryBaseRegistrar,
                              InMemoryNameWrapper, InMemoryReverseRegistrar,
                              PublicResolver)
from .bulk import BulkRenewal
from .config import RegistrarConfig
from .controller import RegistrarController
from .fees import FeeLedger
from .metrics import METRICS, Metrics
from .pricing import StablePricing
from .records import RecordBinder
from .state.events import EventSink, InMemoryEventSink, JsonlEventSink
from .state.journal import Journal
from .store import KeyValue, open_store
from .utils.hash import derive_address
from .utils.time import BlockClock, Clock, SystemClock

logger = logging.getLogger(__name__)


@dataclass
class RegistrarService:
    config: RegistrarConfig
    kv: KeyValue
    sink: EventSink
    journal: Journal
    clock: BlockClock
    bank: InMemoryBank
    base_registrar: InMemoryBaseRegistrar
    name_wrapper: InMemoryNameWrapper
    resolver: PublicResolver
    reverse_registrar: InMemoryReverseRegistrar
    directory: Directory
    fees: FeeLedger
    controller: RegistrarController
    bulk: BulkRenewal
    metrics: Metrics

    def fund(self, addr: bytes, amount: int) -> int:
        """Mint bank balance (devnet faucet); returns the new balance."""
        with self.controller.atomic():
            self.bank.mint(addr, amount)
        return self.bank.balance_of(addr)

    def close(self) -> None:
        self.sink.close()
        self.kv.close()


def build_service(
    cfg: Optional[RegistrarConfig] = None,
    *,
    clock: Optional[Clock] = None,
    metrics: Optional[Metrics] = None,
) -> RegistrarService:
    cfg = cfg if cfg is not None else RegistrarConfig()
    cfg.validate()
    metrics = metrics if metrics is not None else METRICS

    kv = open_store(cfg.storage.state_uri)
    sink: EventSink = (
        JsonlEventSink(cfg.storage.events_path) if cfg.storage.events_path else InMemoryEventSink()
    )
    journal = Journal(kv, sink)
    block_clock = BlockClock(clock if clock is not None else SystemClock())

    bank = InMemoryBank(journal)
    base = InMemoryBaseRegistrar(journal, block_clock, grace_period=cfg.grace_period)
    wrapper = InMemoryNameWrapper(journal, base, tld=cfg.tld)
    resolver = PublicResolver(journal)
    directory = Directory()
    directory.register(resolver.address, resolver)
    reverse = InMemoryReverseRegistrar(journal, directory)

    controller_address = derive_address("controller")
    fees = FeeLedger(
        journal,
        bank,
        operator=cfg.operator_bytes,
        account=controller_address,
        referral_fee=cfg.referral_fee,
    )
    pricing = StablePricing(
        cfg.pricing.rent_prices,
        block_clock,
        start_premium=cfg.pricing.start_premium,
        premium_half_life=cfg.pricing.premium_half_life_s,
        premium_duration=cfg.pricing.premium_duration_s,
        grace_period=cfg.grace_period,
    )
    controller = RegistrarController(
        journal,
        block_clock,
        address=controller_address,
        base_registrar=base,
        name_wrapper=wrapper,
        pricing=pricing,
        reverse_registrar=reverse,
        records=RecordBinder(directory),
        fees=fees,
        bank=bank,
        min_commitment_age=cfg.min_commitment_age,
        max_commitment_age=cfg.max_commitment_age,
        min_registration_duration=cfg.min_registration_duration,
        tld=cfg.tld,
        metrics=metrics,
    )
    logger.info(
        "registrar service ready",
        extra={"state_uri": cfg.storage.state_uri, "tld": cfg.tld},
    )
    return RegistrarService(
        config=cfg,
        kv=kv,
        sink=sink,
        journal=journal,
        clock=block_clock,
        bank=bank,
        base_registrar=base,
        name_wrapper=wrapper,
        resolver=resolver,
        reverse_registrar=reverse,
        directory=directory,
        fees=fees,
        controller=controller,
        bulk=BulkRenewal(controller),
        metrics=metrics,
    )


__all__ = ["RegistrarService", "build_service"]
