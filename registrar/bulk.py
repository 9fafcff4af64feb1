# Copyright (c) Animica.
# SPDX-License-Identifier: MIT
"""
registrar.bulk — renew many names in one atomic step.

``renew_all`` runs every renewal inside one controller checkpoint: if any
name cannot be renewed the whole batch is rolled back. Metrics and logs are
recorded once the batch has landed (one rejected outcome if it has not). Each renewal pays its
own base price; whatever the caller attached beyond the sum is simply never
collected, which is the refund.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Sequence, Tuple

from .constants import NULL_ADDRESS
from .controller import RegistrarController
from .errors import InsufficientValue, RegistrarError
from .metrics import outcome_for
from .types.core import RenewalResult
from .utils.bytes import as_address

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BulkRenewalResult:
    renewals: Tuple[RenewalResult, ...]
    cost: int
    refund: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "renewals": [r.to_dict() for r in self.renewals],
            "cost": self.cost,
            "refund": self.refund,
        }


class BulkRenewal:
    def __init__(self, controller: RegistrarController) -> None:
        self._controller = controller

    def rent_price(self, names: Sequence[str], duration: int) -> int:
        """Sum of ``base + premium`` over ``names``."""
        return sum(self._controller.rent_price(name, duration).total for name in names)

    def renew_all(
        self,
        caller: bytes,
        names: Sequence[str],
        duration: int,
        value: int,
        referrer: bytes = NULL_ADDRESS,
    ) -> BulkRenewalResult:
        c = self._controller
        caller = as_address(caller, name="caller")
        referrer = as_address(referrer, name="referrer")
        metrics = c.metrics
        try:
            with metrics.timer("renew_all"), c.atomic() as now:
                costs: List[int] = [c.rent_price(name, duration).base for name in names]
                total = sum(costs)
                if value < total:
                    raise InsufficientValue(required=total, provided=value)
                settled = [
                    c.apply_renewal(caller, name, duration, cost, referrer, now)
                    for name, cost in zip(names, costs)
                ]
        except RegistrarError as e:
            logger.info("renew_all rejected: %s", e.code, extra={"names": len(names), "code": e.code})
            metrics.record("renewals", outcome_for(e))
            raise

        for result, share in settled:
            metrics.record("renewals", "ok")
            metrics.record_fees(referrer=share, operator=result.cost - share)
        logger.info("bulk renewal", extra={"names": len(names), "cost": total})
        return BulkRenewalResult(
            renewals=tuple(result for result, _ in settled), cost=total, refund=value - total,
        )


__all__ = ["BulkRenewal", "BulkRenewalResult"]
