"""Allocation of sequential, per-day order numbers.

Allocation reads the highest number for today's prefix and inserts the
next one.  The ledger's unique constraint turns a concurrent allocation
of the same number into a ConflictError, and the allocation is retried
from a fresh read.
"""

from __future__ import annotations

import random
import time
from datetime import datetime, timezone
from typing import Callable

import structlog

from storefront.application.retry import (
    DEFAULT_BASE_DELAY,
    DEFAULT_MAX_ATTEMPTS,
    retry_on_conflict,
)
from storefront.domain.model.order import Order
from storefront.domain.repository.order_ledger import OrderLedger
from storefront.domain.service.identifiers import next_order_number, order_number_prefix

logger = structlog.get_logger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class OrderNumberAllocator:

    def __init__(
        self,
        order_ledger: OrderLedger,
        clock: Callable[[], datetime] = _utc_now,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        base_delay: float = DEFAULT_BASE_DELAY,
        sleep: Callable[[float], None] = time.sleep,
        rng: random.Random | None = None,
    ) -> None:
        self._order_ledger = order_ledger
        self._clock = clock
        self._max_attempts = max_attempts
        self._base_delay = base_delay
        self._sleep = sleep
        self._rng = rng

    def persist_new(self, order: Order) -> Order:
        """Assign the next free order number and insert the order."""

        def attempt(_: int) -> Order:
            day = self._clock().astimezone(timezone.utc).date()
            latest = self._order_ledger.latest_number_with_prefix(order_number_prefix(day))
            order.order_number = next_order_number(day, latest)
            self._order_ledger.add(order)
            return order

        persisted = retry_on_conflict(
            attempt,
            what="order number",
            max_attempts=self._max_attempts,
            base_delay=self._base_delay,
            sleep=self._sleep,
            rng=self._rng,
        )
        logger.info("order.number_allocated", order_number=persisted.order_number)
        return persisted
