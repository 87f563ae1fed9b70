"""Bounded retry for uniqueness collisions (ticket codes, order numbers)."""

from __future__ import annotations

import random
import time
from typing import Callable, TypeVar

import structlog

from storefront.domain.exceptions import ConflictError, InternalError

logger = structlog.get_logger(__name__)

T = TypeVar("T")

DEFAULT_MAX_ATTEMPTS = 5
DEFAULT_BASE_DELAY = 0.01


def retry_on_conflict(
    attempt: Callable[[int], T],
    *,
    what: str,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    base_delay: float = DEFAULT_BASE_DELAY,
    sleep: Callable[[float], None] = time.sleep,
    rng: random.Random | None = None,
) -> T:
    """Call ``attempt(n)`` until it stops raising ConflictError.

    Backoff is exponential with full jitter.  Raises InternalError once
    *max_attempts* calls have collided.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")
    jitter = rng or random.Random()
    for number in range(1, max_attempts + 1):
        try:
            return attempt(number)
        except ConflictError as exc:
            if number == max_attempts:
                logger.error("retry.exhausted", what=what, attempts=number, error=str(exc))
                break
            delay = jitter.uniform(0, base_delay * (2 ** (number - 1)))
            logger.warning("retry.collision", what=what, attempt=number, retry_in=round(delay, 4))
            sleep(delay)
    raise InternalError(f"Could not allocate a unique {what} after {max_attempts} attempts")
