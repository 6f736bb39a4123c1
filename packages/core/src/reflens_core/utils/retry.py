"""Bounded retry with exponential backoff."""

from __future__ import annotations

import logging
import time
from typing import Callable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_RETRIES = 3
DEFAULT_DELAY_MS = 1000
DEFAULT_BACKOFF = 2


def backoff_delays(retries: int, delay_ms: int, backoff: float) -> list[float]:
    """Return the waits (ms) between consecutive attempts: delay_ms * backoff**(i-1)."""
    return [delay_ms * backoff ** (attempt - 1) for attempt in range(1, retries + 1)]


def retry(
    operation: Callable[[int], T],
    retries: int = DEFAULT_RETRIES,
    delay_ms: int = DEFAULT_DELAY_MS,
    backoff: float = DEFAULT_BACKOFF,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Call ``operation`` up to ``retries + 1`` times.

    ``operation`` receives the 1-based attempt number, which lets callers do
    extra work on later attempts (e.g. check whether an earlier attempt
    actually succeeded server-side).

    The exception from the final attempt is re-raised unchanged so the caller
    still sees its own error type.
    """
    total = retries + 1
    delays = backoff_delays(retries, delay_ms, backoff)
    for attempt in range(1, total + 1):
        try:
            return operation(attempt)
        except Exception as e:
            if attempt >= total:
                raise
            wait = delays[attempt - 1]
            logger.warning("Attempt %d/%d failed: %s. Retrying in %dms...", attempt, total, e, wait)
            sleep(wait / 1000)
    raise AssertionError("unreachable")  # pragma: no cover
