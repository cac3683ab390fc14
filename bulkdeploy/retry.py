"""Bounded retry with exponential backoff for idempotent network calls."""

from __future__ import annotations

import logging
import random
import time
from dataclasses import dataclass
from typing import Callable, TypeVar

from .errors import StorageError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 3
    base_delay_s: float = 0.5
    max_delay_s: float = 4.0
    jitter: bool = True

    def delay_for(self, attempt: int) -> float:
        """Backoff before the attempt following `attempt` (1-based)."""
        base = max(0.0, self.base_delay_s)
        delay = min(max(base, self.max_delay_s), base * (2 ** (attempt - 1)))
        if self.jitter and delay > 0:
            delay += random.uniform(0.0, delay)
        return delay


NO_RETRY = RetryPolicy(max_attempts=1, base_delay_s=0.0, max_delay_s=0.0, jitter=False)


def call_with_retry(
    fn: Callable[[], T],
    policy: RetryPolicy,
    *,
    what: str,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """
    Call `fn`, retrying on retryable StorageError until the policy is exhausted.

    Non-retryable errors and any other exception propagate immediately.
    """
    max_attempts = max(1, int(policy.max_attempts))
    attempt = 0
    while True:
        attempt += 1
        try:
            return fn()
        except StorageError as e:
            if not e.retryable or attempt >= max_attempts:
                raise
            delay = policy.delay_for(attempt)
            logger.warning(
                "%s retry attempt=%s/%s delay=%.3fs reason=%s",
                what,
                attempt,
                max_attempts,
                delay,
                e,
            )
            sleep(delay)
