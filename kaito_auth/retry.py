"""Exponential backoff retry with jitter around transport calls.

The retry count and backoff are configured by the caller and wrap the
HTTP transport, never the auth manager's own state changes.
"""

from __future__ import annotations

import logging
import random
import time
from dataclasses import dataclass
from typing import Any, Callable, TypeVar

T = TypeVar("T")

logger = logging.getLogger(__name__)


@dataclass
class RetryPolicy:
    """How many times to retry and how long to wait in between."""
    max_retries: int = 3
    backoff: float = 1.0
    multiplier: float = 2.0
    max_delay: float = 30.0
    jitter: bool = True

    @property
    def max_attempts(self) -> int:
        return max(0, self.max_retries) + 1

    def delay_for(self, retry_number: int) -> float:
        """Base delay before retry ``retry_number`` (1-based), without jitter."""
        return min(self.backoff * (self.multiplier ** (retry_number - 1)), self.max_delay)


class RetryError(Exception):
    """Raised when all attempts are exhausted."""

    def __init__(self, attempts: int, last_error: Exception) -> None:
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"Failed after {attempts} attempts: {last_error}")


def call_with_retry(
    func: Callable[..., T],
    policy: RetryPolicy | None = None,
    retry_on: tuple[type[Exception], ...] = (OSError, ConnectionError),
    sleep_func: Callable[[float], None] | None = None,
    *args: Any,
    **kwargs: Any,
) -> T:
    """Call func, retrying on ``retry_on`` exceptions with backoff.

    Args:
        func: Callable to execute.
        policy: Retry policy. Uses defaults if None.
        retry_on: Exception types that trigger another attempt. Anything
            else propagates immediately.
        sleep_func: Sleep function (injectable for testing). Defaults to time.sleep.
        *args, **kwargs: Passed to func.

    Returns:
        The return value of func on success.

    Raises:
        RetryError: If every attempt raised a retryable exception.
    """
    cfg = policy or RetryPolicy()
    do_sleep = sleep_func or time.sleep
    last_exc: Exception | None = None

    for attempt in range(1, cfg.max_attempts + 1):
        try:
            return func(*args, **kwargs)
        except retry_on as exc:
            last_exc = exc
            if attempt == cfg.max_attempts:
                break

        delay = cfg.delay_for(attempt)
        if cfg.jitter:
            delay = delay * (0.5 + random.random() * 0.5)
        logger.warning(
            "Attempt %d/%d failed (%s); retrying in %.2fs",
            attempt, cfg.max_attempts, last_exc, delay,
        )
        do_sleep(delay)

    raise RetryError(cfg.max_attempts, last_exc)  # type: ignore[arg-type]
