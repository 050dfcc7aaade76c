"""Bounded retry with capped exponential backoff for page fetches."""

from __future__ import annotations

import time
from dataclasses import dataclass
from threading import Event


@dataclass(frozen=True)
class RetryPolicy:
    """How many times to try a request and how long to wait in between."""

    max_attempts: int = 3
    base_delay: float = 0.5
    max_delay: float = 8.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.base_delay < 0 or self.max_delay < 0:
            raise ValueError("retry delays must be non-negative")

    def delay_for(self, attempt: int) -> float:
        """Delay to apply after the given (1-based) failed attempt."""

        return min(self.base_delay * (2 ** (attempt - 1)), self.max_delay)

    def new_context(self) -> "RetryContext":
        return RetryContext(max_attempts=self.max_attempts)


@dataclass
class RetryContext:
    """Attempt bookkeeping for a single request."""

    max_attempts: int
    attempt: int = 1
    last_exception: Exception | None = None

    def record_failure(self, error: Exception) -> None:
        self.last_exception = error
        self.attempt += 1

    def should_retry(self) -> bool:
        return self.attempt <= self.max_attempts


def wait(delay: float, cancel_event: Event | None) -> bool:
    """Sleep for ``delay`` seconds; return False if the run was cancelled meanwhile."""

    if cancel_event is None:
        if delay > 0:
            time.sleep(delay)
        return True
    return not cancel_event.wait(delay)


__all__ = ["RetryContext", "RetryPolicy", "wait"]
