"""Retry strategy for calls that leave the process."""
import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Tuple, Type, TypeVar

from kvocab.exceptions import RetryExhaustedError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def linear_backoff(base_seconds: float) -> Callable[[int], float]:
    """Backoff that waits base, 2*base, 3*base... after each failed attempt."""
    def backoff(attempt: int) -> float:
        return base_seconds * attempt
    return backoff


@dataclass
class RetryPolicy:
    """Fixed-count retries with a pluggable backoff.

    attempt numbers passed to backoff start at 1 (the first failure).
    """
    max_attempts: int = 3
    backoff: Callable[[int], float] = field(default_factory=lambda: linear_backoff(1.0))
    retry_on: Tuple[Type[BaseException], ...] = (Exception,)
    sleep: Callable[[float], None] = time.sleep

    @classmethod
    def from_settings(cls, retry_settings, **kwargs) -> "RetryPolicy":
        return cls(
            max_attempts=retry_settings.max_attempts,
            backoff=linear_backoff(retry_settings.backoff_seconds),
            **kwargs,
        )

    def call(self, operation: str, func: Callable[..., T], *args, **kwargs) -> T:
        """Run func, retrying on retry_on errors; raise RetryExhaustedError at the end."""
        last_exception = None
        for attempt in range(1, self.max_attempts + 1):
            try:
                return func(*args, **kwargs)
            except self.retry_on as e:
                last_exception = e
                if attempt < self.max_attempts:
                    delay = self.backoff(attempt)
                    logger.warning(
                        f"[{operation}] Attempt {attempt}/{self.max_attempts} failed ({e}), "
                        f"retrying in {delay:.1f}s..."
                    )
                    self.sleep(delay)

        logger.error(f"[{operation}] failed after {self.max_attempts} attempts")
        raise RetryExhaustedError(operation, self.max_attempts, last_exception)


# Single attempt, no waiting
NO_RETRY = RetryPolicy(max_attempts=1, backoff=lambda attempt: 0.0)
