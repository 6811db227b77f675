"""Backoff policy for retrying event publishes."""

import random
from dataclasses import dataclass
from enum import Enum


class BackoffType(Enum):
    """How the wait grows between publish attempts."""

    EXPONENTIAL = "exponential"
    LINEAR = "linear"
    FIXED = "fixed"


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded retry with a capped, optionally jittered backoff.

    ``max_retries`` counts retries after the first attempt, so a policy with
    ``max_retries=0`` publishes exactly once.
    """

    max_retries: int = 3
    backoff_type: BackoffType = BackoffType.EXPONENTIAL
    initial_delay_ms: int = 1000
    max_delay_ms: int = 10000
    jitter: bool = True

    def __post_init__(self):
        if self.max_retries < 0:
            raise ValueError("max_retries must be non-negative")
        if self.initial_delay_ms < 0:
            raise ValueError("initial_delay_ms must be non-negative")
        if self.max_delay_ms < self.initial_delay_ms:
            raise ValueError("max_delay_ms must be >= initial_delay_ms")

    @classmethod
    def from_settings(cls, settings) -> "RetryPolicy":
        """Publish retry policy from SharingSettings."""
        return cls(
            max_retries=settings.publish_max_retries,
            initial_delay_ms=settings.publish_initial_delay_ms,
            max_delay_ms=max(settings.publish_max_delay_ms, settings.publish_initial_delay_ms),
        )

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    def should_retry(self, attempt: int) -> bool:
        """Whether retry number ``attempt`` (1-based) is still allowed."""
        return 0 < attempt <= self.max_retries

    def calculate_delay(self, attempt: int) -> int:
        """Milliseconds to wait before retry number ``attempt`` (1-based)."""
        if attempt <= 0:
            return 0

        growth = {
            BackoffType.EXPONENTIAL: 2 ** (attempt - 1),
            BackoffType.LINEAR: attempt,
            BackoffType.FIXED: 1,
        }[self.backoff_type]
        delay = min(self.initial_delay_ms * growth, self.max_delay_ms)

        if self.jitter and delay > 0:
            spread = delay // 10
            delay = max(0, delay + random.randint(-spread, spread))
        return delay
