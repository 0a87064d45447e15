"""
Retry policy with configurable exponential backoff and jitter.

The transfer pipeline consults a :class:`RetryPolicy` after every
retryable failure to decide whether to try again and how long to wait.
"""

from __future__ import annotations

import random

from pydantic import BaseModel, ConfigDict, Field, model_validator


class RetryPolicy(BaseModel):
    """Exponential backoff settings for transfer attempts.

    Attributes:
        max_attempts: Total attempts per request, including the first.
        base_delay: Delay in seconds before the first retry.
        backoff_factor: Multiplier applied to the delay after each retry.
        max_delay: Cap on the delay between retries.
        jitter: Fractional spread applied to each capped delay (0.2 means
            ±20%), so a capped delay can reach ``max_delay * (1 + jitter)``.
        attempt_timeout: Timeout handed to the transport for a single
            attempt, or None to rely on the transport's own defaults.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    max_attempts: int = Field(default=4, ge=1)
    base_delay: float = Field(default=0.2, ge=0)
    backoff_factor: float = Field(default=2.0, ge=1)
    max_delay: float = Field(default=5.0, ge=0)
    jitter: float = Field(default=0.2, ge=0, lt=1)
    attempt_timeout: float | None = Field(default=30.0, gt=0)

    @model_validator(mode="after")
    def check_delays(self) -> RetryPolicy:
        if self.max_delay < self.base_delay:
            raise ValueError("max_delay must be >= base_delay")
        return self

    def delay_for(self, attempt: int, rng: random.Random | None = None) -> float:
        """Seconds to wait after the *attempt*-th failure (1-based)."""
        delay = min(self.base_delay * self.backoff_factor ** (attempt - 1), self.max_delay)
        if self.jitter:
            delay *= (rng or random).uniform(1 - self.jitter, 1 + self.jitter)
        return delay

    def should_retry(self, attempt: int) -> bool:
        return attempt < self.max_attempts
