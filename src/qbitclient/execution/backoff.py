"""Exponential backoff policy.

Computes how long the retry executor waits before attempt ``n + 1``:

    delay_for_attempt(n) = min(base_delay * factor ** n, max_delay)

The closed form is evaluated directly instead of multiplying in a loop, so
large attempt indices neither drift nor overflow.

Example:
    policy = BackoffPolicy(base_delay=1.0, max_delay=10.0, factor=2.0)
    [policy.delay_for_attempt(n) for n in range(6)]
    # [1.0, 2.0, 4.0, 8.0, 10.0, 10.0]
"""

from __future__ import annotations

import math
import random
from collections.abc import Callable

from qbitclient.core.config import RetryPolicy


class BackoffPolicy:
    """Pure exponential backoff with a ceiling.

    Optional jitter subtracts a random fraction of the computed delay, so
    the result never exceeds the ceiling. With jitter disabled (the default)
    the delay for a fixed attempt index is deterministic and non-decreasing
    in ``n``.
    """

    def __init__(
        self,
        base_delay: float,
        max_delay: float,
        factor: float = 2.0,
        jitter: float = 0.0,
        rng: Callable[[], float] = random.random,
    ) -> None:
        """Initialize the backoff policy.

        Args:
            base_delay: Delay in seconds for attempt 0.
            max_delay: Ceiling in seconds for any delay.
            factor: Multiplier per attempt (>= 1.0).
            jitter: Fraction in [0, 1) of the delay that may be randomly removed.
            rng: Source of uniform floats in [0, 1), injectable for tests.

        Raises:
            ValueError: If any parameter is out of range.
        """
        if base_delay < 0:
            raise ValueError("base_delay must be non-negative")
        if max_delay < 0:
            raise ValueError("max_delay must be non-negative")
        if factor < 1.0:
            raise ValueError("factor must be at least 1.0")
        if not 0.0 <= jitter < 1.0:
            raise ValueError("jitter must be in [0, 1)")

        self.base_delay = base_delay
        self.max_delay = max_delay
        self.factor = factor
        self.jitter = jitter
        self._rng = rng

    @classmethod
    def from_retry_policy(cls, policy: RetryPolicy, jitter: float = 0.0) -> BackoffPolicy:
        """Create a BackoffPolicy from a client's RetryPolicy."""
        return cls(
            base_delay=policy.base_delay,
            max_delay=policy.max_delay,
            factor=policy.backoff_factor,
            jitter=jitter,
        )

    def delay_for_attempt(self, attempt: int) -> float:
        """Seconds to wait after attempt ``attempt`` (0-based) fails.

        Raises:
            ValueError: If attempt is negative.
        """
        if attempt < 0:
            raise ValueError("attempt must be non-negative")

        try:
            raw = self.base_delay * math.pow(self.factor, attempt)
        except OverflowError:
            raw = math.inf if self.base_delay > 0 else 0.0
        delay = min(raw, self.max_delay)

        if self.jitter:
            delay -= delay * self.jitter * self._rng()
        return delay

    def iter_delays(self, count: int) -> list[float]:
        """Delays for attempts ``0 .. count - 1``."""
        return [self.delay_for_attempt(n) for n in range(count)]

    def __repr__(self) -> str:
        return (
            f"BackoffPolicy(base_delay={self.base_delay}, max_delay={self.max_delay}, "
            f"factor={self.factor}, jitter={self.jitter})"
        )
