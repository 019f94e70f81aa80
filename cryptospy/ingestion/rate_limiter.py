"""Sliding window rate limiter for API calls."""

import asyncio
import logging
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

logger = logging.getLogger(__name__)

# Extra wait past the window edge so the oldest request has surely left it
SLOT_BUFFER = 0.1


@dataclass
class SlidingWindowRateLimiter:
    """Sliding window rate limiter with failure-driven backoff.

    Attributes:
        max_requests: Maximum requests inside the trailing window
        window: Window length in seconds
        max_backoff_multiplier: Ceiling for the backoff multiplier
        consecutive_failures: Failures recorded since the last success
        backoff_multiplier: Factor (>= 1) applied to retry delays
    """

    max_requests: int
    window: float  # seconds
    max_backoff_multiplier: float = 32.0
    consecutive_failures: int = field(default=0, init=False)
    backoff_multiplier: float = field(default=1.0, init=False)
    clock: Callable[[], float] = field(default=time.monotonic, repr=False)
    sleep: Callable[[float], Awaitable[Any]] = field(default=asyncio.sleep, repr=False)
    _timestamps: deque[float] = field(default_factory=deque, init=False, repr=False)

    @classmethod
    def from_per_minute(cls, requests_per_minute: int, **kwargs: Any) -> "SlidingWindowRateLimiter":
        """Create rate limiter from requests per minute."""
        return cls(max_requests=requests_per_minute, window=60.0, **kwargs)

    def _prune(self, now: float) -> None:
        """Drop timestamps that have left the trailing window."""
        while self._timestamps and now - self._timestamps[0] >= self.window:
            self._timestamps.popleft()

    def can_make_request(self) -> bool:
        self._prune(self.clock())
        return len(self._timestamps) < self.max_requests

    def record_request(self) -> None:
        """Record a dispatched request."""
        self._timestamps.append(self.clock())

    def record_failure(self) -> None:
        """Record a failure, doubling the backoff multiplier up to its cap."""
        self.consecutive_failures += 1
        self.backoff_multiplier = min(self.backoff_multiplier * 2, self.max_backoff_multiplier)
        logger.debug(
            "Rate limiter failure #%d, backoff x%.0f",
            self.consecutive_failures,
            self.backoff_multiplier,
        )

    def record_success(self) -> None:
        """Reset failure state after a successful request."""
        self.consecutive_failures = 0
        self.backoff_multiplier = 1.0

    async def wait_for_next_slot(self) -> float:
        """Suspend until the window has capacity.

        Returns:
            Total time waited in seconds (0 if capacity was available)
        """
        waited = 0.0
        while not self.can_make_request():
            oldest = self._timestamps[0]
            wait_time = self.window - (self.clock() - oldest) + SLOT_BUFFER
            logger.info("Rate limit reached, waiting %.2fs for next slot", wait_time)
            await self.sleep(wait_time)
            waited += wait_time
        return waited

    @property
    def requests_in_window(self) -> int:
        """Count in-window requests without pruning."""
        now = self.clock()
        return sum(1 for ts in self._timestamps if now - ts < self.window)

    def stats(self) -> dict[str, Any]:
        return {
            "requests_in_window": self.requests_in_window,
            "max_requests": self.max_requests,
            "backoff_multiplier": self.backoff_multiplier,
            "consecutive_failures": self.consecutive_failures,
        }
