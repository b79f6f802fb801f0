"""
Rate limiting for connector requests.

This module implements a token bucket: up to ``burst_size`` requests may
proceed immediately, after which requests are spaced to the configured
hourly rate. One limiter is shared by every listing task of a connector.
"""

import asyncio
import logging
import time
from typing import Awaitable, Callable

from timeline_agent.ingestion.interfaces import BaseRateLimiter
from timeline_agent.observability.metrics import rate_limit_wait_seconds
from timeline_agent.types import RateLimitConfig

logger = logging.getLogger(__name__)


class TokenBucketRateLimiter(BaseRateLimiter):
    """
    In-memory token bucket rate limiter.

    Tokens refill continuously at ``requests_per_hour / 3600`` per second
    up to ``burst_size``. Waiters are served in FIFO order under an
    asyncio lock; waiting is done with an awaitable sleep so a cancelled
    task stops waiting immediately. No state survives a process restart.
    """

    def __init__(
        self,
        requests_per_hour: float,
        burst_size: int = 1,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """
        Initialize the rate limiter.

        Args:
            requests_per_hour: Sustained request ceiling
            burst_size: Requests allowed to proceed without spacing
            clock: Monotonic clock in seconds (injectable for tests)
            sleep: Awaitable sleep (injectable for tests)
        """
        if requests_per_hour <= 0:
            raise ValueError("requests_per_hour must be positive")
        if burst_size < 1:
            raise ValueError("burst_size must be at least 1")

        self.requests_per_hour = requests_per_hour
        self.burst_size = burst_size
        self._rate_per_second = requests_per_hour / 3600
        self._clock = clock
        self._sleep = sleep

        self._tokens = float(burst_size)
        self._last_refill = clock()
        self._lock = asyncio.Lock()

        logger.info(
            f"Rate limiter initialized: {requests_per_hour} requests/hour, "
            f"burst {burst_size}"
        )

    @classmethod
    def from_config(cls, config: RateLimitConfig, **kwargs) -> "TokenBucketRateLimiter":
        return cls(config.requests_per_hour, config.burst_size, **kwargs)

    def _refill(self) -> None:
        now = self._clock()
        elapsed = now - self._last_refill
        if elapsed > 0:
            self._tokens = min(
                float(self.burst_size), self._tokens + elapsed * self._rate_per_second
            )
        self._last_refill = now

    async def acquire(self) -> float:
        """
        Acquire a token for making a request.

        Blocks until a token is available.

        Returns:
            Seconds spent waiting
        """
        waited = 0.0
        async with self._lock:
            self._refill()

            while self._tokens < 1:
                # Time until the bucket holds one whole token
                delay = (1 - self._tokens) / self._rate_per_second
                logger.debug(f"Rate limited, waiting {delay:.2f}s for a token")
                await self._sleep(delay)
                waited += delay
                self._refill()

            self._tokens -= 1

        if waited:
            rate_limit_wait_seconds.observe(waited)
        return waited

    def available_tokens(self) -> float:
        """Get current number of available tokens."""
        self._refill()
        return self._tokens
