"""Implementation of a client-side rate limiter.

Controls the pace of outgoing retries so the client stays a good citizen
towards APIs that enforce their own limits. Uses a token bucket with a burst
allowance; callers reserve a token and sleep until it becomes available.
"""

import asyncio
import logging
import threading
import time
from typing import Optional

from hxclient.core.exceptions import CancellationError, RateLimitError
from hxclient.domain.interfaces.rate_limiter import RateLimiter
from hxclient.domain.models.context import RequestContext

logger = logging.getLogger(__name__)

DEFAULT_RATE = 2.0  # tokens per second
DEFAULT_BURST = 1


class TokenBucketRateLimiter(RateLimiter):
    """Token bucket limiter safe for concurrent use."""

    def __init__(self, rate: float = DEFAULT_RATE, burst: int = DEFAULT_BURST):
        """Initializes the rate limiter.

        Args:
            rate: Tokens added to the bucket per second.
            burst: Bucket capacity, i.e. how many requests may go at once.
        """
        if rate <= 0 or burst <= 0:
            raise ValueError("Rate and burst must be positive.")

        self.rate = rate
        self.burst = burst
        self._tokens = float(burst)
        self._last = time.monotonic()
        self._lock = threading.Lock()  # Guards _tokens and _last
        logger.info(f"RateLimiter initialized: {rate} requests/second, burst {burst}")

    def _advance(self, now: float) -> None:
        """Refills the bucket for the time elapsed since the last update."""
        elapsed = max(0.0, now - self._last)
        self._tokens = min(float(self.burst), self._tokens + elapsed * self.rate)
        self._last = now

    def _reserve(self, max_wait: Optional[float]) -> float:
        """Takes one token, returning how long the caller must wait for it."""
        with self._lock:
            self._advance(time.monotonic())
            self._tokens -= 1
            wait_time = 0.0 if self._tokens >= 0 else -self._tokens / self.rate

            if max_wait is not None and wait_time > max_wait:
                self._tokens += 1  # Give the token back
                raise RateLimitError(
                    f"rate limit wait of {wait_time:.2f}s would exceed context deadline",
                    wait_seconds=wait_time,
                )
            return wait_time

    def _cancel_reservation(self) -> None:
        with self._lock:
            self._advance(time.monotonic())
            self._tokens = min(float(self.burst), self._tokens + 1)

    async def wait(self, ctx: RequestContext) -> None:
        """Waits until a token is available or ctx finishes."""
        err = ctx.err()
        if err is not None:
            raise err

        wait_time = self._reserve(ctx.remaining())
        if wait_time <= 0:
            logger.debug("Rate limit permission granted.")
            return

        logger.debug(f"Rate limit reached. Waiting for {wait_time:.2f} seconds.")
        try:
            await ctx.sleep(wait_time)
        except (CancellationError, asyncio.CancelledError):
            self._cancel_reservation()
            raise

    def wait_time(self) -> float:
        """Estimates the seconds until a token is available, without taking it."""
        with self._lock:
            self._advance(time.monotonic())
            if self._tokens >= 1:
                return 0.0
            return (1 - self._tokens) / self.rate
