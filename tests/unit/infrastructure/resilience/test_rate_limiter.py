import asyncio

import pytest

from hxclient.core.exceptions import CancellationError, RateLimitError
from hxclient.domain.models.context import RequestContext
from hxclient.infrastructure.resilience.rate_limiter import TokenBucketRateLimiter


@pytest.mark.parametrize("rate, burst", [(0, 1), (-1.0, 1), (1.0, 0)])
def test_invalid_configuration(rate, burst):
    """Non-positive rate or burst is rejected."""
    with pytest.raises(ValueError):
        TokenBucketRateLimiter(rate=rate, burst=burst)


@pytest.mark.asyncio
async def test_burst_is_granted_immediately():
    """Burst tokens are granted without waiting."""
    limiter = TokenBucketRateLimiter(rate=1.0, burst=3)
    ctx = RequestContext.background()
    loop = asyncio.get_running_loop()
    started = loop.time()
    for _ in range(3):
        await limiter.wait(ctx)
    assert loop.time() - started < 0.1


@pytest.mark.asyncio
async def test_waits_for_next_token():
    """An empty bucket waits for the next token."""
    limiter = TokenBucketRateLimiter(rate=20.0, burst=1)
    ctx = RequestContext.background()
    await limiter.wait(ctx)

    loop = asyncio.get_running_loop()
    started = loop.time()
    await limiter.wait(ctx)
    assert loop.time() - started >= 0.03


@pytest.mark.asyncio
async def test_wait_beyond_deadline_raises_rate_limit_error():
    """A wait past the deadline raises RateLimitError."""
    limiter = TokenBucketRateLimiter(rate=0.1, burst=1)
    ctx = RequestContext.with_timeout(1.0)
    await limiter.wait(ctx)

    with pytest.raises(RateLimitError) as exc_info:
        await limiter.wait(ctx)
    assert exc_info.value.wait_seconds > 1.0
    # The refused reservation does not consume a token
    assert limiter.wait_time() <= 10.0


@pytest.mark.asyncio
async def test_cancelled_context_is_reported():
    """A cancelled context raises CancellationError."""
    limiter = TokenBucketRateLimiter()
    ctx = RequestContext.background()
    ctx.cancel()
    with pytest.raises(CancellationError):
        await limiter.wait(ctx)


@pytest.mark.asyncio
async def test_cancellation_during_wait_returns_token():
    """A cancelled wait gives its token back."""
    limiter = TokenBucketRateLimiter(rate=0.5, burst=1)
    ctx = RequestContext.background()
    await limiter.wait(ctx)

    async def cancel_soon():
        await asyncio.sleep(0.01)
        ctx.cancel()

    canceller = asyncio.create_task(cancel_soon())
    with pytest.raises(CancellationError):
        await limiter.wait(ctx)
    await canceller

    # Only the first token is outstanding again
    assert limiter.wait_time() <= 2.0


def test_wait_time_is_zero_with_tokens_available():
    """wait_time is zero while tokens remain."""
    limiter = TokenBucketRateLimiter(rate=2.0, burst=1)
    assert limiter.wait_time() == 0.0
