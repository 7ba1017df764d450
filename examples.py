#!/usr/bin/env python3
"""
Examples of programmatic usage of hxclient.

Shows how to embed the client in other applications: a default client, a
cached client, a hand-wired client with custom policy and limiter, and
cancelling a call from another task.

Usage:
    python examples.py
"""

import asyncio
import logging

from hxclient import Client, RequestContext, RetryPolicy
from hxclient.core.exceptions import HxClientError, RetryCanceledError
from hxclient.domain.models.http import Request
from hxclient.infrastructure.cli.display import ConsoleDisplay
from hxclient.infrastructure.monitoring.logger_setup import setup_logging
from hxclient.infrastructure.resilience.rate_limiter import TokenBucketRateLimiter

BASE_URL = "https://httpbin.org"

ui = ConsoleDisplay()


async def example_default_client():
    """GET with the default retry policy and rate limiter."""
    ui.display_info("Example 1: default client")
    async with Client.default() as client:
        response = await client.get(RequestContext.with_timeout(15.0), f"{BASE_URL}/get")
        ui.display_response(response)


async def example_cached_client():
    """The second identical GET is answered from the cache."""
    ui.display_info("Example 2: cached client")
    async with Client.with_cache() as client:
        for _ in range(2):
            response = await client.get(RequestContext.with_timeout(15.0), f"{BASE_URL}/cache/60")
            ui.display_response(response, show_body=False)


async def example_custom_policy():
    """Retries 500s as well, at most three attempts, and logs every event."""
    ui.display_info("Example 3: custom retry policy")
    policy = RetryPolicy(
        max_retries=3,
        min_retry_delay=0.5,
        max_retry_delay=2.0,
        retryable_status_codes=[500, 502, 503, 504],
    )
    client = Client(
        retry_policy=policy,
        rate_limiter=TokenBucketRateLimiter(rate=5.0, burst=2),
        timeout=10.0,
        debug=True,
        event_handler=lambda event: ui.display_info(type(event).__name__),
    )
    async with client:
        request = Request.build("POST", f"{BASE_URL}/status/503", {"Content-Type": "application/json"}, b"{}")
        request.set_idempotency_key()
        try:
            await client.do(RequestContext.with_timeout(20.0), request)
        except HxClientError as e:
            ui.display_error(str(e))


async def example_cancellation():
    """Cancels the call while it waits between retries."""
    ui.display_info("Example 4: cancellation during backoff")
    ctx = RequestContext.background()
    asyncio.get_running_loop().call_later(1.0, ctx.cancel, "user pressed stop")
    async with Client.default(retry_policy=RetryPolicy(min_retry_delay=10.0)) as client:
        try:
            await client.get(ctx, f"{BASE_URL}/status/429")
        except RetryCanceledError as e:
            ui.display_error(f"{e} (cause: {type(e.cause).__name__})")


async def main():
    setup_logging(logging.INFO)
    await example_default_client()
    await example_cached_client()
    await example_custom_policy()
    await example_cancellation()


if __name__ == "__main__":
    asyncio.run(main())
