"""hxclient: a resilient asyncio HTTP client.

Wraps an HTTP transport with a retry policy (jittered backoff honoring
Retry-After), a client-side rate limiter for retries, and a cache-aside
response cache.
"""

from hxclient.core.client import Client
from hxclient.core.exceptions import (
    CacheError,
    CancellationError,
    DeadlineExceededError,
    HTTPStatusError,
    HxClientError,
    InitializationError,
    RateLimitError,
    RequestBuildError,
    ResponseDecodeError,
    RetryBudgetExceededError,
    RetryCanceledError,
    TransportError,
)
from hxclient.domain.models.context import RequestContext
from hxclient.domain.models.http import Request, Response
from hxclient.infrastructure.resilience.retry_policy import RetryPolicy

__all__ = [
    "Client",
    "Request",
    "Response",
    "RequestContext",
    "RetryPolicy",
    "HxClientError",
    "InitializationError",
    "TransportError",
    "CancellationError",
    "DeadlineExceededError",
    "RetryCanceledError",
    "CacheError",
    "RateLimitError",
    "RetryBudgetExceededError",
    "RequestBuildError",
    "ResponseDecodeError",
    "HTTPStatusError",
]
