"""Client executing HTTP requests with caching, rate limiting and retries.

One call to Client.do runs a small state machine: cache lookup, a bounded
loop of transport attempts (rate limited after the first, retried only on
retryable status codes), then cache store. Transport failures are never
retried; only classified HTTP responses are.
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Iterable, Mapping, Optional
from urllib.parse import urlencode

from hxclient import build
from hxclient.core.exceptions import (
    CacheError,
    CancellationError,
    HxClientError,
    InitializationError,
    RateLimitError,
    RetryBudgetExceededError,
    TransportError,
)
from hxclient.core.fingerprint import fingerprint
from hxclient.core.user_agent import UserAgent
from hxclient.domain.events.request_events import (
    AttemptStarted,
    CacheHit,
    CacheStored,
    DomainEvent,
    RateLimitApplied,
    RequestFailed,
    RequestStarted,
    RequestSucceeded,
    RetryScheduled,
)
from hxclient.domain.interfaces.cache import CacheService
from hxclient.domain.interfaces.rate_limiter import RateLimiter
from hxclient.domain.interfaces.transport import Transport
from hxclient.domain.models.common import (
    CacheKey,
    HEADER_CONTENT_TYPE,
    HEADER_USER_AGENT,
    MEDIA_TYPE_FORM_URLENCODED,
    Namespace,
)
from hxclient.domain.models.context import RequestContext
from hxclient.domain.models.http import Request, Response
from hxclient.infrastructure.cache.caching_service import ResponseCache
from hxclient.infrastructure.resilience.rate_limiter import TokenBucketRateLimiter
from hxclient.infrastructure.resilience.retry_policy import RetryPolicy
from hxclient.infrastructure.transport.httpx_transport import HttpxTransport

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0  # seconds

EventHandler = Callable[[DomainEvent], None]


@dataclass
class _CallState:
    """Progress of one logical call, reported in events and errors."""
    attempts: int = 0
    status_code: Optional[int] = None


class Client:
    """HTTP client with optional retry policy, rate limiter and cache.

    A bare Client() has no retry policy (one attempt), no rate limiter and
    no cache; use Client.default() or Client.with_cache() for the usual
    setup. A single instance may be shared by concurrent callers.
    """

    def __init__(
        self,
        transport: Optional[Transport] = None,
        retry_policy: Optional[RetryPolicy] = None,
        rate_limiter: Optional[RateLimiter] = None,
        cache: Optional[CacheService] = None,
        user_agent: Optional[UserAgent] = None,
        timeout: Optional[float] = None,
        namespace: str = build.NAME,
        vary_headers: Iterable[str] = (),
        debug: bool = False,
        event_handler: Optional[EventHandler] = None,
    ):
        """Initializes the Client.

        Args:
            transport: Sends requests. An HttpxTransport is created on first
                use when None.
            retry_policy: Decides which responses are retried and how long to
                wait. None means a single attempt.
            rate_limiter: Paces retries; never applied to the first attempt.
            cache: Response cache consulted before and filled after a call.
            user_agent: Default User-Agent for requests that do not set one.
            timeout: Applied to the transport on first use if it has none.
            namespace: Prefix of cache keys.
            vary_headers: Request headers that also distinguish cache entries.
            debug: Log every stage of a call at DEBUG level.
            event_handler: Receives the domain events of every call.
        """
        self.transport = transport
        self.retry_policy = retry_policy
        self.rate_limiter = rate_limiter
        self.cache = cache
        self.user_agent = user_agent
        self.timeout = timeout
        self.namespace = Namespace(namespace)
        self.vary_headers = tuple(vary_headers)
        self.debug = debug
        self.event_handler = event_handler

        self._initialized = False
        self._init_lock = threading.Lock()
        self._owns_transport = False
        self._owns_cache = False

    # --- Factories ---

    @classmethod
    def default(cls, **kwargs) -> "Client":
        """Client with the default retry policy, a 2 req/s limiter and a 10s timeout."""
        kwargs.setdefault("retry_policy", RetryPolicy())
        kwargs.setdefault("rate_limiter", TokenBucketRateLimiter(rate=2.0, burst=1))
        kwargs.setdefault("user_agent", UserAgent.default())
        kwargs.setdefault("timeout", DEFAULT_TIMEOUT)
        return cls(**kwargs)

    @classmethod
    def with_cache(cls, cache: Optional[CacheService] = None, **kwargs) -> "Client":
        """Default client plus a response cache (in-memory when cache is None)."""
        owns_cache = cache is None
        if cache is None:
            cache = ResponseCache()
        client = cls.default(cache=cache, **kwargs)
        client._owns_cache = owns_cache
        return client

    @classmethod
    def from_settings(cls, settings, **kwargs) -> "Client":
        """Builds a client from a ClientSettings instance."""
        kwargs.setdefault("retry_policy", RetryPolicy.from_settings(settings.retry))
        kwargs.setdefault(
            "rate_limiter",
            TokenBucketRateLimiter(rate=settings.rate_limit.rate, burst=settings.rate_limit.burst)
            if settings.rate_limit.enabled else None,
        )
        owns_cache = False
        if "cache" not in kwargs and settings.cache.enabled:
            kwargs["cache"] = ResponseCache(
                capacity=settings.cache.capacity,
                default_ttl=settings.cache.default_ttl,
                cache_dir=settings.cache.directory,
            )
            owns_cache = True
        kwargs.setdefault("user_agent", UserAgent.default())
        kwargs.setdefault("timeout", settings.timeout)
        kwargs.setdefault("namespace", settings.namespace)
        kwargs.setdefault("debug", settings.debug)
        client = cls(**kwargs)
        client._owns_cache = owns_cache
        return client

    # --- Request Execution ---

    async def do(self, ctx: RequestContext, request: Request) -> Response:
        """Executes one logical call.

        Args:
            ctx: Cancellation token and deadline for the whole call.
            request: The request to send. A default User-Agent is added when
                the request has none.

        Returns:
            The final response. The caller owns it.

        Raises:
            InitializationError: If the transport cannot be set up.
            CacheError: If the cache fails to read or write.
            RateLimitError: If the rate limiter cannot grant a retry.
            TransportError: On a network or TLS failure (never retried).
            CancellationError: If ctx is cancelled; DeadlineExceededError if
                its deadline or the transport timeout passes, and
                RetryCanceledError if this happens during a backoff wait.
            RetryBudgetExceededError: If every attempt was retryable.
        """
        self._init_client()
        self._set_user_agent(request)

        state = _CallState()
        started = time.perf_counter()
        self._debugf(f"Starting request {request.method} {request.url}")
        self._dispatch(RequestStarted(method=request.method, url=request.url))

        try:
            response = await self._do(ctx, request, state)
        except HxClientError as e:
            self._debugf(f"Request {request.method} {request.url} failed: {e}")
            self._dispatch(RequestFailed(
                method=request.method,
                url=request.url,
                error_type=type(e).__name__,
                error_message=str(e),
                attempts=state.attempts,
                status_code=state.status_code,
            ))
            raise

        self._dispatch(RequestSucceeded(
            method=request.method,
            url=request.url,
            status_code=response.status_code,
            attempts=state.attempts,
            latency_ms=(time.perf_counter() - started) * 1000,
        ))
        return response

    async def _do(self, ctx: RequestContext, request: Request, state: _CallState) -> Response:
        key: Optional[CacheKey] = None
        if self.cache is not None:
            key = fingerprint(self.namespace, request, self.vary_headers)
            cached = await self._cache_get(key)
            if cached is not None:
                self._debugf(f"Cache hit for request: {request.method} {request.url}")
                self._dispatch(CacheHit(method=request.method, url=request.url, cache_key=key))
                return cached.copy(request=request, from_cache=True)

        response = await self._attempt_loop(ctx, request, state)

        if self.cache is not None and key is not None:
            await self._cache_store(key, request, response)

        return response

    async def _attempt_loop(self, ctx: RequestContext, request: Request, state: _CallState) -> Response:
        max_attempts = self._max_retries()
        response: Optional[Response] = None

        for attempt in range(max_attempts):
            state.attempts = attempt + 1
            self._debugf(f"Attempt {attempt + 1} for request: {request.method} {request.url}")
            self._dispatch(AttemptStarted(method=request.method, url=request.url, attempt_number=attempt + 1))

            await self._apply_rate_limiter(ctx, attempt, request)

            response = await self._send(ctx, request)
            state.status_code = response.status_code

            if self.retry_policy is None or not self.retry_policy.should_retry(response):
                return response

            if attempt + 1 >= max_attempts:
                break  # No point waiting after the last attempt

            self._dispatch(RetryScheduled(
                method=request.method,
                url=request.url,
                attempt_number=attempt + 1,
                status_code=response.status_code,
            ))
            await self.retry_policy.wait(ctx, response)

        logger.warning(
            f"Giving up on {request.method} {request.url} after {max_attempts} attempts "
            f"(last status {response.status_code})"
        )
        raise RetryBudgetExceededError(
            attempts=max_attempts,
            status_code=response.status_code,
            retry_after=self.retry_policy.retry_after(response),
        )

    async def _send(self, ctx: RequestContext, request: Request) -> Response:
        """Dispatches to the transport and classifies its failures."""
        try:
            return await self.transport.send(request, ctx)
        except Exception as e:
            err = ctx.err()
            if err is not None:
                raise err from e
            if isinstance(e, HxClientError):
                raise
            raise TransportError(f"{request.method} {request.url}: {e}") from e

    async def _apply_rate_limiter(self, ctx: RequestContext, attempt: int, request: Request) -> None:
        """Waits on the rate limiter for every attempt but the first."""
        if attempt == 0 or self.rate_limiter is None:
            return

        self._debugf(f"Applying rate limiter for request: {request.method} {request.url}")
        started = time.perf_counter()
        try:
            await self.rate_limiter.wait(ctx)
        except (CancellationError, RateLimitError):
            raise
        except Exception as e:
            raise RateLimitError(f"rate limiter failed: {e}") from e

        self._dispatch(RateLimitApplied(
            method=request.method,
            url=request.url,
            attempt_number=attempt + 1,
            wait_time_seconds=time.perf_counter() - started,
        ))

    # --- Cache ---

    async def _cache_get(self, key: CacheKey) -> Optional[Response]:
        try:
            return await self.cache.get(key)
        except CacheError:
            raise
        except Exception as e:
            raise CacheError(f"cache lookup failed for {key}: {e}") from e

    async def _cache_store(self, key: CacheKey, request: Request, response: Response) -> None:
        try:
            ttl = self.cache.policy().ttl(response)
            await self.cache.set(key, response, ttl)
        except CacheError:
            raise
        except Exception as e:
            raise CacheError(f"cache store failed for {key}: {e}") from e

        self._debugf(f"Cache set for request: {request.method} {request.url}")
        self._dispatch(CacheStored(method=request.method, url=request.url, cache_key=key, ttl_seconds=ttl))

    # --- Convenience Methods ---

    async def get(self, ctx: RequestContext, url: str, headers: Optional[Mapping[str, str]] = None) -> Response:
        return await self.do(ctx, Request.build("GET", url, headers))

    async def head(self, ctx: RequestContext, url: str, headers: Optional[Mapping[str, str]] = None) -> Response:
        return await self.do(ctx, Request.build("HEAD", url, headers))

    async def post(self, ctx: RequestContext, url: str, content_type: str, content: bytes) -> Response:
        request = Request.build("POST", url, {HEADER_CONTENT_TYPE: content_type}, content)
        return await self.do(ctx, request)

    async def post_form(self, ctx: RequestContext, url: str, data: Mapping[str, str]) -> Response:
        """POSTs data as application/x-www-form-urlencoded."""
        return await self.post(ctx, url, MEDIA_TYPE_FORM_URLENCODED, urlencode(data).encode("utf-8"))

    # --- Lifecycle ---

    async def aclose(self) -> None:
        """Closes the transport and cache if this client created them."""
        if self._owns_transport and self.transport is not None:
            await self.transport.aclose()
        if self._owns_cache and isinstance(self.cache, ResponseCache):
            self.cache.close()

    async def __aenter__(self) -> "Client":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    # --- Helpers ---

    def _init_client(self) -> None:
        """Creates the transport once and applies the timeout if it has none."""
        if self._initialized:
            return
        with self._init_lock:
            if self._initialized:
                return
            try:
                if self.transport is None:
                    self.transport = HttpxTransport()
                    self._owns_transport = True
                if self.transport.timeout is None and self.timeout:
                    self.transport.timeout = self.timeout
            except Exception as e:
                logger.error(f"Failed to initialize transport: {e}", exc_info=True)
                raise InitializationError(f"cannot initialize transport: {e}") from e
            self._initialized = True

    def _set_user_agent(self, request: Request) -> None:
        """Sets User-Agent only if the caller has not."""
        if self.user_agent is None or request.get_header(HEADER_USER_AGENT):
            return
        value = str(self.user_agent)
        if value:
            request.set_user_agent(value)

    def _max_retries(self) -> int:
        if self.retry_policy is not None:
            return self.retry_policy.max_retries
        return 1

    def _dispatch(self, event: DomainEvent) -> None:
        logger.debug(f"EVENT: {event}")
        if self.event_handler is not None:
            self.event_handler(event)

    def _debugf(self, message: str) -> None:
        if self.debug:
            logger.debug(message)
