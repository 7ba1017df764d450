"""Test doubles for the Client collaborators."""

import asyncio
from typing import List, Optional

from hxclient.domain.interfaces.cache import CachePolicy, CacheService
from hxclient.domain.interfaces.rate_limiter import RateLimiter
from hxclient.domain.interfaces.transport import Transport
from hxclient.domain.models.context import RequestContext
from hxclient.domain.models.http import Request, Response


class FakeTransport(Transport):
    """Returns canned responses in order; the last one repeats."""

    def __init__(self, responses: Optional[List[Response]] = None, error: Optional[Exception] = None,
                 delay: float = 0.0):
        self.responses = list(responses or [Response(status_code=200, content=b"ok")])
        self.error = error
        self.delay = delay
        self.calls: List[Request] = []
        self._timeout: Optional[float] = None
        self.closed = False

    @property
    def timeout(self) -> Optional[float]:
        return self._timeout

    @timeout.setter
    def timeout(self, value: Optional[float]) -> None:
        self._timeout = value

    async def send(self, request: Request, ctx: RequestContext) -> Response:
        self.calls.append(request)
        if self.delay:
            await ctx.run(asyncio.sleep(self.delay))
        if self.error is not None:
            raise self.error
        response = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        return response.copy(request=request)

    async def aclose(self) -> None:
        self.closed = True


class FakeRateLimiter(RateLimiter):
    def __init__(self, error: Optional[Exception] = None):
        self.calls = 0
        self.error = error

    async def wait(self, ctx: RequestContext) -> None:
        self.calls += 1
        if self.error is not None:
            raise self.error


class FixedTTLPolicy(CachePolicy):
    def __init__(self, ttl: float = 60.0):
        self.value = ttl

    def ttl(self, response: Response) -> float:
        return self.value


class FakeCache(CacheService):
    """Dictionary-backed cache that records every call."""

    def __init__(self, ttl: float = 60.0, get_error: Optional[Exception] = None,
                 set_error: Optional[Exception] = None):
        self.entries = {}
        self.get_calls = 0
        self.set_calls = []
        self.get_error = get_error
        self.set_error = set_error
        self._policy = FixedTTLPolicy(ttl)

    async def get(self, key):
        self.get_calls += 1
        if self.get_error is not None:
            raise self.get_error
        return self.entries.get(key)

    async def set(self, key, response, ttl):
        self.set_calls.append((key, ttl))
        if self.set_error is not None:
            raise self.set_error
        if ttl > 0:
            self.entries[key] = response.copy(request=None)

    async def delete(self, key):
        self.entries.pop(key, None)

    async def clear(self):
        self.entries.clear()

    def policy(self):
        return self._policy
