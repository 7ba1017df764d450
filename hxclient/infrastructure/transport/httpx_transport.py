"""Transport implementation backed by httpx.AsyncClient.

Owns connection pooling and TLS configuration. Redirects are not followed;
the redirect response itself is returned to the client.
"""

import logging
import ssl
from typing import Any, Dict, Optional

import httpx

from hxclient.core.exceptions import DeadlineExceededError, TransportError
from hxclient.domain.interfaces.transport import Transport
from hxclient.domain.models.context import RequestContext
from hxclient.domain.models.http import Request, Response

logger = logging.getLogger(__name__)

DEFAULT_MAX_CONNECTIONS = 100
DEFAULT_MAX_KEEPALIVE_CONNECTIONS = 10
DEFAULT_KEEPALIVE_EXPIRY = 90.0
DEFAULT_CIPHERS = "ECDHE+AESGCM:ECDHE+CHACHA20"


def default_ssl_context() -> ssl.SSLContext:
    """TLS 1.2+ context restricted to forward-secret AEAD cipher suites."""
    context = ssl.create_default_context()
    context.minimum_version = ssl.TLSVersion.TLSv1_2
    context.set_ciphers(DEFAULT_CIPHERS)
    return context


def default_limits() -> httpx.Limits:
    return httpx.Limits(
        max_connections=DEFAULT_MAX_CONNECTIONS,
        max_keepalive_connections=DEFAULT_MAX_KEEPALIVE_CONNECTIONS,
        keepalive_expiry=DEFAULT_KEEPALIVE_EXPIRY,
    )


class HttpxTransport(Transport):
    """Sends requests through a pooled httpx.AsyncClient."""

    def __init__(self, timeout: Optional[float] = None, client: Optional[httpx.AsyncClient] = None):
        """Initializes the transport.

        Args:
            timeout: Per-request timeout in seconds; None leaves it unset so the
                owning Client can apply its own.
            client: Pre-configured httpx.AsyncClient. One with secure defaults is
                created (and owned) when None.
        """
        self._timeout = timeout
        self._owns_client = client is None
        if client is None:
            client = httpx.AsyncClient(
                verify=default_ssl_context(),
                limits=default_limits(),
                timeout=None,
                follow_redirects=False,
            )
        self._client = client

    @property
    def timeout(self) -> Optional[float]:
        return self._timeout

    @timeout.setter
    def timeout(self, value: Optional[float]) -> None:
        self._timeout = value

    async def send(self, request: Request, ctx: RequestContext) -> Response:
        """Sends the request, racing it against ctx.

        Raises:
            CancellationError: If ctx is cancelled first.
            DeadlineExceededError: If ctx's deadline or the transport timeout passes.
            TransportError: For any other network or TLS failure.
        """
        options: Dict[str, Any] = {"headers": request.headers}
        if request.content:
            options["content"] = request.content
        if self._timeout is not None:
            options["timeout"] = self._timeout

        httpx_request = self._client.build_request(request.method, request.url, **options)
        try:
            httpx_response = await ctx.run(self._client.send(httpx_request))
        except httpx.TimeoutException as e:
            raise DeadlineExceededError(f"{request.method} {request.url}: request timed out: {e}") from e
        except httpx.HTTPError as e:
            raise TransportError(f"{request.method} {request.url}: {e}") from e

        logger.debug(f"{request.method} {request.url} -> {httpx_response.status_code}")
        return Response(
            status_code=httpx_response.status_code,
            headers=dict(httpx_response.headers),
            content=httpx_response.content,
            request=request,
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
