import asyncio
import ssl

import httpx
import pytest

from hxclient.core.exceptions import CancellationError, DeadlineExceededError, TransportError
from hxclient.domain.models.context import RequestContext
from hxclient.domain.models.http import Request
from hxclient.infrastructure.transport.httpx_transport import HttpxTransport, default_ssl_context


def mock_client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_send_translates_request_and_response():
    """Requests and responses are translated to and from httpx."""
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["method"] = request.method
        seen["url"] = str(request.url)
        seen["header"] = request.headers.get("X-Test")
        seen["body"] = request.content
        return httpx.Response(201, headers={"Content-Type": "text/plain"}, content=b"created")

    transport = HttpxTransport(client=mock_client(handler))
    request = Request.build("POST", "https://example.com/items", {"X-Test": "1"}, b"payload")

    response = await transport.send(request, RequestContext.background())

    assert seen == {"method": "POST", "url": "https://example.com/items", "header": "1", "body": b"payload"}
    assert response.status_code == 201
    assert response.content == b"created"
    assert response.get_header("content-type") == "text/plain"
    assert response.request is request


@pytest.mark.asyncio
async def test_redirect_is_returned_not_followed():
    """Redirects are returned, not followed."""
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(302, headers={"Location": "https://example.com/elsewhere"})

    transport = HttpxTransport(client=mock_client(handler))
    response = await transport.send(Request.build("GET", "https://example.com/"), RequestContext.background())
    assert response.status_code == 302


@pytest.mark.asyncio
async def test_network_error_becomes_transport_error():
    """Network errors become TransportError."""
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    transport = HttpxTransport(client=mock_client(handler))
    with pytest.raises(TransportError, match="connection refused"):
        await transport.send(Request.build("GET", "https://example.com/"), RequestContext.background())


@pytest.mark.asyncio
async def test_timeout_becomes_deadline_exceeded():
    """httpx timeouts become DeadlineExceededError."""
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("read timed out", request=request)

    transport = HttpxTransport(client=mock_client(handler))
    with pytest.raises(DeadlineExceededError):
        await transport.send(Request.build("GET", "https://example.com/"), RequestContext.background())


@pytest.mark.asyncio
async def test_context_cancellation_abandons_call():
    """Cancelling the context abandons the call."""
    async def handler(request: httpx.Request) -> httpx.Response:
        await asyncio.sleep(30)
        return httpx.Response(200)

    transport = HttpxTransport(client=mock_client(handler))
    ctx = RequestContext.background()
    asyncio.get_running_loop().call_later(0.01, ctx.cancel)

    with pytest.raises(CancellationError):
        await transport.send(Request.build("GET", "https://example.com/"), ctx)


@pytest.mark.asyncio
async def test_timeout_property_and_close():
    """timeout is settable and aclose closes the client."""
    client = mock_client(lambda request: httpx.Response(200))
    transport = HttpxTransport(timeout=2.0, client=client)
    assert transport.timeout == 2.0
    transport.timeout = 5.0
    assert transport.timeout == 5.0

    await transport.aclose()
    # Injected clients belong to the caller
    assert not client.is_closed
    await client.aclose()


def test_default_ssl_context_requires_tls12():
    """The default SSL context requires TLS 1.2 and verification."""
    context = default_ssl_context()
    assert context.minimum_version == ssl.TLSVersion.TLSv1_2
    assert context.verify_mode == ssl.CERT_REQUIRED
