import uuid

import pytest

from hxclient.core.exceptions import HTTPStatusError, RequestBuildError, ResponseDecodeError
from hxclient.domain.models.http import Request, Response


def test_build_request_with_headers_and_body():
    """build keeps method, headers and body."""
    request = Request.build("POST", "https://api.example.com/items", {"Content-Type": "application/json"}, b"{}")
    assert request.method == "POST"
    assert request.content == b"{}"
    assert request.get_header("content-type") == "application/json"


@pytest.mark.parametrize("method", ["get", "FETCH", ""])
def test_build_rejects_invalid_method(method: str):
    """Invalid methods are rejected."""
    with pytest.raises(RequestBuildError, match="invalid HTTP method"):
        Request.build(method, "https://example.com")


@pytest.mark.parametrize("url", ["example.com/path", "ftp://example.com", "https://", "http://host:port/"])
def test_build_rejects_invalid_url(url: str):
    """Invalid URLs are rejected."""
    with pytest.raises(RequestBuildError):
        Request.build("GET", url)


def test_set_header_replaces_case_insensitively():
    """set_header replaces any casing of the name."""
    request = Request.build("GET", "https://example.com", {"X-Token": "a"})
    request.set_header("x-token", "b")
    assert request.headers == {"x-token": "b"}


def test_authorization_helpers():
    """Bearer and prefix tokens set Authorization."""
    request = Request.build("GET", "https://example.com")
    request.set_bearer_token("abc")
    assert request.get_header("Authorization") == "Bearer abc"
    request.set_prefix_token("Token", "xyz")
    assert request.get_header("Authorization") == "Token xyz"


def test_idempotency_key_generated_for_post():
    """POST gets a generated UUID key."""
    request = Request.build("POST", "https://example.com")
    request.set_idempotency_key()
    uuid.UUID(request.get_header("Idempotency-Key"))


def test_idempotency_key_explicit_for_patch():
    """PATCH keeps an explicit key."""
    request = Request.build("PATCH", "https://example.com")
    request.set_idempotency_key("key-1")
    assert request.get_header("Idempotency-Key") == "key-1"


@pytest.mark.parametrize("method", ["GET", "PUT", "DELETE"])
def test_idempotency_key_ignored_for_other_methods(method: str):
    """Other methods never get an idempotency key."""
    request = Request.build(method, "https://example.com")
    request.set_idempotency_key("key-1")
    assert request.get_header("Idempotency-Key") is None


def test_response_helpers():
    """Response exposes success, reason, headers and JSON."""
    response = Response(status_code=200, headers={"Content-Type": "application/json"}, content=b'{"a": 1}')
    assert response.is_success
    assert response.reason_phrase == "OK"
    assert response.get_header("content-type") == "application/json"
    assert response.json() == {"a": 1}
    assert response.raise_for_status() is response


def test_response_json_decode_error():
    """Invalid JSON raises ResponseDecodeError."""
    with pytest.raises(ResponseDecodeError):
        Response(status_code=200, content=b"<html>").json()


def test_raise_for_status():
    """Error statuses raise HTTPStatusError."""
    request = Request.build("GET", "https://example.com/missing")
    response = Response(status_code=404, content=b"not here", request=request)
    with pytest.raises(HTTPStatusError) as exc_info:
        response.raise_for_status()
    error = exc_info.value
    assert error.status_code == 404
    assert error.status_text == "Not Found"
    assert error.method == "GET"
    assert error.url == "https://example.com/missing"
    assert error.message == "not here"


def test_unknown_status_has_empty_reason():
    """Unknown statuses have no reason phrase."""
    assert Response(status_code=799).reason_phrase == ""


def test_copy_has_independent_headers():
    """copy does not share headers with the original."""
    original = Response(status_code=200, headers={"A": "1"})
    copied = original.copy(from_cache=True)
    copied.headers["B"] = "2"
    assert copied.from_cache
    assert not original.from_cache
    assert original.headers == {"A": "1"}
