"""HTTP request and response value objects.

Transports translate to and from these objects, so the core never depends
on a particular HTTP library.
"""

import json
import uuid
from dataclasses import dataclass, field, replace
from http import HTTPStatus
from typing import Any, Dict, Mapping, Optional
from urllib.parse import urlsplit

from hxclient.core.exceptions import HTTPStatusError, RequestBuildError, ResponseDecodeError
from hxclient.domain.models.common import (
    HEADER_AUTHORIZATION,
    HEADER_IDEMPOTENCY_KEY,
    HEADER_USER_AGENT,
)

VALID_METHODS = frozenset({
    "GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "CONNECT", "OPTIONS", "TRACE",
})

# Methods that receive an Idempotency-Key header
IDEMPOTENCY_KEY_METHODS = frozenset({"POST", "PATCH"})


def _find_header(headers: Mapping[str, str], name: str) -> Optional[str]:
    """Returns the actual key in headers matching name case-insensitively."""
    lowered = name.lower()
    for key in headers:
        if key.lower() == lowered:
            return key
    return None


@dataclass
class Request:
    """An HTTP request to be sent by a Client."""

    method: str
    url: str
    headers: Dict[str, str] = field(default_factory=dict)
    content: bytes = b""

    @classmethod
    def build(
        cls,
        method: str,
        url: str,
        headers: Optional[Mapping[str, str]] = None,
        content: Optional[bytes] = None,
    ) -> "Request":
        """Creates a validated Request.

        Args:
            method: HTTP method; must be one of VALID_METHODS.
            url: Absolute http(s) URL.
            headers: Optional headers, later keys overriding earlier ones.
            content: Optional request body.

        Returns:
            The new Request.

        Raises:
            RequestBuildError: If the method or URL is invalid.
        """
        if method not in VALID_METHODS:
            raise RequestBuildError(f"unable to create request: invalid HTTP method {method}")

        try:
            parts = urlsplit(url)
            parts.port  # Raises ValueError for a malformed port
        except ValueError as e:
            raise RequestBuildError(f"unable to create request: {e}") from e
        if parts.scheme not in ("http", "https") or not parts.netloc:
            raise RequestBuildError(f"unable to create request: invalid URL {url!r}")

        request = cls(method=method, url=url, content=content or b"")
        for key, value in (headers or {}).items():
            request.set_header(key, value)
        return request

    def get_header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        key = _find_header(self.headers, name)
        return self.headers[key] if key is not None else default

    def set_header(self, name: str, value: str) -> None:
        """Sets a header, replacing any existing value regardless of case."""
        key = _find_header(self.headers, name)
        if key is not None:
            del self.headers[key]
        self.headers[name] = value

    def set_bearer_token(self, token: str) -> None:
        self.set_header(HEADER_AUTHORIZATION, f"Bearer {token}")

    def set_prefix_token(self, prefix: str, token: str) -> None:
        self.set_header(HEADER_AUTHORIZATION, f"{prefix} {token}")

    def set_idempotency_key(self, key: str = "") -> None:
        """Sets the Idempotency-Key header for POST and PATCH requests.

        A random UUID4 is used when key is blank. Other methods are left
        untouched.
        """
        if not key.strip():
            key = str(uuid.uuid4())
        if self.method in IDEMPOTENCY_KEY_METHODS:
            self.set_header(HEADER_IDEMPOTENCY_KEY, key)

    def set_user_agent(self, user_agent: str) -> None:
        self.set_header(HEADER_USER_AGENT, user_agent)


@dataclass
class Response:
    """An HTTP response.

    The body is fully read by the transport, so the caller owns plain bytes
    and there is nothing left to drain or close.
    """

    status_code: int
    headers: Dict[str, str] = field(default_factory=dict)
    content: bytes = b""
    request: Optional[Request] = None
    from_cache: bool = False

    def get_header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        key = _find_header(self.headers, name)
        return self.headers[key] if key is not None else default

    @property
    def is_success(self) -> bool:
        """True for 2xx status codes."""
        return 200 <= self.status_code < 300

    @property
    def reason_phrase(self) -> str:
        try:
            return HTTPStatus(self.status_code).phrase
        except ValueError:
            return ""

    @property
    def text(self) -> str:
        return self.content.decode("utf-8", errors="replace")

    def json(self) -> Any:
        """Decodes the body as JSON.

        Raises:
            ResponseDecodeError: If the body is not valid JSON.
        """
        try:
            return json.loads(self.content)
        except (ValueError, UnicodeDecodeError) as e:
            raise ResponseDecodeError(f"cannot decode JSON response: {e}") from e

    def raise_for_status(self) -> "Response":
        """Raises HTTPStatusError unless the status code is 2xx."""
        if self.is_success:
            return self
        method = self.request.method if self.request else ""
        url = self.request.url if self.request else ""
        raise HTTPStatusError(
            method=method,
            url=url,
            status_code=self.status_code,
            status_text=self.reason_phrase,
            message=self.text[:200],
        )

    def copy(self, **changes: Any) -> "Response":
        """Returns a copy with its own headers dict."""
        changes.setdefault("headers", dict(self.headers))
        return replace(self, **changes)
