"""Exceptions raised by hxclient.

Every error surfaced by Client.do derives from HxClientError. The original
cause is always chained (``raise ... from exc``) so callers can inspect it.
"""

from typing import Optional


class HxClientError(Exception):
    """Base exception for all hxclient errors."""


class InitializationError(HxClientError):
    """Raised when the underlying transport cannot be set up."""


class TransportError(HxClientError):
    """Wraps a network or TLS failure raised by the transport.

    Transport failures are never retried by the client.
    """


class CancellationError(HxClientError):
    """Raised when the request context is cancelled during a suspension point."""


class DeadlineExceededError(CancellationError):
    """Raised when the request context deadline (or transport timeout) expires."""


class RetryCanceledError(CancellationError):
    """Raised when a retry backoff wait is interrupted.

    Attributes:
        cause: The CancellationError that interrupted the wait.
    """

    def __init__(self, cause: CancellationError):
        self.cause = cause
        super().__init__(f"retry canceled: {cause}")


class CacheError(HxClientError):
    """Raised when the cache collaborator fails to read or write."""


class RateLimitError(HxClientError):
    """Raised when the rate limiter cannot grant a token.

    Attributes:
        wait_seconds: How long the limiter would have needed to wait, if known.
    """

    def __init__(self, message: str, wait_seconds: Optional[float] = None):
        self.wait_seconds = wait_seconds
        super().__init__(message)


class RetryBudgetExceededError(HxClientError):
    """Raised when every attempt returned a retryable status code.

    Attributes:
        attempts: Number of transport calls made.
        status_code: Status code of the last response.
        retry_after: Delay the policy computed for the last response, in seconds.
    """

    def __init__(self, attempts: int, status_code: int, retry_after: float):
        self.attempts = attempts
        self.status_code = status_code
        self.retry_after = retry_after
        super().__init__(
            f"retry limit exceeded: max retries {attempts}, "
            f"last status {status_code}, retry after {retry_after:.2f}s"
        )


class RequestBuildError(HxClientError):
    """Raised when a request cannot be created (e.g. invalid HTTP method)."""


class ResponseDecodeError(HxClientError):
    """Raised when a response body cannot be decoded as JSON."""


class HTTPStatusError(HxClientError):
    """Raised by Response.raise_for_status for non-2xx responses.

    Attributes:
        method: HTTP method of the request.
        url: Requested URL.
        status_code: HTTP status code.
        status_text: Reason phrase for the status code.
        message: Excerpt of the response body.
    """

    def __init__(self, method: str, url: str, status_code: int, status_text: str, message: str = ""):
        self.method = method
        self.url = url
        self.status_code = status_code
        self.status_text = status_text
        self.message = message
        super().__init__(f"{method} {status_code} {status_text} ({url}): {message}")
