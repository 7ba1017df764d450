"""Interface for HTTP transports.

Defines the contract the client uses to put a request on the wire. The
transport owns connection pooling and TLS parameters.
"""

import abc
from typing import Optional

from ..models.context import RequestContext
from ..models.http import Request, Response


class Transport(abc.ABC):
    """Abstract Base Class for sending a single HTTP request."""

    @property
    @abc.abstractmethod
    def timeout(self) -> Optional[float]:
        """Per-request timeout in seconds, or None when unset."""
        pass

    @timeout.setter
    @abc.abstractmethod
    def timeout(self, value: Optional[float]) -> None:
        pass

    @abc.abstractmethod
    async def send(self, request: Request, ctx: RequestContext) -> Response:
        """Sends one request and returns the fully read response.

        Must honor ctx cancellation and deadline.

        Args:
            request: The request to send.
            ctx: Context bounding the call.

        Returns:
            The response, whatever its status code.

        Raises:
            Exception: Any network, TLS or timeout failure.
        """
        pass

    async def aclose(self) -> None:
        """Releases pooled connections. Default is a no-op."""
        return None
