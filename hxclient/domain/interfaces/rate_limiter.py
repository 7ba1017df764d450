"""Interface for client-side rate limiters.

The client only calls wait(); the pacing algorithm is up to the
implementation.
"""

import abc

from ..models.context import RequestContext


class RateLimiter(abc.ABC):
    """Abstract Base Class for pacing outgoing requests."""

    @abc.abstractmethod
    async def wait(self, ctx: RequestContext) -> None:
        """Suspends until a request is permitted or ctx finishes.

        Args:
            ctx: Context bounding the wait.

        Raises:
            CancellationError: If ctx is cancelled or its deadline passes.
            RateLimitError: If permission cannot be granted.
        """
        pass
