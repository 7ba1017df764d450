"""Request context: a cancellation token with an optional deadline.

Every suspension point in the client (rate limiter wait, retry backoff,
transport call) is bounded by a RequestContext. Cancelling the context or
reaching its deadline unblocks those waits promptly.
"""

import asyncio
import logging
import time
from typing import Any, Awaitable, Optional

from hxclient.core.exceptions import CancellationError, DeadlineExceededError

logger = logging.getLogger(__name__)

DEFAULT_CANCEL_REASON = "context canceled"


def _consume_result(task: "asyncio.Future[Any]") -> None:
    """Retrieves the outcome of an abandoned task so asyncio does not warn about it."""
    if not task.cancelled():
        task.exception()


class RequestContext:
    """Cancellation token plus optional deadline for one logical call.

    cancel() must be called from the event loop thread that awaits on the
    context.
    """

    def __init__(self, deadline: Optional[float] = None):
        """Initializes the context.

        Args:
            deadline: Absolute deadline on the time.monotonic() clock, or None.
        """
        self._deadline = deadline
        self._cancelled = False
        # Created on first wait, per event loop, so the context can be built outside a running loop
        self._event: Optional[asyncio.Event] = None
        self._event_loop: Optional[asyncio.AbstractEventLoop] = None
        self._reason = DEFAULT_CANCEL_REASON

    @classmethod
    def background(cls) -> "RequestContext":
        """A context that is never cancelled and has no deadline."""
        return cls()

    @classmethod
    def with_timeout(cls, timeout: float) -> "RequestContext":
        """A context whose deadline is timeout seconds from now."""
        return cls(deadline=time.monotonic() + timeout)

    @property
    def deadline(self) -> Optional[float]:
        return self._deadline

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self, reason: str = DEFAULT_CANCEL_REASON) -> None:
        """Signals cancellation to every wait bound to this context."""
        if not self._cancelled:
            self._reason = reason
            self._cancelled = True
            if self._event is not None:
                self._event.set()
            logger.debug(f"Request context cancelled: {reason}")

    def _cancel_event(self) -> asyncio.Event:
        loop = asyncio.get_running_loop()
        if self._event is None or self._event_loop is not loop:
            self._event = asyncio.Event()
            self._event_loop = loop
            if self._cancelled:
                self._event.set()
        return self._event

    def remaining(self) -> Optional[float]:
        """Seconds left until the deadline, or None without a deadline."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    def deadline_exceeded(self) -> bool:
        return self._deadline is not None and time.monotonic() >= self._deadline

    def done(self) -> bool:
        return self.cancelled or self.deadline_exceeded()

    def err(self) -> Optional[CancellationError]:
        """The error describing why the context is done, or None."""
        if self.cancelled:
            return CancellationError(self._reason)
        if self.deadline_exceeded():
            return DeadlineExceededError("context deadline exceeded")
        return None

    async def sleep(self, delay: float) -> None:
        """Sleeps for delay seconds unless the context finishes first.

        Each call waits on its own timer, so concurrent sleeps on different
        contexts never interfere.

        Raises:
            CancellationError: If the context is cancelled first.
            DeadlineExceededError: If the deadline falls before delay elapses.
        """
        err = self.err()
        if err is not None:
            raise err

        remaining = self.remaining()
        hits_deadline = remaining is not None and remaining <= delay
        timeout = remaining if hits_deadline else delay

        try:
            await asyncio.wait_for(self._cancel_event().wait(), timeout=timeout)
        except asyncio.TimeoutError:
            if hits_deadline:
                raise DeadlineExceededError("context deadline exceeded")
            return
        raise self.err() or CancellationError(self._reason)

    async def run(self, awaitable: Awaitable[Any]) -> Any:
        """Awaits awaitable, abandoning it if the context finishes first.

        Raises:
            CancellationError: If the context is cancelled first.
            DeadlineExceededError: If the deadline passes first.
        """
        err = self.err()
        if err is not None:
            if asyncio.iscoroutine(awaitable):
                awaitable.close()
            raise err

        task = asyncio.ensure_future(awaitable)
        waiter = asyncio.ensure_future(self._cancel_event().wait())
        try:
            done, _ = await asyncio.wait(
                {task, waiter},
                timeout=self.remaining(),
                return_when=asyncio.FIRST_COMPLETED,
            )
        except asyncio.CancelledError:
            task.cancel()
            raise
        finally:
            waiter.cancel()

        if task in done:
            return task.result()

        task.cancel()
        task.add_done_callback(_consume_result)
        raise self.err() or DeadlineExceededError("context deadline exceeded")
