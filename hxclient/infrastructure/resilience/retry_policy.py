"""Retry policy for HTTP responses.

Classifies which responses are worth retrying and computes how long to wait
before the next attempt. Delays honor the server's Retry-After header and are
jittered so that many clients retrying the same upstream do not synchronize.
"""

import logging
import re
import secrets
from typing import Iterable, Optional

from hxclient.core.exceptions import CancellationError, RetryCanceledError
from hxclient.domain.models.common import HEADER_RETRY_AFTER, RandomSource
from hxclient.domain.models.context import RequestContext
from hxclient.domain.models.http import Response

logger = logging.getLogger(__name__)

# Delay is drawn uniformly from [base * (1 - f), base * (1 + f)]
JITTER_FRACTION = 0.25

DEFAULT_RETRYABLE_STATUS_CODES = (
    429,  # Too Many Requests
    503,  # Service Unavailable
    502,  # Bad Gateway
    504,  # Gateway Timeout
    408,  # Request Timeout
    409,  # Conflict
    412,  # Precondition Failed
    423,  # Locked
)
DEFAULT_MAX_RETRIES = 4
DEFAULT_MIN_RETRY_DELAY = 1.0
DEFAULT_MAX_RETRY_DELAY = 30.0

_MICROSECONDS = 1_000_000

# ASCII digits only, as in a delay-seconds Retry-After value
_INTEGER_SECONDS = re.compile(r"[+-]?[0-9]+")


class RetryPolicy:
    """Decides whether and when a request is retried.

    The policy holds only configuration; wait() allocates its own timer on
    every call, so one policy can be shared by concurrent requests.
    """

    def __init__(
        self,
        max_retries: int = DEFAULT_MAX_RETRIES,
        min_retry_delay: float = DEFAULT_MIN_RETRY_DELAY,
        max_retry_delay: float = DEFAULT_MAX_RETRY_DELAY,
        retryable_status_codes: Optional[Iterable[int]] = None,
        random_source: Optional[RandomSource] = None,
    ):
        """Initializes the RetryPolicy.

        Args:
            max_retries: Total number of attempts a request may take.
            min_retry_delay: Lower bound of any computed delay, in seconds.
            max_retry_delay: Upper bound of any computed delay, in seconds.
            retryable_status_codes: Status codes that trigger a retry.
            random_source: Returns an integer in [0, n). Defaults to
                secrets.randbelow, which is not seeded from the clock.
        """
        if max_retries < 1:
            raise ValueError("max_retries must be at least 1.")
        if min_retry_delay < 0 or max_retry_delay < 0:
            raise ValueError("Retry delays must not be negative.")
        if min_retry_delay > max_retry_delay:
            raise ValueError("min_retry_delay must not exceed max_retry_delay.")

        self.max_retries = max_retries
        self.min_retry_delay = min_retry_delay
        self.max_retry_delay = max_retry_delay
        self.retryable_status_codes = frozenset(
            DEFAULT_RETRYABLE_STATUS_CODES if retryable_status_codes is None else retryable_status_codes
        )
        self.random_source: RandomSource = random_source or secrets.randbelow

    @classmethod
    def from_settings(cls, settings) -> "RetryPolicy":
        """Builds a policy from a RetrySettings instance."""
        return cls(
            max_retries=settings.max_retries,
            min_retry_delay=settings.min_delay,
            max_retry_delay=settings.max_delay,
            retryable_status_codes=settings.status_codes,
        )

    def should_retry(self, response: Response) -> bool:
        """True if the response's status code is in the retryable set."""
        return response.status_code in self.retryable_status_codes

    def retry_after(self, response: Response) -> float:
        """Returns the jittered delay in seconds before retrying.

        Uses the integer seconds of the Retry-After header when present and
        parseable, otherwise min_retry_delay. The result is clamped into
        [min_retry_delay, max_retry_delay].
        """
        delay = self.min_retry_delay

        header = response.get_header(HEADER_RETRY_AFTER)
        if header:
            if _INTEGER_SECONDS.fullmatch(header.strip()):
                delay = float(int(header.strip()))
            else:
                logger.debug(f"Ignoring non-integer Retry-After header: {header!r}")

        jittered = self._jitter(delay)
        return min(max(jittered, self.min_retry_delay), self.max_retry_delay)

    async def wait(self, ctx: RequestContext, response: Response) -> None:
        """Sleeps for retry_after(response) unless ctx finishes first.

        Raises:
            RetryCanceledError: If ctx is cancelled or its deadline passes;
                the context error is chained as the cause.
        """
        delay = self.retry_after(response)
        logger.debug(f"Waiting {delay:.3f}s before retrying (status {response.status_code})")
        try:
            await ctx.sleep(delay)
        except CancellationError as e:
            raise RetryCanceledError(e) from e

    def _jitter(self, delay: float) -> float:
        delay_us = int(delay * _MICROSECONDS)
        jitter_range = int(delay_us * JITTER_FRACTION)
        if jitter_range <= 0:
            return delay
        low = delay_us - jitter_range
        return (low + self.random_source(2 * jitter_range)) / _MICROSECONDS

    def __repr__(self) -> str:
        return (
            f"RetryPolicy(max_retries={self.max_retries}, "
            f"min_retry_delay={self.min_retry_delay}, max_retry_delay={self.max_retry_delay}, "
            f"retryable_status_codes={sorted(self.retryable_status_codes)})"
        )
