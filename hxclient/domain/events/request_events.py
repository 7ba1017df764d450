"""Domain Events emitted while the client executes a request.

Examples include events for cache hits, attempts, rate limiting, retries
and the final outcome of a call.
"""

from dataclasses import dataclass, field
import time
from typing import Optional


@dataclass
class DomainEvent:
    """Base class for domain events."""
    pass


@dataclass
class RequestStarted(DomainEvent):
    """Event triggered when Client.do begins a logical call."""
    method: str
    url: str
    timestamp: float = field(default_factory=time.time)


@dataclass
class CacheHit(DomainEvent):
    """Event triggered when a call is answered from the cache."""
    method: str
    url: str
    cache_key: str
    timestamp: float = field(default_factory=time.time)


@dataclass
class AttemptStarted(DomainEvent):
    """Event triggered before each transport call."""
    method: str
    url: str
    attempt_number: int  # 1-based
    timestamp: float = field(default_factory=time.time)


@dataclass
class RateLimitApplied(DomainEvent):
    """Event triggered when a retry waited on the rate limiter."""
    method: str
    url: str
    attempt_number: int
    wait_time_seconds: float
    timestamp: float = field(default_factory=time.time)


@dataclass
class RetryScheduled(DomainEvent):
    """Event triggered when a retryable response schedules another attempt."""
    method: str
    url: str
    attempt_number: int
    status_code: int
    timestamp: float = field(default_factory=time.time)


@dataclass
class CacheStored(DomainEvent):
    """Event triggered when a final response is written to the cache."""
    method: str
    url: str
    cache_key: str
    ttl_seconds: float
    timestamp: float = field(default_factory=time.time)


@dataclass
class RequestSucceeded(DomainEvent):
    """Event triggered when a call returns a final response."""
    method: str
    url: str
    status_code: int
    attempts: int
    latency_ms: float
    timestamp: float = field(default_factory=time.time)


@dataclass
class RequestFailed(DomainEvent):
    """Event triggered when a call ends with an error."""
    method: str
    url: str
    error_type: str
    error_message: str
    attempts: int
    status_code: Optional[int] = None
    timestamp: float = field(default_factory=time.time)
