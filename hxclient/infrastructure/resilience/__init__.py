"""Request Resilience Implementations.

Contains the retry policy (status classification and jittered backoff)
and the token bucket rate limiter that paces retries.
Bounded Context: Request Resilience
"""
