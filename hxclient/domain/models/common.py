"""Defines common Value Objects used across the client.

These objects represent simple values like cache keys and header names,
ensuring consistency and type safety.
"""

from typing import NewType, Callable

# === Caching Context ===
CacheKey = NewType("CacheKey", str)          # Fingerprint of a request
Namespace = NewType("Namespace", str)        # Client namespace prefixed to cache keys

# Returns an integer in [0, n). Must not be seeded from the clock.
RandomSource = Callable[[int], int]

# Header names used by the client
HEADER_USER_AGENT = "User-Agent"
HEADER_RETRY_AFTER = "Retry-After"
HEADER_AUTHORIZATION = "Authorization"
HEADER_IDEMPOTENCY_KEY = "Idempotency-Key"
HEADER_CONTENT_TYPE = "Content-Type"
HEADER_CACHE_CONTROL = "Cache-Control"
HEADER_EXPIRES = "Expires"
HEADER_DATE = "Date"

MEDIA_TYPE_FORM_URLENCODED = "application/x-www-form-urlencoded"
