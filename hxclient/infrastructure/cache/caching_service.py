"""Concrete implementation of the response cache.

Manages an L1 (in-memory LRU) cache and an optional L2 (diskcache) cache,
with lifetimes derived from the response's caching headers by
DefaultCachePolicy.
"""

import asyncio
import logging
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from pathlib import Path
from typing import Dict, Optional, Union

import diskcache as dc

# Domain Layer Imports
from hxclient.core.exceptions import CacheError
from hxclient.domain.interfaces.cache import CacheService, CachePolicy
from hxclient.domain.models.common import (
    CacheKey,
    HEADER_CACHE_CONTROL,
    HEADER_DATE,
    HEADER_EXPIRES,
)
from hxclient.domain.models.http import Response

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 128
DEFAULT_TTL_SECONDS = 15 * 60  # 15 minutes

CACHEABLE_METHODS = frozenset({"GET", "HEAD"})
# Status codes cacheable by default when no explicit freshness is given (RFC 9110)
HEURISTIC_STATUS_CODES = frozenset({200, 203, 204, 206, 300, 301, 404, 405, 410, 414, 501})
UNCACHEABLE_DIRECTIVES = ("no-store", "no-cache", "private")


def _parse_cache_control(value: str) -> Dict[str, Optional[str]]:
    """Splits a Cache-Control header into a directive -> argument mapping."""
    directives: Dict[str, Optional[str]] = {}
    for part in value.split(","):
        part = part.strip()
        if not part:
            continue
        name, _, argument = part.partition("=")
        directives[name.strip().lower()] = argument.strip().strip('"') or None
    return directives


def _parse_http_date(value: str) -> Optional[datetime]:
    try:
        parsed = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class DefaultCachePolicy(CachePolicy):
    """Derives a response's TTL from Cache-Control, Expires and its status.

    Only GET and HEAD responses are cached. Explicit freshness headers win;
    otherwise default_ttl applies to heuristically cacheable status codes.
    """

    def __init__(self, default_ttl: float = DEFAULT_TTL_SECONDS):
        self.default_ttl = default_ttl

    def ttl(self, response: Response) -> float:
        if response.request is not None and response.request.method not in CACHEABLE_METHODS:
            return 0.0

        directives = _parse_cache_control(response.get_header(HEADER_CACHE_CONTROL, "") or "")
        if any(d in directives for d in UNCACHEABLE_DIRECTIVES):
            return 0.0

        for name in ("s-maxage", "max-age"):
            if name in directives:
                try:
                    return max(0.0, float(int(directives[name] or "")))
                except ValueError:
                    return 0.0

        expires = response.get_header(HEADER_EXPIRES)
        if expires is not None:
            expires_at = _parse_http_date(expires)
            if expires_at is None:
                return 0.0  # An invalid Expires means already expired
            date_header = response.get_header(HEADER_DATE)
            now = (_parse_http_date(date_header) if date_header else None) or datetime.now(timezone.utc)
            return max(0.0, (expires_at - now).total_seconds())

        if response.status_code in HEURISTIC_STATUS_CODES:
            return float(self.default_ttl)
        return 0.0


@dataclass
class CacheEntry:
    """Internal representation of an L1 cache entry with expiry."""
    response: Response
    expiry_time: float  # time.monotonic() value when the entry expires


class ResponseCache(CacheService):
    """Two-level response cache (L1 memory, optional L2 disk).

    Safe for concurrent use; concurrent writers to the same key follow
    last-write-wins.
    """

    def __init__(
        self,
        capacity: int = DEFAULT_CAPACITY,
        default_ttl: float = DEFAULT_TTL_SECONDS,
        cache_dir: Optional[Union[str, Path]] = None,
        policy: Optional[CachePolicy] = None,
    ):
        """Initializes the cache.

        Args:
            capacity: Maximum number of L1 entries; least recently used are evicted.
            default_ttl: TTL used by the default policy for heuristically cacheable responses.
            cache_dir: Directory of the L2 disk cache. L2 is disabled when None.
            policy: TTL policy; DefaultCachePolicy(default_ttl) when None.
        """
        if capacity <= 0:
            raise ValueError("Cache capacity must be positive.")

        self.capacity = capacity
        self._policy = policy or DefaultCachePolicy(default_ttl)
        self._entries: "OrderedDict[CacheKey, CacheEntry]" = OrderedDict()
        self._lock = threading.Lock()  # Guards _entries

        self.disk_cache: Optional[dc.Cache] = None
        if cache_dir is not None:
            try:
                self.disk_cache = dc.Cache(str(cache_dir), timeout=1)
            except Exception as e:
                logger.error(f"Failed to initialize L2 disk cache at {cache_dir}: {e}", exc_info=True)
                raise CacheError(f"cannot open disk cache at {cache_dir}: {e}") from e

        logger.info(
            f"ResponseCache initialized. L1(max={capacity}), "
            f"L2({self.disk_cache.directory if self.disk_cache else 'disabled'})"
        )

    def policy(self) -> CachePolicy:
        return self._policy

    # --- L1 Cache Operations ---

    def _get_from_memory(self, key: CacheKey) -> Optional[Response]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if time.monotonic() > entry.expiry_time:
                del self._entries[key]
                logger.debug(f"L1 cache expired for key: {key}")
                return None
            self._entries.move_to_end(key)  # LRU order
            return entry.response

    def _put_in_memory(self, key: CacheKey, response: Response, ttl: float) -> None:
        with self._lock:
            self._entries[key] = CacheEntry(response=response, expiry_time=time.monotonic() + ttl)
            self._entries.move_to_end(key)
            while len(self._entries) > self.capacity:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug(f"L1 cache evicted key (LRU): {evicted}")

    # --- CacheService Interface Implementation ---

    async def get(self, key: CacheKey) -> Optional[Response]:
        """Retrieves a response from L1, then L2 (promoting L2 hits to L1)."""
        response = self._get_from_memory(key)
        if response is not None:
            logger.debug(f"L1 cache hit for key: {key}")
            return response.copy()

        if self.disk_cache is not None:
            try:
                response, expire_time = await asyncio.to_thread(
                    self.disk_cache.get, key, None, expire_time=True
                )
            except Exception as e:
                raise CacheError(f"cannot read disk cache entry {key}: {e}") from e

            if response is not None:
                logger.debug(f"L2 cache hit for key: {key}")
                remaining = expire_time - time.time() if expire_time else self._policy_default_ttl()
                if remaining > 0:
                    self._put_in_memory(key, response, remaining)
                return response.copy()

        logger.debug(f"Cache miss for key: {key}")
        return None

    async def set(self, key: CacheKey, response: Response, ttl: float) -> None:
        """Stores a response in L1 and, when enabled, L2."""
        if ttl <= 0:
            logger.debug(f"Not caching key {key}: ttl={ttl}")
            return

        # The request may carry credentials; it is re-attached by the client on hit
        stored = response.copy(request=None, from_cache=False)
        self._put_in_memory(key, stored, ttl)

        if self.disk_cache is not None:
            try:
                await asyncio.to_thread(self.disk_cache.set, key, stored, expire=ttl)
            except Exception as e:
                raise CacheError(f"cannot write disk cache entry {key}: {e}") from e
        logger.debug(f"Stored response in cache: key={key}, ttl={ttl:.0f}s")

    async def delete(self, key: CacheKey) -> None:
        with self._lock:
            self._entries.pop(key, None)
        if self.disk_cache is not None:
            try:
                await asyncio.to_thread(self.disk_cache.delete, key)
            except Exception as e:
                raise CacheError(f"cannot delete disk cache entry {key}: {e}") from e

    async def clear(self) -> None:
        with self._lock:
            self._entries.clear()
        logger.info("Cleared L1 (in-memory) cache.")

        if self.disk_cache is not None:
            try:
                count = await asyncio.to_thread(self.disk_cache.clear)
            except Exception as e:
                raise CacheError(f"cannot clear disk cache: {e}") from e
            logger.info(f"Cleared L2 (disk) cache. Removed {count} items.")

    def close(self) -> None:
        if self.disk_cache is not None:
            self.disk_cache.close()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _policy_default_ttl(self) -> float:
        return float(getattr(self._policy, "default_ttl", DEFAULT_TTL_SECONDS))
