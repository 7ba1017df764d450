"""Interface for response caches.

Defines the contract for storing and retrieving responses by request
fingerprint, and the policy deciding how long a response may be cached.
"""

import abc
from typing import Optional

# Import relevant domain models
from ..models.common import CacheKey
from ..models.http import Response


class CachePolicy(abc.ABC):
    """Derives the cache lifetime of a response."""

    @abc.abstractmethod
    def ttl(self, response: Response) -> float:
        """Returns the time-to-live in seconds; 0 or less means do not store."""
        pass


class CacheService(abc.ABC):
    """Abstract Base Class for caching operations."""

    @abc.abstractmethod
    async def get(self, key: CacheKey) -> Optional[Response]:
        """Retrieves a response from the cache asynchronously.

        Args:
            key: The cache key to retrieve.

        Returns:
            The cached response if found and not expired, otherwise None.

        Raises:
            CacheError: If the cache backend fails.
        """
        pass

    @abc.abstractmethod
    async def set(self, key: CacheKey, response: Response, ttl: float) -> None:
        """Stores a response asynchronously.

        Args:
            key: The cache key to store the response under.
            response: The response to store.
            ttl: Time-to-live in seconds; nothing is stored when ttl <= 0.

        Raises:
            CacheError: If the cache backend fails.
        """
        pass

    @abc.abstractmethod
    async def delete(self, key: CacheKey) -> None:
        """Deletes a response from the cache asynchronously."""
        pass

    @abc.abstractmethod
    async def clear(self) -> None:
        """Clears all entries asynchronously."""
        pass

    @abc.abstractmethod
    def policy(self) -> CachePolicy:
        """Returns the TTL policy applied to responses before storing them."""
        pass
