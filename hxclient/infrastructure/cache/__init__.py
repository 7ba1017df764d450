"""Caching Service Implementation.

Provides the concrete ResponseCache for the CacheService interface,
handling two cache levels (L1: in-memory LRU, L2: diskcache) with TTLs
derived from response headers.
Bounded Context: Cache Management
"""
