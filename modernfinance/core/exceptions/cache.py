"""
Cache-Related Exceptions

All exceptions raised by the Redis client wrapper. The cache manager
catches every CacheError and degrades to a safe default, so none of these
reach callers of the cache layer.
"""

from modernfinance.core.exceptions.base import ModernFinanceError


class CacheError(ModernFinanceError):
    """Base exception for cache-related errors."""
    pass


class CacheConnectionError(CacheError):
    """
    Raised when the Redis backend is unreachable.

    Common causes:
    - Redis server is down
    - Network connectivity issues
    - Incorrect host/port/URL configuration
    """
    pass


class CacheKeyError(CacheError):
    """
    Raised when a Redis command fails on a reachable backend.

    Common causes:
    - Wrong value type under a key
    - Memory limit exceeded
    """
    pass


class CacheSerializationError(CacheError):
    """Raised when a value cannot be encoded to or decoded from JSON."""
    pass
