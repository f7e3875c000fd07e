"""
Cache Infrastructure

Tagged Redis cache with graceful degradation.

- **redis_client.py**: pooled async Redis client, translates redis errors
- **key_codec.py**: canonical cache key generation
- **tag_index.py**: tag → key set index for invalidation
- **stats.py**: hit/miss/set/delete/error counters
- **cache_manager.py**: public cache API (get/set/get_or_set/invalidate)
"""

from .cache_manager import CacheManager
from .key_codec import generate_key
from .redis_client import RedisClient
from .stats import CacheStats, StatsTracker
from .tag_index import TagIndex

__all__ = [
    "CacheManager",
    "CacheStats",
    "RedisClient",
    "StatsTracker",
    "TagIndex",
    "generate_key",
]
