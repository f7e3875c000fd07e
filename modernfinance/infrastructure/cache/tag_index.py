"""
Tag Index

Secondary index from an invalidation tag to the cache keys carrying it.
Each tag owns a Redis set under its own keyspace (``tag:<name>`` by default)
whose TTL is the longest TTL of any key added under that tag.

A tagged value and its tag memberships are written in one transaction, so
every stored key can be reached from its tags. Members may still outlive
their keys until the next invalidation sweep, and a key written concurrently
with an invalidation may survive it.
"""

from collections.abc import Iterable

from modernfinance.core.logging.logger import get_logger, log_stage
from modernfinance.infrastructure.cache.redis_client import RedisClient

logger = get_logger(__name__)


class TagIndex:
    """
    Tag → key-set index on top of RedisClient.

    Errors from the client (CacheError) propagate; the CacheManager decides
    how to degrade.
    """

    def __init__(self, redis_client: RedisClient, prefix: str = "tag"):
        self._redis = redis_client
        self._prefix = prefix

    def tag_key(self, tag: str) -> str:
        return f"{self._prefix}:{tag}"

    async def store(self, key: str, payload: str, tags: Iterable[str], ttl: int) -> bool:
        """
        Write ``payload`` under ``key`` and register the key under every tag.

        STAGE-TAG.STORE
        """
        tag_keys = [self.tag_key(tag) for tag in tags]
        stored = await self._redis.set_tagged(key, payload, ttl, tag_keys)
        log_stage(logger, "TAG.STORE", "Key tagged", level="debug", cache_key=key, tags=tag_keys, ttl=ttl)
        return stored

    async def members(self, tags: Iterable[str]) -> set[str]:
        """Union of the keys registered under ``tags``."""
        tag_keys = [self.tag_key(tag) for tag in tags]
        if not tag_keys:
            return set()
        return await self._redis.sunion(*tag_keys)

    async def drop(self, tags: Iterable[str]) -> int:
        """Delete the tag sets themselves."""
        tag_keys = [self.tag_key(tag) for tag in tags]
        if not tag_keys:
            return 0
        return await self._redis.delete(*tag_keys)
