#!/usr/bin/env python3
"""
Tagged Cache Manager

Architecture:
    CacheManager (Public API)
        ├── RedisClient (commands, raises CacheError)
        ├── TagIndex (tag → key sets)
        └── StatsTracker (hits/misses/sets/deletes/errors)

Degradation:
    Every public operation is tolerant of backend unavailability. A
    CacheConnectionError marks the backend unavailable; while unavailable,
    reads are misses, writes return False and queries return defaults.
    Reconnection is attempted lazily on the next operation once
    REDIS_RECONNECT_INTERVAL seconds have passed since the last attempt.

    Callers cannot tell a true miss from a degraded one. Degradation is
    reported through warning logs and the ``errors`` counter only.

Values are stored as orjson-encoded JSON text. Pydantic models are dumped to
plain JSON; readers re-validate them.
"""

import inspect
import time
from collections.abc import Awaitable, Callable, Iterable
from datetime import datetime, timezone
from typing import Any, TypeVar

import orjson
from pydantic import BaseModel, ValidationError

from modernfinance.core.config.settings import Settings
from modernfinance.core.exceptions import CacheConnectionError, CacheError
from modernfinance.core.logging.logger import get_logger, log_stage
from modernfinance.infrastructure.cache.key_codec import generate_key
from modernfinance.infrastructure.cache.redis_client import RedisClient
from modernfinance.infrastructure.cache.stats import CacheStats, StatsTracker
from modernfinance.infrastructure.cache.tag_index import TagIndex

logger = get_logger(__name__)

T = TypeVar("T")
M = TypeVar("M", bound=BaseModel)


def _encode_default(obj: Any) -> Any:
    if isinstance(obj, BaseModel):
        return obj.model_dump(mode="json")
    if isinstance(obj, (set, frozenset)):
        return list(obj)
    raise TypeError(f"Type is not JSON serializable: {type(obj).__name__}")


class CacheManager:
    """
    TTL key-value cache with tag-based invalidation over Redis.

    Usage:
        cache = CacheManager(settings)
        await cache.initialize()

        await cache.set("fundamentals:AAPL", data, ttl=300, tags=["symbol:AAPL"])
        data = await cache.get("fundamentals:AAPL")
        removed = await cache.invalidate_by_tags(["symbol:AAPL"])

        await cache.shutdown()
    """

    def __init__(
        self,
        settings: Settings,
        redis_client: RedisClient | None = None,
        stats: StatsTracker | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize cache manager.

        STAGE-CACHE.0: Cache manager initialization

        Args:
            settings: Application settings
            redis_client: Redis client (a new RedisClient if omitted)
            stats: Stats tracker (a fresh one if omitted)
            clock: Monotonic clock used for the reconnect interval
        """
        cache_settings = settings.cache
        self._redis = redis_client or RedisClient(settings)
        self._tags = TagIndex(self._redis, prefix=cache_settings.CACHE_TAG_PREFIX)
        self._stats = stats or StatsTracker()
        self._clock = clock

        self._enabled = cache_settings.ENABLE_CACHING
        self._default_ttl = cache_settings.CACHE_DEFAULT_TTL
        self._reconnect_interval = settings.redis.REDIS_RECONNECT_INTERVAL

        self._available = False
        self._last_connect_attempt: float | None = None

        log_stage(
            logger,
            "CACHE.0",
            "Cache manager created",
            enabled=self._enabled,
            default_ttl=self._default_ttl,
        )

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def initialize(self) -> None:
        """
        Connect to Redis. A failure leaves the cache degraded, never raises.

        STAGE-CACHE.1: Backend connection
        """
        if not self._enabled:
            log_stage(logger, "CACHE.1", "Caching disabled by configuration", level="warning")
            return
        await self._connect()

    async def shutdown(self) -> None:
        """
        STAGE-CACHE.9: Backend disconnection
        """
        await self._redis.disconnect()
        self._available = False
        log_stage(logger, "CACHE.9", "Cache manager shut down")

    async def _connect(self) -> bool:
        self._last_connect_attempt = self._clock()
        try:
            await self._redis.connect()
        except CacheConnectionError as e:
            self._available = False
            log_stage(
                logger,
                "CACHE.1",
                "Cache backend unavailable, running degraded",
                level="warning",
                error=e.message,
                retry_in_seconds=self._reconnect_interval,
            )
            return False
        self._available = True
        log_stage(logger, "CACHE.1", "Cache backend connected")
        return True

    async def _ensure_backend(self) -> bool:
        """True when commands may be sent; retries the connection when due."""
        if not self._enabled:
            return False
        if self._available:
            return True
        if (
            self._last_connect_attempt is not None
            and self._clock() - self._last_connect_attempt < self._reconnect_interval
        ):
            return False
        return await self._connect()

    def _on_backend_error(self, error: CacheError, operation: str, **context) -> None:
        self._stats.record_error()
        if isinstance(error, CacheConnectionError):
            self._available = False
            self._last_connect_attempt = self._clock()
            log_stage(
                logger,
                f"CACHE.{operation.upper()}",
                "Cache backend lost, degrading to no-op",
                level="warning",
                error=error.message,
                **context,
            )
        else:
            log_stage(
                logger,
                f"CACHE.{operation.upper()}",
                "Cache command failed",
                level="warning",
                error=error.message,
                **context,
            )

    def is_available(self) -> bool:
        return self._enabled and self._available

    # -------------------------------------------------------------------------
    # Core Operations
    # -------------------------------------------------------------------------

    async def get(self, key: str) -> Any | None:
        """
        Get a value, or None on miss, decode failure or backend fault.

        STAGE-CACHE.GET
        """
        if not await self._ensure_backend():
            self._stats.record_miss()
            return None

        try:
            raw = await self._redis.get(key)
        except CacheError as e:
            self._on_backend_error(e, "get", cache_key=key)
            self._stats.record_miss()
            return None

        if raw is None:
            self._stats.record_miss()
            log_stage(logger, "CACHE.GET", "Cache miss", level="debug", cache_key=key)
            return None

        try:
            value = orjson.loads(raw)
        except orjson.JSONDecodeError as e:
            self._stats.record_error()
            self._stats.record_miss()
            log_stage(
                logger, "CACHE.GET", "Cached value is not valid JSON", level="warning",
                cache_key=key, error=str(e),
            )
            return None

        if value is None:
            self._stats.record_miss()
            return None

        self._stats.record_hit()
        log_stage(logger, "CACHE.GET", "Cache hit", level="debug", cache_key=key)
        return value

    async def set(
        self,
        key: str,
        value: Any,
        ttl: int | None = None,
        tags: Iterable[str] = (),
    ) -> bool:
        """
        Store a value with a TTL and register it under ``tags``.

        STAGE-CACHE.SET

        Args:
            key: Cache key
            value: JSON-encodable value (pydantic models allowed)
            ttl: Time-to-live in seconds (default: CACHE_DEFAULT_TTL)
            tags: Invalidation tags

        Returns:
            True if stored; False on serialization failure or backend fault.
        """
        ttl = ttl if ttl is not None else self._default_ttl
        tags = list(tags)

        try:
            payload = orjson.dumps(value, default=_encode_default).decode("utf-8")
        except (orjson.JSONEncodeError, TypeError) as e:
            self._stats.record_error()
            log_stage(
                logger, "CACHE.SET", "Value is not serializable, not cached", level="warning",
                cache_key=key, error=str(e),
            )
            return False

        if not await self._ensure_backend():
            return False

        try:
            if tags:
                await self._tags.store(key, payload, tags, ttl)
            else:
                await self._redis.set(key, payload, ttl=ttl)
        except CacheError as e:
            self._on_backend_error(e, "set", cache_key=key)
            return False

        self._stats.record_set()
        log_stage(logger, "CACHE.SET", "Cache set", level="debug", cache_key=key, ttl=ttl, tags=tags)
        return True

    async def delete(self, key: str) -> bool:
        """
        STAGE-CACHE.DEL

        Returns:
            True if the key existed and was removed.
        """
        return await self.delete_many([key]) > 0

    async def delete_many(self, keys: Iterable[str]) -> int:
        """Delete several keys; returns how many were removed."""
        keys = list(keys)
        if not keys or not await self._ensure_backend():
            return 0
        try:
            removed = await self._redis.delete(*keys)
        except CacheError as e:
            self._on_backend_error(e, "delete", keys=keys)
            return 0
        self._stats.record_delete(removed)
        log_stage(logger, "CACHE.DEL", "Cache invalidated", level="debug", keys=keys, removed=removed)
        return removed

    async def invalidate_by_tags(self, tags: Iterable[str]) -> int:
        """
        Delete every key registered under any of ``tags``, then the tag sets.

        STAGE-CACHE.INVALIDATE

        Keys written under a tag while this runs may or may not be removed.

        Returns:
            Number of cache keys removed.
        """
        tags = list(tags)
        if not tags or not await self._ensure_backend():
            return 0
        try:
            keys = await self._tags.members(tags)
            removed = await self._redis.delete(*keys) if keys else 0
            await self._tags.drop(tags)
        except CacheError as e:
            self._on_backend_error(e, "invalidate", tags=tags)
            return 0
        self._stats.record_delete(removed)
        log_stage(logger, "CACHE.INVALIDATE", "Tags invalidated", tags=tags, removed=removed)
        return removed

    async def exists(self, key: str) -> bool:
        if not await self._ensure_backend():
            return False
        try:
            return await self._redis.exists(key) > 0
        except CacheError as e:
            self._on_backend_error(e, "exists", cache_key=key)
            return False

    async def ttl(self, key: str) -> int:
        """
        Remaining TTL in seconds.

        Returns:
            Redis semantics (-2 missing, -1 no expiry); -2 when degraded,
            as a degraded read is a miss.
        """
        if not await self._ensure_backend():
            return -2
        try:
            return await self._redis.ttl(key)
        except CacheError as e:
            self._on_backend_error(e, "ttl", cache_key=key)
            return -2

    async def flush(self) -> bool:
        """Drop every key in the configured Redis database."""
        if not await self._ensure_backend():
            return False
        try:
            await self._redis.flushdb()
        except CacheError as e:
            self._on_backend_error(e, "flush")
            return False
        log_stage(logger, "CACHE.FLUSH", "Cache flushed", level="warning")
        return True

    # -------------------------------------------------------------------------
    # Cache-Aside
    # -------------------------------------------------------------------------

    async def get_or_set(
        self,
        key: str,
        compute: Callable[[], T | Awaitable[T]],
        ttl: int | None = None,
        tags: Iterable[str] = (),
        model: type[M] | None = None,
    ) -> T:
        """
        Get from cache or compute and cache the result.

        STAGE-CACHE.ASIDE: Cache-aside pattern

        On a hit ``compute`` is not called. On a miss (degraded included) it
        is called exactly once and its result returned even if storing it
        fails. Concurrent misses on one key each compute; last write wins.

        With ``model`` a hit is validated into that pydantic model, so hits
        and misses return the same type. A cached entry that fails validation
        is treated as a miss and overwritten.

        Args:
            key: Cache key
            compute: Sync or async zero-argument callable
            ttl: Time-to-live in seconds
            tags: Invalidation tags for the stored value
            model: Pydantic model the computed value is an instance of
        """
        cached = await self.get(key)
        if cached is not None:
            if model is None:
                return cached
            try:
                return model.model_validate(cached)
            except ValidationError as e:
                self._stats.record_error()
                log_stage(
                    logger, "CACHE.ASIDE", "Discarding malformed cached value", level="warning",
                    cache_key=key, model=model.__name__, errors=e.error_count(),
                )

        value = compute()
        if inspect.isawaitable(value):
            value = await value

        if value is not None:
            await self.set(key, value, ttl=ttl, tags=tags)
        return value

    # -------------------------------------------------------------------------
    # Utilities
    # -------------------------------------------------------------------------

    @staticmethod
    def generate_key(*parts: Any) -> str:
        """See :func:`modernfinance.infrastructure.cache.key_codec.generate_key`."""
        return generate_key(*parts)

    def get_stats(self) -> CacheStats:
        return self._stats.snapshot()

    def reset_stats(self) -> None:
        self._stats.reset()

    async def health_check(self) -> dict[str, Any]:
        """
        Perform health check on the cache.

        Returns:
            Dict with overall status, backend health and stats
        """
        health = {
            "status": "healthy",
            "caching_enabled": self._enabled,
            "backend": None,
            "stats": self._stats.snapshot().to_dict(),
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

        if not self._enabled:
            health["status"] = "disabled"
            return health

        if self._available:
            backend = await self._redis.health_check()
            health["backend"] = backend
            if backend.get("status") != "healthy":
                health["status"] = "degraded"
        else:
            health["status"] = "degraded"
            health["backend"] = {"status": "not_connected"}

        return health
