"""
Redis Client with Connection Pooling

Architecture:
    RedisClient (Public API)
        ├── ConnectionManager (Connection lifecycle)
        ├── OperationExecutor (Command execution with error handling)
        └── HealthMonitor (Health checks and pool metrics)

Error translation:
    redis ConnectionError / TimeoutError  → CacheConnectionError
    any other RedisError                  → CacheKeyError

The client itself never degrades; it raises. The CacheManager above it is
the layer that turns these errors into misses and no-ops.
"""

from __future__ import annotations

import time
from typing import Any

import redis.asyncio as redis
from redis.asyncio.connection import ConnectionPool, SSLConnection
from redis.exceptions import ConnectionError, RedisError, TimeoutError

from modernfinance.core.config.settings import Settings
from modernfinance.core.exceptions import CacheConnectionError, CacheKeyError
from modernfinance.core.logging.logger import get_logger

logger = get_logger(__name__)


def _translate(exc: RedisError, operation: str, **details) -> Exception:
    """Map a redis-py error to the cache exception hierarchy."""
    if isinstance(exc, (ConnectionError, TimeoutError)):
        return CacheConnectionError.from_exception(
            exc, message=f"Redis {operation} failed: backend unreachable", **details
        )
    return CacheKeyError.from_exception(exc, message=f"Redis {operation} failed: {exc}", **details)


# =============================================================================
# LAYER 1: CONNECTION MANAGEMENT
# =============================================================================


class ConnectionManager:
    """
    Manages Redis connection lifecycle and pooling.

    Pool Configuration (from settings.redis):
    - Max connections: REDIS_MAX_CONNECTIONS
    - Socket timeout / connect timeout
    - Health check interval
    - decode_responses=True (values are JSON text)
    """

    def __init__(self, settings: Settings):
        self._settings = settings
        self._pool: ConnectionPool | None = None
        self._client: redis.Redis | None = None
        self._is_connected = False

    async def connect(self) -> redis.Redis:
        """
        Establish connection to Redis with connection pooling.

        STAGE-REDIS.2: Connection establishment

        Raises:
            CacheConnectionError: If the backend cannot be reached
        """
        if self._is_connected and self._client:
            return self._client

        # Reconnecting after a lost connection: close the stale pool first
        if self._client or self._pool:
            await self._release()

        redis_settings = self._settings.redis
        try:
            # STAGE-REDIS.2.1: Create connection pool
            pool_kwargs = dict(
                host=redis_settings.REDIS_HOST,
                port=redis_settings.REDIS_PORT,
                db=redis_settings.REDIS_DB,
                password=redis_settings.REDIS_PASSWORD,
                max_connections=redis_settings.REDIS_MAX_CONNECTIONS,
                socket_connect_timeout=redis_settings.REDIS_SOCKET_CONNECT_TIMEOUT,
                socket_timeout=redis_settings.REDIS_SOCKET_TIMEOUT,
                retry_on_timeout=True,
                health_check_interval=redis_settings.REDIS_HEALTH_CHECK_INTERVAL,
                decode_responses=True,
            )
            if redis_settings.REDIS_TLS:
                pool_kwargs["connection_class"] = SSLConnection
            self._pool = ConnectionPool(**pool_kwargs)

            # STAGE-REDIS.2.2: Create client and verify with ping
            self._client = redis.Redis(connection_pool=self._pool)
            await self._client.ping()

            self._is_connected = True

            logger.info(
                "Redis connected successfully",
                stage="REDIS.2",
                host=redis_settings.REDIS_HOST,
                port=redis_settings.REDIS_PORT,
                max_connections=redis_settings.REDIS_MAX_CONNECTIONS,
            )

            return self._client

        except (ConnectionError, TimeoutError, OSError) as e:
            logger.error("Failed to connect to Redis", stage="REDIS.2", error=str(e))
            await self._release()
            raise CacheConnectionError(
                message=f"Failed to connect to Redis: {e}",
                details={
                    "host": redis_settings.REDIS_HOST,
                    "port": redis_settings.REDIS_PORT,
                },
            ) from e

    async def _release(self) -> None:
        try:
            if self._client:
                await self._client.aclose()
            if self._pool:
                await self._pool.disconnect()
        except (RedisError, OSError) as e:
            logger.warning("Error while closing Redis pool", stage="REDIS.3", error=str(e))
        self._client = None
        self._pool = None
        self._is_connected = False

    async def disconnect(self) -> None:
        """
        Close Redis connection and pool.

        STAGE-REDIS.3: Connection cleanup
        """
        await self._release()
        logger.info("Redis disconnected", stage="REDIS.3")

    def mark_disconnected(self) -> None:
        """Flag the connection as lost after a connection-level command failure."""
        self._is_connected = False

    def get_client(self) -> redis.Redis | None:
        return self._client

    def get_pool(self) -> ConnectionPool | None:
        return self._pool

    def is_connected(self) -> bool:
        return self._is_connected


# =============================================================================
# LAYER 2: OPERATION EXECUTOR
# =============================================================================


class OperationExecutor:
    """
    Executes Redis operations with consistent error handling.

    Error Handling Strategy:
    - Catch RedisError exceptions
    - Log error with context (stage, key, etc.)
    - Raise CacheConnectionError or CacheKeyError with details
    """

    def __init__(self, redis_client: redis.Redis):
        self._redis = redis_client

    # -------------------------------------------------------------------------
    # String Operations
    # -------------------------------------------------------------------------

    async def get(self, key: str) -> str | None:
        """
        Get value from Redis.

        STAGE-REDIS.GET: Redis GET operation
        """
        try:
            return await self._redis.get(key)
        except RedisError as e:
            logger.error("Redis GET failed", stage="REDIS.GET", key=key, error=str(e))
            raise _translate(e, "GET", key=key) from e

    async def set(self, key: str, value: str, ttl: int | None = None) -> bool:
        """
        Set value in Redis with an optional TTL in seconds.

        STAGE-REDIS.SET: Redis SET operation
        """
        try:
            result = await self._redis.set(key, value, ex=ttl)
            return bool(result)
        except RedisError as e:
            logger.error("Redis SET failed", stage="REDIS.SET", key=key, error=str(e))
            raise _translate(e, "SET", key=key) from e

    async def delete(self, *keys: str) -> int:
        """
        Delete keys from Redis.

        Returns:
            Number of keys deleted
        """
        if not keys:
            return 0
        try:
            return await self._redis.delete(*keys)
        except RedisError as e:
            logger.error("Redis DELETE failed", stage="REDIS.DEL", keys=keys, error=str(e))
            raise _translate(e, "DELETE", keys=list(keys)) from e

    async def exists(self, *keys: str) -> int:
        try:
            return await self._redis.exists(*keys)
        except RedisError as e:
            logger.error("Redis EXISTS failed", stage="REDIS.EXISTS", keys=keys, error=str(e))
            raise _translate(e, "EXISTS", keys=list(keys)) from e

    async def ttl(self, key: str) -> int:
        """
        Get TTL of a key.

        Returns:
            TTL in seconds, -1 if no TTL, -2 if key doesn't exist
        """
        try:
            return await self._redis.ttl(key)
        except RedisError as e:
            logger.error("Redis TTL failed", stage="REDIS.TTL", key=key, error=str(e))
            raise _translate(e, "TTL", key=key) from e

    async def flushdb(self) -> bool:
        try:
            return await self._redis.flushdb()
        except RedisError as e:
            logger.error("Redis FLUSHDB failed", stage="REDIS.FLUSH", error=str(e))
            raise _translate(e, "FLUSHDB") from e

    # -------------------------------------------------------------------------
    # Set Operations (for the tag index)
    # -------------------------------------------------------------------------

    async def set_tagged(self, key: str, value: str, ttl: int, tag_keys: list[str]) -> bool:
        """
        Store a value and register its key in every tag set, atomically.

        STAGE-REDIS.MULTI: tagged write

        Runs in one MULTI/EXEC transaction:
        - SET key value EX ttl
        - per tag set: SADD tag key
                       EXPIRE tag ttl NX   (set TTL when the set has none)
                       EXPIRE tag ttl GT   (extend TTL when the new one is longer)

        Either the value and all its tag memberships are written or none are,
        so a stored key is always reachable from its tags. A tag set's expiry
        tracks the longest TTL of any key added to it.
        """
        try:
            async with self._redis.pipeline(transaction=True) as pipe:
                pipe.set(key, value, ex=ttl)
                for tag_key in tag_keys:
                    pipe.sadd(tag_key, key)
                    pipe.expire(tag_key, ttl, nx=True)
                    pipe.expire(tag_key, ttl, gt=True)
                results = await pipe.execute()
            return bool(results[0])
        except RedisError as e:
            logger.error(
                "Redis tagged SET failed", stage="REDIS.MULTI", key=key, tags=tag_keys, error=str(e)
            )
            raise _translate(e, "MULTI", key=key, tags=tag_keys) from e

    async def sunion(self, *names: str) -> set[str]:
        """Union of the members of the given sets."""
        if not names:
            return set()
        try:
            return set(await self._redis.sunion(list(names)))
        except RedisError as e:
            logger.error("Redis SUNION failed", stage="REDIS.SUNION", names=names, error=str(e))
            raise _translate(e, "SUNION", names=list(names)) from e

    async def ping(self) -> bool:
        try:
            return bool(await self._redis.ping())
        except RedisError as e:
            raise _translate(e, "PING") from e


# =============================================================================
# LAYER 3: HEALTH MONITORING
# =============================================================================


class HealthMonitor:
    """
    Monitors Redis health and connection pool metrics.

    Metrics Tracked:
    - Connection status
    - Ping latency
    - Pool size and utilization (warning above 80%)
    """

    def __init__(self, connection_manager: ConnectionManager, settings: Settings):
        self._conn_mgr = connection_manager
        self._settings = settings

    async def health_check(self) -> dict[str, Any]:
        """
        Perform health check on Redis connection.

        STAGE-REDIS.HEALTH: Redis health check
        """
        health = {
            "status": "healthy",
            "connected": self._conn_mgr.is_connected(),
            "host": self._settings.redis.REDIS_HOST,
            "port": self._settings.redis.REDIS_PORT,
            "pool_size": 0,
            "pool_utilization_pct": 0,
            "pool_warning": False,
            "ping_latency_ms": None,
        }

        client = self._conn_mgr.get_client()
        if not client:
            health["status"] = "unhealthy"
            health["error"] = "Client not initialized"
            return health

        try:
            start = time.perf_counter()
            await client.ping()
            health["ping_latency_ms"] = round((time.perf_counter() - start) * 1000, 2)
        except RedisError as e:
            health["status"] = "unhealthy"
            health["error"] = str(e)
            return health

        pool = self._conn_mgr.get_pool()
        if pool and hasattr(pool, "_available_connections"):
            health["pool_size"] = pool.max_connections
            available = len(pool._available_connections)
            in_use = len(getattr(pool, "_in_use_connections", ()))
            utilization = 100.0 * in_use / pool.max_connections
            health["pool_available"] = available
            health["pool_utilization_pct"] = round(utilization, 1)
            if utilization > 80:
                health["pool_warning"] = True
                logger.warning(
                    "Redis pool utilization high",
                    stage="REDIS.HEALTH",
                    pool_utilization=utilization,
                    max_connections=pool.max_connections,
                )

        return health


# =============================================================================
# LAYER 4: PUBLIC API
# =============================================================================


class RedisClient:
    """
    Async Redis client with connection pooling and health checks.

    Usage:
        client = RedisClient(settings)
        await client.connect()

        await client.set("fundamentals:AAPL", "{...}", ttl=300)
        value = await client.get("fundamentals:AAPL")

        await client.disconnect()

    Every command raises CacheConnectionError when the backend is unreachable
    (also when ``connect`` was never called or failed) and CacheKeyError for
    any other command failure.
    """

    def __init__(self, settings: Settings):
        """
        STAGE-REDIS.1: Client initialization
        """
        self._settings = settings
        self._conn_mgr = ConnectionManager(settings)
        self._executor: OperationExecutor | None = None
        self._health_monitor = HealthMonitor(self._conn_mgr, settings)

    async def connect(self) -> None:
        """
        Establish connection to Redis.

        Raises:
            CacheConnectionError: If connection fails
        """
        client = await self._conn_mgr.connect()
        self._executor = OperationExecutor(client)

    async def disconnect(self) -> None:
        await self._conn_mgr.disconnect()
        self._executor = None

    def is_connected(self) -> bool:
        return self._conn_mgr.is_connected() and self._executor is not None

    def _require_executor(self) -> OperationExecutor:
        if self._executor is None or not self._conn_mgr.is_connected():
            raise CacheConnectionError("Redis client not connected")
        return self._executor

    async def _run(self, operation: str, *args):
        executor = self._require_executor()
        try:
            return await getattr(executor, operation)(*args)
        except CacheConnectionError:
            self._conn_mgr.mark_disconnected()
            raise

    async def ping(self) -> bool:
        return await self._run("ping")

    async def get(self, key: str) -> str | None:
        return await self._run("get", key)

    async def set(self, key: str, value: str, ttl: int | None = None) -> bool:
        return await self._run("set", key, value, ttl)

    async def delete(self, *keys: str) -> int:
        return await self._run("delete", *keys)

    async def exists(self, *keys: str) -> int:
        return await self._run("exists", *keys)

    async def ttl(self, key: str) -> int:
        return await self._run("ttl", key)

    async def flushdb(self) -> bool:
        return await self._run("flushdb")

    async def set_tagged(self, key: str, value: str, ttl: int, tag_keys: list[str]) -> bool:
        return await self._run("set_tagged", key, value, ttl, tag_keys)

    async def sunion(self, *names: str) -> set[str]:
        return await self._run("sunion", *names)

    async def health_check(self) -> dict[str, Any]:
        return await self._health_monitor.health_check()
