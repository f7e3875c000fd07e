"""
Unit Tests for RedisClient

Tests redis-py error translation, the tagged write transaction and pool
release on reconnect, with the redis.asyncio client mocked out.
"""

import typing
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from redis.exceptions import ConnectionError, ResponseError, TimeoutError

from modernfinance.core.exceptions import CacheConnectionError, CacheKeyError
from modernfinance.infrastructure.cache.redis_client import OperationExecutor, RedisClient
from tests.test_fixtures.cache_factory import InMemoryRedis


@pytest.fixture
def redis_mock():
    mock = MagicMock()
    mock.get = AsyncMock(return_value=None)
    mock.set = AsyncMock(return_value=True)
    mock.delete = AsyncMock(return_value=1)
    mock.sunion = AsyncMock(return_value=["a", "b"])
    mock.ping = AsyncMock(return_value=True)
    return mock


@pytest.mark.unit
class TestOperationExecutor:
    @pytest.mark.asyncio
    async def test_set_passes_ttl_as_ex(self, redis_mock):
        executor = OperationExecutor(redis_mock)

        assert await executor.set("k", "v", ttl=30) is True
        redis_mock.set.assert_awaited_once_with("k", "v", ex=30)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error", [ConnectionError("refused"), TimeoutError("timed out")])
    async def test_connection_errors_translate(self, redis_mock, error):
        redis_mock.get.side_effect = error

        with pytest.raises(CacheConnectionError):
            await OperationExecutor(redis_mock).get("k")

    @pytest.mark.asyncio
    async def test_command_errors_translate(self, redis_mock):
        redis_mock.get.side_effect = ResponseError("WRONGTYPE")

        with pytest.raises(CacheKeyError) as exc_info:
            await OperationExecutor(redis_mock).get("k")

        assert exc_info.value.details["key"] == "k"

    @pytest.mark.asyncio
    async def test_delete_without_keys_skips_redis(self, redis_mock):
        assert await OperationExecutor(redis_mock).delete() == 0
        redis_mock.delete.assert_not_called()

    @pytest.mark.asyncio
    async def test_sunion_returns_set(self, redis_mock):
        assert await OperationExecutor(redis_mock).sunion("tag:a", "tag:b") == {"a", "b"}
        redis_mock.sunion.assert_awaited_once_with(["tag:a", "tag:b"])

    @pytest.mark.parametrize("owner", [OperationExecutor, RedisClient, InMemoryRedis])
    def test_sunion_annotation_is_builtin_set(self, owner):
        # declared after a method named set
        assert typing.get_type_hints(owner.sunion)["return"] == set[str]

    @pytest.mark.asyncio
    async def test_set_tagged_runs_one_transaction(self, redis_mock):
        pipe = MagicMock()
        pipe.execute = AsyncMock(return_value=[True, 1, True, False, 1, True, False])
        redis_mock.pipeline.return_value.__aenter__ = AsyncMock(return_value=pipe)
        redis_mock.pipeline.return_value.__aexit__ = AsyncMock(return_value=False)

        stored = await OperationExecutor(redis_mock).set_tagged("k", "v", 60, ["tag:a", "tag:b"])

        assert stored is True
        redis_mock.pipeline.assert_called_once_with(transaction=True)
        pipe.set.assert_called_once_with("k", "v", ex=60)
        assert [c.args for c in pipe.sadd.call_args_list] == [("tag:a", "k"), ("tag:b", "k")]
        pipe.expire.assert_any_call("tag:a", 60, nx=True)
        pipe.expire.assert_any_call("tag:b", 60, gt=True)
        pipe.execute.assert_awaited_once()
        redis_mock.set.assert_not_called()

    @pytest.mark.asyncio
    async def test_set_tagged_abort_translates(self, redis_mock):
        pipe = MagicMock()
        pipe.execute = AsyncMock(side_effect=ResponseError("EXECABORT"))
        redis_mock.pipeline.return_value.__aenter__ = AsyncMock(return_value=pipe)
        redis_mock.pipeline.return_value.__aexit__ = AsyncMock(return_value=False)

        with pytest.raises(CacheKeyError) as exc_info:
            await OperationExecutor(redis_mock).set_tagged("k", "v", 60, ["tag:a"])

        assert exc_info.value.details["tags"] == ["tag:a"]


@pytest.mark.unit
class TestRedisClient:
    @pytest.mark.asyncio
    async def test_commands_before_connect_raise_connection_error(self, settings):
        client = RedisClient(settings)

        with pytest.raises(CacheConnectionError):
            await client.get("k")

    @pytest.mark.asyncio
    async def test_connect_failure_raises_connection_error(self, settings):
        fake = MagicMock()
        fake.ping = AsyncMock(side_effect=ConnectionError("refused"))
        fake.aclose = AsyncMock()

        with patch("modernfinance.infrastructure.cache.redis_client.redis.Redis", return_value=fake):
            client = RedisClient(settings)
            with pytest.raises(CacheConnectionError):
                await client.connect()

        assert client.is_connected() is False
        fake.aclose.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_connection_error_marks_client_disconnected(self, settings, redis_mock):
        redis_mock.get.side_effect = ConnectionError("reset")

        with patch("modernfinance.infrastructure.cache.redis_client.redis.Redis", return_value=redis_mock):
            client = RedisClient(settings)
            await client.connect()
            assert client.is_connected() is True

            with pytest.raises(CacheConnectionError):
                await client.get("k")

        assert client.is_connected() is False

    @pytest.mark.asyncio
    async def test_reconnect_releases_stale_pool(self, settings):
        first_client, second_client = MagicMock(), MagicMock()
        for client in (first_client, second_client):
            client.ping = AsyncMock(return_value=True)
            client.aclose = AsyncMock()
        first_pool, second_pool = MagicMock(), MagicMock()
        for pool in (first_pool, second_pool):
            pool.disconnect = AsyncMock()

        module = "modernfinance.infrastructure.cache.redis_client"
        with patch(f"{module}.ConnectionPool", side_effect=[first_pool, second_pool]), patch(
            f"{module}.redis.Redis", side_effect=[first_client, second_client]
        ):
            client = RedisClient(settings)
            await client.connect()
            first_client.get = AsyncMock(side_effect=ConnectionError("reset"))
            with pytest.raises(CacheConnectionError):
                await client.get("k")

            await client.connect()

        first_client.aclose.assert_awaited_once()
        first_pool.disconnect.assert_awaited_once()
        second_pool.disconnect.assert_not_called()
        assert client.is_connected() is True
