"""
Unit tests for the Redis key-value store and its connection factory.

Redis is mocked; no server is required.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from redis.exceptions import (
    AuthenticationError,
    ConnectionError as RedisConnectionError,
    ResponseError,
    TimeoutError as RedisTimeoutError,
)

from kvcache.core.config import Settings
from kvcache.domain.cache.exceptions import StorageException, StoreConnectionException
from kvcache.domain.cache.value_objects import TTL
from kvcache.infrastructure.redis.connection_factory import RedisConnectionFactory
from kvcache.infrastructure.redis.redis_store import RedisKeyValueStore


class TestRedisKeyValueStore:
    """Test RedisKeyValueStore against a mocked client."""

    @pytest.fixture
    def mock_redis(self):
        """Create mock Redis client."""
        client = AsyncMock()
        client.get = AsyncMock(return_value=None)
        client.set = AsyncMock(return_value=True)
        client.delete = AsyncMock(return_value=1)
        client.ping = AsyncMock(return_value=True)
        client.aclose = AsyncMock()
        return client

    @pytest.fixture
    def store(self, mock_redis):
        return RedisKeyValueStore(mock_redis)

    @pytest.mark.asyncio
    async def test_get_returns_bytes(self, store, mock_redis):
        mock_redis.get.return_value = b'{"key":"k"}'

        assert await store.get("k") == b'{"key":"k"}'
        mock_redis.get.assert_awaited_once_with("k")

    @pytest.mark.asyncio
    async def test_get_encodes_decoded_responses(self, store, mock_redis):
        mock_redis.get.return_value = '{"key":"ключ"}'

        assert await store.get("k") == '{"key":"ключ"}'.encode("utf-8")

    @pytest.mark.asyncio
    async def test_get_missing(self, store):
        assert await store.get("k") is None

    @pytest.mark.asyncio
    async def test_key_prefix(self, mock_redis):
        store = RedisKeyValueStore(mock_redis, key_prefix="kv:")

        await store.get("k")
        await store.set("k", b"x")
        await store.delete("k")

        mock_redis.get.assert_awaited_once_with("kv:k")
        mock_redis.set.assert_awaited_once_with("kv:k", b"x", px=None)
        mock_redis.delete.assert_awaited_once_with("kv:k")

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "ttl, expected_px",
        [
            (None, None),
            (TTL.never(), None),
            (TTL.milliseconds(100), 100),
            (TTL(30), 30000),
            (TTL(0.0001), 1),
            (TTL(1.0005), 1001),
        ],
    )
    async def test_set_expiry_hint(self, store, mock_redis, ttl, expected_px):
        await store.set("k", b"data", ttl=ttl)

        mock_redis.set.assert_awaited_once_with("k", b"data", px=expected_px)

    @pytest.mark.asyncio
    async def test_delete_result(self, store, mock_redis):
        assert await store.delete("k") is True

        mock_redis.delete.return_value = 0
        assert await store.delete("k") is False

    @pytest.mark.asyncio
    async def test_ping_and_close(self, store, mock_redis):
        assert await store.ping() is True

        await store.close()
        mock_redis.aclose.assert_awaited_once()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("method, args", [("get", ("k",)), ("set", ("k", b"x")), ("delete", ("k",))])
    async def test_connection_errors_mapped(self, store, mock_redis, method, args):
        getattr(mock_redis, method).side_effect = RedisConnectionError("Connection refused")

        with pytest.raises(StoreConnectionException) as exc_info:
            await getattr(store, method)(*args)

        assert exc_info.value.error_code == "CACHE_STORE_CONNECTION_ERROR"
        assert isinstance(exc_info.value.__cause__, RedisConnectionError)

    @pytest.mark.asyncio
    async def test_authentication_error_mapped(self, store, mock_redis):
        mock_redis.ping.side_effect = AuthenticationError("invalid password")

        with pytest.raises(StoreConnectionException):
            await store.ping()

    @pytest.mark.asyncio
    async def test_command_errors_mapped(self, store, mock_redis):
        mock_redis.set.side_effect = ResponseError("OOM command not allowed")

        with pytest.raises(StorageException) as exc_info:
            await store.set("k", b"x")

        assert not isinstance(exc_info.value, StoreConnectionException)
        assert exc_info.value.details["operation"] == "set"
        assert exc_info.value.details["key"] == "k"
        assert exc_info.value.details["original_error_type"] == "ResponseError"


class TestRedisConnectionFactory:
    """Test RedisConnectionFactory startup behaviour."""

    @pytest.fixture
    def settings(self):
        return Settings(
            ENVIRONMENT="test",
            REDIS_URL="redis://cache.internal:6380/1",
            REDIS_CONNECT_ATTEMPTS=2,
            REDIS_KEY_PREFIX="kv:",
        )

    @pytest.fixture(autouse=True)
    def no_instrumentation(self):
        with patch(
            "kvcache.infrastructure.redis.connection_factory._instrument_redis"
        ) as mock_instrument:
            yield mock_instrument

    @pytest.mark.asyncio
    async def test_create_store(self, settings, no_instrumentation):
        client = MagicMock()
        client.ping = AsyncMock(return_value=True)

        with patch(
            "kvcache.infrastructure.redis.connection_factory.Redis", return_value=client
        ):
            factory = RedisConnectionFactory(settings)
            store = await factory.create_store()

        assert isinstance(store, RedisKeyValueStore)
        assert store._make_key("k") == "kv:k"
        no_instrumentation.assert_called_once()
        await factory.close()

    @pytest.mark.asyncio
    async def test_transient_failure_retried(self, settings):
        client = MagicMock()
        client.ping = AsyncMock(side_effect=[RedisTimeoutError("timeout"), True])

        with patch(
            "kvcache.infrastructure.redis.connection_factory.Redis", return_value=client
        ):
            factory = RedisConnectionFactory(settings)
            await factory.create_store()

        assert client.ping.await_count == 2
        await factory.close()

    @pytest.mark.asyncio
    async def test_unreachable_redis(self, settings):
        client = MagicMock()
        client.ping = AsyncMock(side_effect=RedisConnectionError("Connection refused"))

        with patch(
            "kvcache.infrastructure.redis.connection_factory.Redis", return_value=client
        ):
            factory = RedisConnectionFactory(settings)
            with pytest.raises(StoreConnectionException) as exc_info:
                await factory.create_store()

        assert client.ping.await_count == 2
        assert exc_info.value.details["host"] == "cache.internal"
        assert exc_info.value.details["port"] == 6380
        assert factory._pool is None

    @pytest.mark.asyncio
    async def test_authentication_failure_not_retried(self, settings):
        client = MagicMock()
        client.ping = AsyncMock(side_effect=AuthenticationError("invalid password"))

        with patch(
            "kvcache.infrastructure.redis.connection_factory.Redis", return_value=client
        ):
            factory = RedisConnectionFactory(settings)
            with pytest.raises(StoreConnectionException):
                await factory.create_store()

        assert client.ping.await_count == 1

    @pytest.mark.asyncio
    async def test_close_without_pool(self, settings):
        factory = RedisConnectionFactory(settings)
        await factory.close()
        assert factory._pool is None
