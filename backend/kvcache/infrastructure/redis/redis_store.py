"""
Redis Key-Value Store

Infrastructure implementation of the KeyValueStore interface using Redis.
Values are opaque bytes; TTL hints become native PX expiry.
"""

import math
from typing import Optional

import structlog
from redis.asyncio import Redis
from redis.exceptions import (
    AuthenticationError as RedisAuthError,
    ConnectionError as RedisConnectionError,
    RedisError,
)

from ...domain.cache.exceptions import StorageException, StoreConnectionException
from ...domain.cache.repository_interfaces import KeyValueStore
from ...domain.cache.value_objects import TTL

logger = structlog.get_logger(__name__)


class RedisKeyValueStore(KeyValueStore):
    """Redis implementation of the backing store."""

    def __init__(self, redis_client: Redis, key_prefix: str = ""):
        self._redis = redis_client
        self._key_prefix = key_prefix

    def _make_key(self, key: str) -> str:
        return f"{self._key_prefix}{key}"

    def _storage_error(
        self, operation: str, key: Optional[str], error: RedisError
    ) -> StorageException:
        if isinstance(error, (RedisConnectionError, RedisAuthError)):
            logger.error("Redis connection error", operation=operation, error=str(error))
            return StoreConnectionException(
                message=f"Redis connection failed during {operation}: {error}",
                original_error=error,
            )
        logger.error("Redis operation failed", operation=operation, key=key, error=str(error))
        return StorageException(
            f"Redis {operation} failed: {error}",
            operation=operation,
            key=key,
            original_error=error,
        )

    async def get(self, key: str) -> Optional[bytes]:
        try:
            data = await self._redis.get(self._make_key(key))
        except RedisError as e:
            raise self._storage_error("get", key, e) from e

        if isinstance(data, str):
            # Client configured with decode_responses=True
            return data.encode("utf-8")
        return data

    async def set(self, key: str, data: bytes, ttl: Optional[TTL] = None) -> None:
        px = None
        if ttl is not None and ttl.expires:
            # Redis expiry has millisecond granularity; never round down to zero
            px = max(1, math.ceil(ttl.seconds * 1000))

        try:
            await self._redis.set(self._make_key(key), data, px=px)
        except RedisError as e:
            raise self._storage_error("set", key, e) from e

    async def delete(self, key: str) -> bool:
        try:
            result = await self._redis.delete(self._make_key(key))
        except RedisError as e:
            raise self._storage_error("delete", key, e) from e
        return result > 0

    async def ping(self) -> bool:
        try:
            return bool(await self._redis.ping())
        except RedisError as e:
            raise self._storage_error("ping", None, e) from e

    async def close(self) -> None:
        await self._redis.aclose()
        logger.info("Redis store closed")
