"""
Redis Connection Factory

Connection management for the Redis-backed store.
Builds a connection pool from settings and verifies it with a ping,
retrying transient connection failures at startup.
"""

from typing import Optional
from urllib.parse import urlparse

import structlog
from opentelemetry.instrumentation.redis import RedisInstrumentor
from redis.asyncio import ConnectionPool, Redis
from redis.exceptions import (
    AuthenticationError as RedisAuthError,
    ConnectionError as RedisConnectionError,
    TimeoutError as RedisTimeoutError,
)
from tenacity import (
    AsyncRetrying,
    RetryError,
    retry_if_exception_type,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from ...core.config import Settings
from ...domain.cache.exceptions import StoreConnectionException
from .redis_store import RedisKeyValueStore

logger = structlog.get_logger(__name__)

_instrumented = False


def _instrument_redis() -> None:
    """Enable OpenTelemetry spans for redis commands once per process."""
    global _instrumented
    if _instrumented:
        return
    try:
        RedisInstrumentor().instrument()
        _instrumented = True
        logger.info("Redis OpenTelemetry instrumentation enabled")
    except Exception as e:
        logger.warning("Failed to enable Redis OpenTelemetry instrumentation", error=str(e))


class RedisConnectionFactory:
    """
    Factory for the Redis client used by the cache store.

    Owns the connection pool; the store it returns shares that pool across
    all concurrent cache operations.
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        self._pool: Optional[ConnectionPool] = None
        parsed = urlparse(settings.REDIS_URL)
        self._host = parsed.hostname or "localhost"
        self._port = parsed.port or 6379

    def _create_pool(self) -> ConnectionPool:
        connection_kwargs = {
            "max_connections": self.settings.REDIS_MAX_CONNECTIONS,
            "socket_connect_timeout": self.settings.REDIS_CONNECTION_TIMEOUT,
            "socket_timeout": self.settings.REDIS_OPERATION_TIMEOUT,
            # Entries are stored as raw bytes
            "decode_responses": False,
        }
        if self.settings.REDIS_PASSWORD:
            connection_kwargs["password"] = self.settings.REDIS_PASSWORD

        return ConnectionPool.from_url(self.settings.REDIS_URL, **connection_kwargs)

    async def _ping(self, client: Redis) -> None:
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self.settings.REDIS_CONNECT_ATTEMPTS),
            wait=wait_exponential(multiplier=0.5, min=0.5, max=5),
            # AuthenticationError subclasses ConnectionError but will not heal on retry
            retry=retry_if_exception_type((RedisConnectionError, RedisTimeoutError))
            & retry_if_not_exception_type(RedisAuthError),
            before_sleep=lambda retry_state: logger.warning(
                "Redis connection retry",
                attempt=retry_state.attempt_number,
                wait_time=retry_state.next_action.sleep,
            ),
            reraise=True,
        ):
            with attempt:
                await client.ping()

    async def create_store(self) -> RedisKeyValueStore:
        """
        Create a connected Redis store.

        Raises:
            StoreConnectionException: If Redis cannot be reached or authentication fails
        """
        _instrument_redis()
        self._pool = self._create_pool()
        client = Redis(connection_pool=self._pool)

        try:
            await self._ping(client)
        except (RedisConnectionError, RedisAuthError, RedisTimeoutError, RetryError) as e:
            await self.close()
            logger.error("Failed to connect to Redis", host=self._host, port=self._port, error=str(e))
            raise StoreConnectionException(
                message=f"Redis connection test failed: {e}",
                host=self._host,
                port=self._port,
                original_error=e,
            ) from e

        logger.info(
            "Redis connection factory initialized",
            host=self._host,
            port=self._port,
            max_connections=self.settings.REDIS_MAX_CONNECTIONS,
        )
        return RedisKeyValueStore(client, key_prefix=self.settings.REDIS_KEY_PREFIX)

    async def close(self) -> None:
        """Close the connection pool."""
        if self._pool is None:
            return
        try:
            await self._pool.disconnect()
        except Exception as e:
            logger.warning("Error closing Redis pool", error=str(e))
        self._pool = None
        logger.info("Redis connection factory closed")
