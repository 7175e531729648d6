"""
Redis Infrastructure Module

Redis-backed key-value store with pooled connections.

This module provides:
- RedisKeyValueStore: KeyValueStore implementation over redis.asyncio
- RedisConnectionFactory: Connection pool creation and startup checks
"""

from .redis_store import RedisKeyValueStore
from .connection_factory import RedisConnectionFactory

__all__ = [
    "RedisKeyValueStore",
    "RedisConnectionFactory",
]
