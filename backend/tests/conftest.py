"""
Main pytest configuration for backend tests.

Shared fixtures: a controllable clock, in-memory stores and the cache service.
"""

import os
from datetime import datetime, timedelta, timezone
from typing import Optional

import pytest
import structlog

# Set test environment variables before importing app modules
os.environ["ENVIRONMENT"] = "test"
os.environ["CACHE_BACKEND"] = "memory"
os.environ["LOG_LEVEL"] = "DEBUG"

from kvcache.core.config import Settings
from kvcache.domain.cache.exceptions import StorageException
from kvcache.infrastructure.memory.memory_store import InMemoryKeyValueStore
from kvcache.monitoring.cache_metrics import CacheMetrics
from kvcache.services.cache.ttl_cache_service import TTLCacheService

# Configure logging for tests
structlog.configure(
    processors=[
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.JSONRenderer(),
    ],
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    wrapper_class=structlog.stdlib.BoundLogger,
    cache_logger_on_first_use=False,
)


class FakeClock:
    """Wall clock that only moves when told to."""

    def __init__(self, start: Optional[datetime] = None):
        self.now = start or datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class FailingDeleteStore(InMemoryKeyValueStore):
    """In-memory store whose delete always fails."""

    def __init__(self):
        super().__init__(native_ttl=False)
        self.delete_calls = 0

    async def delete(self, key: str) -> bool:
        self.delete_calls += 1
        raise StorageException("delete refused", operation="delete", key=key)


@pytest.fixture
def clock():
    """Controllable clock starting at 2024-01-01T12:00:00Z."""
    return FakeClock()


@pytest.fixture
def memory_store():
    """In-memory store without native expiry, so the service decides liveness."""
    return InMemoryKeyValueStore(native_ttl=False)


@pytest.fixture
def metrics():
    """Metrics with their own registry."""
    return CacheMetrics()


@pytest.fixture
def cache_service(memory_store, clock, metrics):
    """TTL cache service over the in-memory store and fake clock."""
    return TTLCacheService(memory_store, clock=clock, default_timeout=1.0, metrics=metrics)


@pytest.fixture
def test_settings():
    """Settings for an app backed by the in-memory store."""
    return Settings(
        ENVIRONMENT="test",
        CACHE_BACKEND="memory",
        CACHE_OPERATION_TIMEOUT=1.0,
        LOG_LEVEL="DEBUG",
    )


@pytest.fixture
def failing_delete_store():
    """In-memory store that refuses every delete."""
    return FailingDeleteStore()
