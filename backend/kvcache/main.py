"""
KV Cache - Main FastAPI Application

Builds the backing store during startup, wraps it in the TTL cache
service and exposes the /set and /get operations over HTTP.
"""

from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI

from .api.endpoints.cache import router as cache_router
from .api.endpoints.health import router as health_router
from .core.config import Settings, get_settings
from .core.correlation import CorrelationIdMiddleware
from .core.logging import configure_logging
from .domain.cache.repository_interfaces import KeyValueStore
from .infrastructure.memory.memory_store import InMemoryKeyValueStore
from .infrastructure.redis.connection_factory import RedisConnectionFactory
from .monitoring.cache_metrics import CacheMetrics
from .services.cache.ttl_cache_service import TTLCacheService

logger = structlog.get_logger(__name__)


def create_app(
    settings: Optional[Settings] = None, store: Optional[KeyValueStore] = None
) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        settings: Settings to use, defaults to the environment
        store: Pre-built backing store; when given, CACHE_BACKEND is ignored
            and the caller keeps ownership of the store
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan manager."""
        configure_logging(settings)
        logger.info("Starting KV cache API", environment=settings.ENVIRONMENT)

        factory: Optional[RedisConnectionFactory] = None
        if store is not None:
            backing_store = store
        elif settings.uses_redis:
            factory = RedisConnectionFactory(settings)
            backing_store = await factory.create_store()
        else:
            backing_store = InMemoryKeyValueStore()

        app.state.cache_service = TTLCacheService(
            backing_store,
            default_timeout=settings.CACHE_OPERATION_TIMEOUT,
            strict_ttl=settings.CACHE_STRICT_TTL,
            max_key_length=settings.CACHE_MAX_KEY_LENGTH,
            metrics=CacheMetrics(),
        )

        logger.info(
            "KV cache API started successfully",
            version=settings.SERVICE_VERSION,
            backend=type(backing_store).__name__,
            strict_ttl=settings.CACHE_STRICT_TTL,
        )

        yield

        logger.info("Shutting down KV cache API")
        if store is None:
            try:
                await backing_store.close()
            except Exception as e:
                logger.error("Error closing backing store", error=str(e))
            if factory is not None:
                await factory.close()
        logger.info("Application shutdown completed")

    app = FastAPI(
        title="KV Cache API",
        description="TTL-aware key-value cache fronting Redis",
        version=settings.SERVICE_VERSION,
        debug=settings.DEBUG,
        lifespan=lifespan,
    )
    app.state.settings = settings

    # Add correlation ID middleware for request tracking
    app.add_middleware(CorrelationIdMiddleware)

    app.include_router(health_router, tags=["health"])
    app.include_router(cache_router, tags=["cache"])

    return app


app = create_app()
