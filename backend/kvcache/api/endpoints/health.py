"""
Health check endpoints.

Liveness for load balancers, readiness that probes the backing store.
"""

import asyncio
import time
from datetime import datetime, timezone
from typing import Any, Dict

import structlog
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST

from ...core.config import Settings
from ...domain.cache.exceptions import CacheException
from ...services.cache.ttl_cache_service import TTLCacheService
from ..dependencies import get_app_settings, get_cache_service

# Track process start time for uptime calculation
PROCESS_START_TIME = time.time()

logger = structlog.get_logger(__name__)
router = APIRouter()


@router.get("/health")
async def health_check(settings: Settings = Depends(get_app_settings)) -> Dict[str, Any]:
    """
    Basic health check endpoint.

    Returns a simple health status for load balancers and monitoring systems.
    """
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "service": settings.SERVICE_NAME,
        "version": settings.SERVICE_VERSION,
        "environment": settings.ENVIRONMENT,
        "uptime_seconds": round(time.time() - PROCESS_START_TIME, 2),
    }


@router.get("/health/ready")
async def readiness_check(
    settings: Settings = Depends(get_app_settings),
    cache: TTLCacheService = Depends(get_cache_service),
) -> Dict[str, Any]:
    """
    Readiness check endpoint.

    Pings the backing store within the cache operation timeout.
    """
    start_time = time.time()
    try:
        await asyncio.wait_for(cache.store.ping(), timeout=settings.CACHE_OPERATION_TIMEOUT)
    except (CacheException, asyncio.TimeoutError) as e:
        logger.error("Readiness check failed", backend=settings.CACHE_BACKEND, error=str(e))
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={
                "status": "unhealthy",
                "backend": settings.CACHE_BACKEND,
                "message": f"Backing store unavailable: {e}",
            },
        ) from e

    return {
        "status": "ready",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "backend": settings.CACHE_BACKEND,
        "response_time_ms": round((time.time() - start_time) * 1000, 2),
    }


@router.get("/metrics")
async def metrics(cache: TTLCacheService = Depends(get_cache_service)) -> Response:
    """Prometheus metrics for cache operations."""
    return Response(content=cache.metrics.render(), media_type=CONTENT_TYPE_LATEST)
