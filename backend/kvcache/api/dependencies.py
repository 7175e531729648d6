"""
FastAPI dependency providers.
"""

from fastapi import Request

from ..core.config import Settings
from ..services.cache.ttl_cache_service import TTLCacheService


def get_cache_service(request: Request) -> TTLCacheService:
    """Cache service created during application startup."""
    return request.app.state.cache_service


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings
