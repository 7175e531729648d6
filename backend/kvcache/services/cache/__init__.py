"""
Cache services.
"""

from .ttl_cache_service import TTLCacheService

__all__ = ["TTLCacheService"]
