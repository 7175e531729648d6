"""
Cache API endpoints

Two operations over the TTL cache:
- PUT/POST /set?key=...&expire=... stores the JSON request body
- GET /get?key=... returns the stored JSON value
"""

import json
from typing import Any, Optional

import structlog
from fastapi import APIRouter, Depends, Query, Request, Response, status
from fastapi.responses import JSONResponse

from ...domain.cache.codec import reject_json_constant
from ...domain.cache.exceptions import CacheException, InvalidArgumentException
from ...services.cache.ttl_cache_service import TTLCacheService
from ..dependencies import get_cache_service
from ..errors import CacheHTTPException, KeyNotFoundHTTPException

logger = structlog.get_logger(__name__)
router = APIRouter()


async def _read_json_body(request: Request) -> Any:
    """Parse the request body as one JSON value; an empty body is null."""
    body = await request.body()
    if not body.strip():
        return None
    try:
        return json.loads(body, parse_constant=reject_json_constant)
    except (ValueError, RecursionError) as e:
        raise InvalidArgumentException(f"invalid payload: {e}", argument="body") from e


@router.api_route(
    "/set",
    methods=["PUT", "POST"],
    status_code=status.HTTP_201_CREATED,
    response_class=Response,
)
async def set_cache(
    request: Request,
    key: str = Query("", description="Cache key"),
    expire: Optional[str] = Query(
        None, description="Time to live as a duration, e.g. 100ms, 30s, 1h30m"
    ),
    ttl: Optional[str] = Query(None, description="Alias of expire"),
    cache: TTLCacheService = Depends(get_cache_service),
) -> Response:
    """
    Store the JSON request body under key.

    Omitting expire stores an entry that never expires.
    """
    try:
        value = await _read_json_body(request)
        await cache.put(key, value, expire or ttl or None)
    except CacheException as e:
        logger.warning(
            "Cache write failed", key=key, error_code=e.error_code, error=e.message
        )
        raise CacheHTTPException(e) from e

    return Response(status_code=status.HTTP_201_CREATED)


@router.get("/get")
async def get_cache(
    key: str = Query("", description="Cache key"),
    cache: TTLCacheService = Depends(get_cache_service),
) -> JSONResponse:
    """
    Return the JSON value stored under key.

    Absent and expired keys both answer 404.
    """
    try:
        lookup = await cache.get(key)
    except CacheException as e:
        logger.warning(
            "Cache read failed", key=key, error_code=e.error_code, error=e.message
        )
        raise CacheHTTPException(e) from e

    if not lookup.found:
        raise KeyNotFoundHTTPException(key)

    return JSONResponse(content=lookup.value)
