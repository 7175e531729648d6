"""
HTTP error mapping for cache exceptions.

Each exception type maps to one stable status code.
"""

from typing import Dict, Type

from fastapi import HTTPException, status

from ..domain.cache.exceptions import (
    CacheException,
    DecodingException,
    EncodingException,
    InvalidArgumentException,
    OperationCancelledException,
    OperationTimeoutException,
    StorageException,
)

# Checked in order; subclasses inherit their parent's status
STATUS_BY_EXCEPTION: Dict[Type[CacheException], int] = {
    InvalidArgumentException: status.HTTP_400_BAD_REQUEST,
    OperationTimeoutException: status.HTTP_504_GATEWAY_TIMEOUT,
    OperationCancelledException: status.HTTP_503_SERVICE_UNAVAILABLE,
    EncodingException: status.HTTP_500_INTERNAL_SERVER_ERROR,
    DecodingException: status.HTTP_500_INTERNAL_SERVER_ERROR,
    StorageException: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def status_for(exc: CacheException) -> int:
    for exc_type, status_code in STATUS_BY_EXCEPTION.items():
        if isinstance(exc, exc_type):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


class CacheHTTPException(HTTPException):
    """HTTP exception wrapper for cache errors."""

    def __init__(self, cache_exception: CacheException):
        self.cache_exception = cache_exception
        super().__init__(
            status_code=status_for(cache_exception),
            detail={
                "error": cache_exception.error_code,
                "message": cache_exception.message,
                "details": cache_exception.details,
            },
        )


class KeyNotFoundHTTPException(HTTPException):
    """404 for keys that are absent or expired."""

    def __init__(self, key: str):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={
                "error": "CACHE_KEY_NOT_FOUND",
                "message": "Key not found",
                "details": {"key": key},
            },
        )
