"""
Cache Domain Exceptions

Error taxonomy for cache operations.
Every failure maps to exactly one exception type with a stable error code.
A cache miss is not an exception.
"""

from typing import Optional, Any, Dict


class CacheException(Exception):
    """Base exception for cache errors.

    All cache operations raise this or its subclasses.
    Never swallow cache exceptions on the request path - always preserve context.
    """

    error_code = "CACHE_ERROR"

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        original_error: Optional[Exception] = None,
    ):
        self.message = message
        if error_code:
            self.error_code = error_code
        self.details = details or {}
        if original_error is not None:
            self.details["original_error"] = str(original_error)
            self.details["original_error_type"] = type(original_error).__name__
        super().__init__(self.message)
        # Preserve exception context for debugging (exception chaining)
        if original_error is not None:
            self.__cause__ = original_error


class InvalidArgumentException(CacheException):
    """Raised when caller input is invalid (missing key, bad payload, bad ttl)."""

    error_code = "CACHE_INVALID_ARGUMENT"

    def __init__(self, message: str, argument: Optional[str] = None):
        details = {}
        if argument:
            details["argument"] = argument
        super().__init__(message=message, details=details)


class EncodingException(CacheException):
    """Raised when a cache entry cannot be serialized."""

    error_code = "CACHE_ENCODING_ERROR"

    def __init__(
        self,
        message: str,
        key: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ):
        details = {}
        if key:
            details["key"] = key
        super().__init__(message=message, details=details, original_error=original_error)


class DecodingException(CacheException):
    """Raised when stored bytes are not a well-formed cache entry."""

    error_code = "CACHE_DECODING_ERROR"

    def __init__(
        self,
        message: str,
        key: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ):
        details = {}
        if key:
            details["key"] = key
        super().__init__(message=message, details=details, original_error=original_error)


class CorruptEntryException(DecodingException):
    """Raised when an entry exists in the store but cannot be read back."""

    error_code = "CACHE_CORRUPT_ENTRY"


class StorageException(CacheException):
    """Raised when the backing store fails a read, write or delete."""

    error_code = "CACHE_STORAGE_ERROR"

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        key: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ):
        details = {}
        if operation:
            details["operation"] = operation
        if key:
            details["key"] = key
        super().__init__(message=message, details=details, original_error=original_error)


class StoreConnectionException(StorageException):
    """Raised when the backing store is unreachable."""

    error_code = "CACHE_STORE_CONNECTION_ERROR"

    def __init__(
        self,
        message: str = "Backing store connection failed",
        host: Optional[str] = None,
        port: Optional[int] = None,
        original_error: Optional[Exception] = None,
    ):
        super().__init__(message=message, original_error=original_error)
        if host:
            self.details["host"] = host
        if port:
            self.details["port"] = port


class OperationTimeoutException(CacheException):
    """Raised when a cache operation exceeds its deadline."""

    error_code = "CACHE_TIMEOUT"

    def __init__(
        self, operation: str, timeout_seconds: float, key: Optional[str] = None
    ):
        details: Dict[str, Any] = {
            "operation": operation,
            "timeout_seconds": timeout_seconds,
        }
        if key:
            details["key"] = key

        super().__init__(
            message=f"Cache operation '{operation}' timed out after {timeout_seconds}s",
            details=details,
        )


class OperationCancelledException(CacheException):
    """Raised when an in-flight store call was abandoned by someone other than the caller."""

    error_code = "CACHE_CANCELLED"

    def __init__(self, operation: str, key: Optional[str] = None):
        details = {"operation": operation}
        if key:
            details["key"] = key

        super().__init__(
            message=f"Cache operation '{operation}' was cancelled",
            details=details,
        )
