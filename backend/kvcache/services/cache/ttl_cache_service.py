"""
TTL Cache Service

Put/get over a KeyValueStore with expiration enforced at read time.
Expired entries are evicted lazily by the read that observes them;
there is no background sweeper.
"""

import asyncio
import time
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Awaitable, Callable, Optional, Union

import structlog
from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

from ...domain.cache.codec import decode_entry, encode_entry
from ...domain.cache.entities import CacheEntry, CacheLookup, utc_now
from ...domain.cache.exceptions import (
    CacheException,
    CorruptEntryException,
    DecodingException,
    InvalidArgumentException,
    OperationCancelledException,
    OperationTimeoutException,
    StorageException,
)
from ...domain.cache.repository_interfaces import KeyValueStore
from ...domain.cache.value_objects import TTL, CacheKey
from ...monitoring.cache_metrics import CacheMetrics

logger = structlog.get_logger(__name__)
tracer = trace.get_tracer(__name__)

TTLInput = Union[TTL, timedelta, int, float, str, None]


@dataclass(frozen=True)
class _Deadline:
    """Absolute event-loop time by which an operation must finish."""

    timeout: Optional[float]
    expires_at: Optional[float]

    @classmethod
    def start(cls, timeout: Optional[float]) -> "_Deadline":
        if timeout is None:
            return cls(timeout=None, expires_at=None)
        return cls(
            timeout=timeout,
            expires_at=asyncio.get_running_loop().time() + timeout,
        )

    def remaining(self) -> Optional[float]:
        if self.expires_at is None:
            return None
        return self.expires_at - asyncio.get_running_loop().time()


class TTLCacheService:
    """
    TTL-aware cache over an injected key-value store.

    The service keeps no mutable state besides the store reference, so a
    single instance can serve any number of concurrent callers.
    """

    def __init__(
        self,
        store: KeyValueStore,
        *,
        clock: Callable[[], datetime] = utc_now,
        default_timeout: Optional[float] = None,
        strict_ttl: bool = False,
        max_key_length: int = CacheKey.MAX_LENGTH,
        metrics: Optional[CacheMetrics] = None,
    ):
        self.store = store
        self._clock = clock
        self._default_timeout = default_timeout
        self._strict_ttl = strict_ttl
        self._max_key_length = max_key_length
        self.metrics = metrics or CacheMetrics()

    async def put(
        self,
        key: str,
        value: Any,
        ttl: TTLInput = None,
        *,
        timeout: Optional[float] = None,
    ) -> CacheEntry:
        """
        Store value under key, replacing any existing entry.

        Args:
            key: Non-empty cache key
            value: JSON-compatible value (None is allowed)
            ttl: Time to live; None or zero means never expires
            timeout: Deadline in seconds, defaults to the service default

        Returns:
            The entry that was written

        Raises:
            InvalidArgumentException: If key is missing or blank (or ttl invalid in strict mode)
            EncodingException: If value is not JSON-compatible
            StorageException: If the store write fails
            OperationTimeoutException: If the deadline passes
            OperationCancelledException: If the store call was cancelled
        """
        started = time.perf_counter()
        with tracer.start_as_current_span("cache.put") as span:
            span.set_attribute("cache.key", str(key))
            try:
                self._validate_key(key)
                resolved_ttl = self._resolve_ttl(ttl, key)
                span.set_attribute("cache.ttl_seconds", resolved_ttl.seconds)

                entry = CacheEntry.create(key, value, resolved_ttl, self._clock())
                data = encode_entry(entry)

                deadline = _Deadline.start(self._timeout(timeout))
                await self._call(
                    "set",
                    key,
                    deadline,
                    self.store.set,
                    key,
                    data,
                    ttl=resolved_ttl if resolved_ttl.expires else None,
                )
            except CacheException as e:
                self._record_failure("put", e, started, span)
                raise

            self.metrics.record("put", "stored", time.perf_counter() - started)
            span.set_status(Status(StatusCode.OK))
            logger.debug(
                "Stored cache entry",
                key=key,
                expire_at=entry.expire_at.isoformat() if entry.expire_at else None,
                size_bytes=len(data),
            )
            return entry

    async def get(self, key: str, *, timeout: Optional[float] = None) -> CacheLookup:
        """
        Look up key, treating expired entries as absent.

        An expired entry is deleted from the store on the way out. Failure
        of that delete is logged and never changes the result.

        Args:
            key: Non-empty cache key
            timeout: Deadline in seconds, defaults to the service default

        Returns:
            CacheLookup hit with the stored value, or a miss

        Raises:
            InvalidArgumentException: If key is missing or blank
            CorruptEntryException: If stored bytes cannot be decoded
            StorageException: If the store read fails
            OperationTimeoutException: If the deadline passes
            OperationCancelledException: If the store call was cancelled
        """
        started = time.perf_counter()
        with tracer.start_as_current_span("cache.get") as span:
            span.set_attribute("cache.key", str(key))
            try:
                self._validate_key(key)
                deadline = _Deadline.start(self._timeout(timeout))

                data = await self._call("get", key, deadline, self.store.get, key)
                if data is None:
                    return self._finish_get("miss", started, span)

                try:
                    entry = decode_entry(data)
                except DecodingException as e:
                    logger.error(
                        "Stored cache entry is unreadable", key=key, error=e.message
                    )
                    raise CorruptEntryException(
                        f"Stored entry for key {key!r} is unreadable: {e.message}",
                        key=key,
                        original_error=e,
                    ) from e

                if entry.is_expired(self._clock()):
                    await self._evict(key, deadline)
                    return self._finish_get("expired", started, span)

            except CacheException as e:
                self._record_failure("get", e, started, span)
                raise

            return self._finish_get("hit", started, span, entry)

    def _finish_get(
        self,
        result: str,
        started: float,
        span: trace.Span,
        entry: Optional[CacheEntry] = None,
    ) -> CacheLookup:
        self.metrics.record("get", result, time.perf_counter() - started)
        span.set_attribute("cache.hit", entry is not None)
        span.set_attribute("cache.result", result)
        span.set_status(Status(StatusCode.OK))
        return CacheLookup.hit(entry) if entry is not None else CacheLookup.miss()

    async def _evict(self, key: str, deadline: _Deadline) -> None:
        """Best-effort removal of an expired entry."""
        try:
            removed = await self._call("delete", key, deadline, self.store.delete, key)
        except CacheException as e:
            self.metrics.record_eviction("failed")
            logger.warning(
                "Failed to delete expired cache entry",
                key=key,
                error_code=e.error_code,
                error=e.message,
            )
            return

        self.metrics.record_eviction("deleted" if removed else "already_gone")
        logger.debug("Evicted expired cache entry", key=key, removed=removed)

    async def _call(
        self,
        operation: str,
        key: str,
        deadline: _Deadline,
        func: Callable[..., Awaitable[Any]],
        *args: Any,
        **kwargs: Any,
    ) -> Any:
        """Run one store call within the operation deadline."""
        remaining = deadline.remaining()
        if remaining is not None and remaining <= 0:
            raise OperationTimeoutException(operation, deadline.timeout, key=key)

        try:
            return await asyncio.wait_for(func(*args, **kwargs), timeout=remaining)
        except asyncio.TimeoutError as e:
            if deadline.timeout is None:
                raise StorageException(
                    f"Backing store {operation} timed out",
                    operation=operation,
                    key=key,
                    original_error=e,
                ) from e
            raise OperationTimeoutException(operation, deadline.timeout, key=key) from None
        except asyncio.CancelledError:
            task = asyncio.current_task()
            if task is not None and task.cancelling():
                # The caller abandoned us; let cancellation propagate
                raise
            raise OperationCancelledException(operation, key=key) from None
        except CacheException:
            raise
        except Exception as e:
            raise StorageException(
                f"Backing store {operation} failed: {e}",
                operation=operation,
                key=key,
                original_error=e,
            ) from e

    def _validate_key(self, key: Any) -> None:
        if not isinstance(key, str) or not key.strip():
            raise InvalidArgumentException("missing key", argument="key")
        if len(key) > self._max_key_length:
            raise InvalidArgumentException(
                f"key too long (max {self._max_key_length} characters)", argument="key"
            )

    def _resolve_ttl(self, ttl: TTLInput, key: str) -> TTL:
        """Apply the TTL policy: invalid values mean no expiration unless strict."""
        try:
            if isinstance(ttl, str):
                return TTL.parse(ttl)
            return TTL.coerce(ttl)
        except (TypeError, ValueError) as e:
            if self._strict_ttl:
                raise InvalidArgumentException(f"invalid ttl: {e}", argument="ttl") from e
            logger.warning(
                "Ignoring invalid ttl, entry will not expire",
                key=key,
                ttl=str(ttl),
                error=str(e),
            )
            return TTL.never()

    def _timeout(self, timeout: Optional[float]) -> Optional[float]:
        return self._default_timeout if timeout is None else timeout

    def _record_failure(
        self, operation: str, error: CacheException, started: float, span: trace.Span
    ) -> None:
        self.metrics.record(
            operation, error.error_code.lower(), time.perf_counter() - started
        )
        span.record_exception(error)
        span.set_status(Status(StatusCode.ERROR, error.message))
