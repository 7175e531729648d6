"""
Cache Domain Entities

Core domain entities for cache management.
Encapsulates the expiration rules for a stored entry.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional

from .value_objects import CacheKey, TTL


@dataclass(frozen=True)
class CacheEntry:
    """
    Cache entry entity.

    The stored unit: key, JSON value and absolute expiration time.
    An expire_at of None means the entry never expires.
    """

    key: str
    value: Any = None
    expire_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        """Validate cache entry."""
        CacheKey(self.key)
        if self.expire_at is not None and self.expire_at.tzinfo is None:
            raise ValueError("expire_at must be timezone-aware")

    @classmethod
    def create(cls, key: str, value: Any, ttl: TTL, now: datetime) -> "CacheEntry":
        """Create new cache entry expiring ttl after now."""
        expire_at = now + ttl.as_timedelta() if ttl.expires else None
        return cls(key=key, value=value, expire_at=expire_at)

    @property
    def never_expires(self) -> bool:
        return self.expire_at is None

    def is_live(self, now: datetime) -> bool:
        """Check if entry is live at the given instant."""
        return self.expire_at is None or now < self.expire_at

    def is_expired(self, now: datetime) -> bool:
        """Check if entry is expired at the given instant."""
        return not self.is_live(now)

    def remaining_ttl(self, now: datetime) -> Optional[TTL]:
        """Get time left before expiry, None if the entry never expires."""
        if self.expire_at is None:
            return None
        remaining = (self.expire_at - now).total_seconds()
        return TTL(max(0.0, remaining))


@dataclass(frozen=True)
class CacheLookup:
    """
    Result of a cache read.

    Either a hit carrying the live entry's value, or a miss.
    """

    found: bool
    value: Any = None
    entry: Optional[CacheEntry] = None

    @classmethod
    def hit(cls, entry: CacheEntry) -> "CacheLookup":
        return cls(found=True, value=entry.value, entry=entry)

    @classmethod
    def miss(cls) -> "CacheLookup":
        return cls(found=False)

    def __bool__(self) -> bool:
        return self.found


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)
