"""
Cache Repository Interfaces

Abstract repository interface for the raw key-value store behind the cache.
Implementations store opaque bytes and must be safe for concurrent use.
"""

from abc import ABC, abstractmethod
from typing import Optional

from .value_objects import TTL


class KeyValueStore(ABC):
    """
    Abstract backing store for cache entries.

    Defines the contract the TTL cache service relies on.
    Failures MUST surface as StorageException (or a subclass).
    """

    @abstractmethod
    async def get(self, key: str) -> Optional[bytes]:
        """Get raw bytes stored under key, None if absent."""
        pass

    @abstractmethod
    async def set(self, key: str, data: bytes, ttl: Optional[TTL] = None) -> None:
        """Store raw bytes under key, overwriting any existing value.

        ttl is a storage-level expiry hint; stores without native expiry
        may ignore it.
        """
        pass

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """Delete key. Returns True if something was removed."""
        pass

    @abstractmethod
    async def ping(self) -> bool:
        """Check that the store is reachable."""
        pass

    async def close(self) -> None:
        """Release store resources."""
        return None
