"""
In-Memory Key-Value Store

Process-local implementation of the KeyValueStore interface.
Stores raw bytes with an optional native expiry deadline.
"""

import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

import structlog

from ...domain.cache.repository_interfaces import KeyValueStore
from ...domain.cache.value_objects import TTL

logger = structlog.get_logger(__name__)


@dataclass(slots=True)
class _StoredItem:
    # Raw bytes + monotonic expiration time (None = no native expiry)
    data: bytes
    expires_at: Optional[float]


class InMemoryKeyValueStore(KeyValueStore):
    """
    Dictionary-backed key-value store.

    Every operation runs without awaiting, so each call is atomic with
    respect to other coroutines on the same event loop.
    """

    def __init__(
        self,
        *,
        native_ttl: bool = True,
        monotonic: Callable[[], float] = time.monotonic,
    ) -> None:
        self._items: Dict[str, _StoredItem] = {}
        self._native_ttl = native_ttl
        self._monotonic = monotonic

    async def get(self, key: str) -> Optional[bytes]:
        item = self._items.get(key)
        if item is None:
            return None

        if item.expires_at is not None and self._monotonic() >= item.expires_at:
            self._items.pop(key, None)
            return None

        return item.data

    async def set(self, key: str, data: bytes, ttl: Optional[TTL] = None) -> None:
        expires_at = None
        if self._native_ttl and ttl is not None and ttl.expires:
            expires_at = self._monotonic() + ttl.seconds
        self._items[key] = _StoredItem(data=bytes(data), expires_at=expires_at)

    async def delete(self, key: str) -> bool:
        return self._items.pop(key, None) is not None

    async def ping(self) -> bool:
        return True

    async def close(self) -> None:
        count = len(self._items)
        self._items.clear()
        logger.debug("In-memory store closed", discarded_keys=count)

    def __contains__(self, key: str) -> bool:
        # Physical presence, ignoring native expiry
        return key in self._items

    def __len__(self) -> int:
        return len(self._items)
