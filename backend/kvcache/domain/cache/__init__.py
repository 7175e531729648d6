"""
Cache Domain Module

Entities, value objects, codec, exceptions and the backing-store interface
for the TTL cache.
"""

from .entities import CacheEntry, CacheLookup, utc_now
from .value_objects import CacheKey, TTL, JSONValue, parse_duration
from .codec import encode_entry, decode_entry
from .repository_interfaces import KeyValueStore
from .exceptions import (
    CacheException,
    InvalidArgumentException,
    EncodingException,
    DecodingException,
    CorruptEntryException,
    StorageException,
    StoreConnectionException,
    OperationTimeoutException,
    OperationCancelledException,
)

__all__ = [
    # Entities
    "CacheEntry",
    "CacheLookup",
    "utc_now",
    # Value objects
    "CacheKey",
    "TTL",
    "JSONValue",
    "parse_duration",
    # Codec
    "encode_entry",
    "decode_entry",
    # Store contract
    "KeyValueStore",
    # Exceptions
    "CacheException",
    "InvalidArgumentException",
    "EncodingException",
    "DecodingException",
    "CorruptEntryException",
    "StorageException",
    "StoreConnectionException",
    "OperationTimeoutException",
    "OperationCancelledException",
]
