"""
Cache Entry Codec

Serializes cache entries to the persisted JSON representation and back.

Wire format (UTF-8 JSON object):
    {"key": "<string>", "value": <any JSON>, "expireAt": "<RFC 3339>"}

"Never expires" is written as the zero time 0001-01-01T00:00:00Z.
Decoding also accepts epoch seconds and null for expireAt.
"""

import json
import math
import re
from datetime import datetime, timezone
from typing import Any, Optional, Set, Union

from pydantic import BaseModel, ConfigDict, Field, StrictStr, ValidationError, field_validator

from .entities import CacheEntry
from .exceptions import DecodingException, EncodingException

SCHEMA_VERSION = 1
NEVER_EXPIRES = "0001-01-01T00:00:00Z"

_ZERO_TIME = datetime(1, 1, 1, tzinfo=timezone.utc)
# Go writes nanoseconds; datetime holds microseconds
_EXCESS_FRACTION = re.compile(r"(\.\d{6})\d+")


class _StoredEntry(BaseModel):
    """Schema of a persisted cache entry."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    key: StrictStr
    value: Any = None
    expire_at: Optional[datetime] = Field(default=None, alias="expireAt")
    version: Optional[int] = None

    @field_validator("expire_at", mode="before")
    @classmethod
    def normalize_raw_expire_at(cls, v):
        if isinstance(v, str):
            return _EXCESS_FRACTION.sub(r"\1", v.strip())
        # Numeric epoch 0 is the "never expires" sentinel of epoch-based writers
        if isinstance(v, (int, float)) and not isinstance(v, bool) and v == 0:
            return None
        return v


def _check_json_value(value: Any, active: Set[int], path: str) -> None:
    """Walk a value tree and reject anything that is not plain JSON."""
    if value is None or isinstance(value, (bool, str, int)):
        return

    if isinstance(value, float):
        if not math.isfinite(value):
            raise ValueError(f"non-finite number at {path}")
        return

    if isinstance(value, (list, dict)):
        marker = id(value)
        if marker in active:
            raise ValueError(f"cyclic structure at {path}")
        active.add(marker)
        try:
            if isinstance(value, list):
                for index, item in enumerate(value):
                    _check_json_value(item, active, f"{path}[{index}]")
            else:
                for name, item in value.items():
                    if not isinstance(name, str):
                        raise ValueError(
                            f"non-string mapping key {name!r} at {path}"
                        )
                    _check_json_value(item, active, f"{path}.{name}")
        finally:
            active.discard(marker)
        return

    raise ValueError(f"unsupported type {type(value).__name__} at {path}")


def _format_expire_at(expire_at: Optional[datetime]) -> str:
    if expire_at is None:
        return NEVER_EXPIRES
    utc = expire_at.astimezone(timezone.utc)
    return utc.isoformat(timespec="microseconds").replace("+00:00", "Z")


def _normalize_expire_at(expire_at: Optional[datetime]) -> Optional[datetime]:
    if expire_at is None:
        return None
    if expire_at.tzinfo is None:
        expire_at = expire_at.replace(tzinfo=timezone.utc)
    expire_at = expire_at.astimezone(timezone.utc)
    # Zero time is the "never expires" sentinel
    if expire_at <= _ZERO_TIME:
        return None
    return expire_at


def reject_json_constant(name: str) -> Any:
    raise ValueError(f"non-standard JSON constant {name}")


def encode_entry(entry: CacheEntry) -> bytes:
    """
    Encode a cache entry to bytes.

    Raises:
        EncodingException: If the value is not a JSON-compatible tree
    """
    try:
        _check_json_value(entry.value, set(), "value")
        document = {
            "key": entry.key,
            "value": entry.value,
            "expireAt": _format_expire_at(entry.expire_at),
        }
        return json.dumps(
            document, ensure_ascii=False, allow_nan=False, separators=(",", ":")
        ).encode("utf-8")
    except RecursionError as e:
        raise EncodingException(
            "Value is nested too deeply to encode", key=entry.key, original_error=e
        ) from e
    except (TypeError, ValueError) as e:
        raise EncodingException(
            f"Value cannot be encoded: {e}", key=entry.key, original_error=e
        ) from e


def decode_entry(data: Union[bytes, str]) -> CacheEntry:
    """
    Decode bytes produced by encode_entry (or a compatible writer).

    Missing value decodes as None; missing or null expireAt as never expiring.

    Raises:
        DecodingException: If the data is not a well-formed cache entry
    """
    try:
        document = json.loads(data, parse_constant=reject_json_constant)
    except RecursionError as e:
        raise DecodingException("Stored entry is nested too deeply", original_error=e) from e
    except ValueError as e:
        raise DecodingException(f"Malformed cache entry: {e}", original_error=e) from e

    if not isinstance(document, dict):
        raise DecodingException(
            f"Malformed cache entry: expected object, got {type(document).__name__}"
        )

    try:
        stored = _StoredEntry.model_validate(document)
    except ValidationError as e:
        raise DecodingException(
            f"Invalid cache entry schema: {e.error_count()} error(s)",
            key=document.get("key") if isinstance(document.get("key"), str) else None,
            original_error=e,
        ) from e

    if stored.version is not None and stored.version != SCHEMA_VERSION:
        raise DecodingException(
            f"Unsupported cache entry schema version: {stored.version}",
            key=stored.key,
        )

    try:
        return CacheEntry(
            key=stored.key,
            value=stored.value,
            expire_at=_normalize_expire_at(stored.expire_at),
        )
    except (ValueError, OverflowError) as e:
        raise DecodingException(
            f"Invalid cache entry: {e}", key=stored.key, original_error=e
        ) from e
