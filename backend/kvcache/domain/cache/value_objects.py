"""
Cache Value Objects

Immutable value objects for the cache domain.
Provides type safety and validation for keys and TTLs.
"""

import math
import re
from dataclasses import dataclass
from datetime import timedelta
from typing import Dict, List, Union

# JSON-compatible value tree stored verbatim by the cache
JSONValue = Union[None, bool, int, float, str, List["JSONValue"], Dict[str, "JSONValue"]]


@dataclass(frozen=True)
class CacheKey:
    """
    Immutable cache key value object.

    Any non-empty string up to MAX_LENGTH characters is accepted.
    """

    value: str

    MAX_LENGTH = 512

    def __post_init__(self) -> None:
        """Validate cache key format."""
        if not isinstance(self.value, str):
            raise ValueError("Cache key must be a string")

        if not self.value:
            raise ValueError("Cache key cannot be empty")

        if len(self.value) > self.MAX_LENGTH:
            raise ValueError(f"Cache key too long (max {self.MAX_LENGTH} characters)")

    def __str__(self) -> str:
        return self.value


# Duration units, expressed in seconds
_DURATION_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,  # micro sign
    "μs": 1e-6,  # greek mu
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}
_DURATION_COMPONENT = re.compile(
    r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|μs|ms|s|m|h)"
)
_BARE_NUMBER = re.compile(r"^\d+(?:\.\d*)?$|^\.\d+$")


def parse_duration(raw: str) -> float:
    """
    Parse a duration string into seconds.

    Accepts Go duration syntax ("300ms", "1.5h", "2h45m") and bare numbers,
    which are read as seconds.

    Raises:
        ValueError: If the string is not a valid duration
    """
    text = raw.strip()
    if not text:
        raise ValueError("Empty duration")

    sign = 1.0
    if text[0] in "+-":
        sign = -1.0 if text[0] == "-" else 1.0
        text = text[1:]

    if text == "0":
        return 0.0

    if _BARE_NUMBER.match(text):
        return sign * float(text)

    total = 0.0
    pos = 0
    while pos < len(text):
        match = _DURATION_COMPONENT.match(text, pos)
        if not match:
            raise ValueError(f"Invalid duration: {raw!r}")
        number, unit = match.groups()
        total += float(number) * _DURATION_UNITS[unit]
        pos = match.end()

    if pos == 0:
        raise ValueError(f"Invalid duration: {raw!r}")

    return sign * total


@dataclass(frozen=True)
class TTL:
    """
    Time To Live value object for cache expiration.

    A TTL of zero means the entry never expires.
    """

    seconds: float

    # Largest duration a signed 64-bit nanosecond count can hold (~292 years)
    MAX_SECONDS = 9223372036.854775807

    def __post_init__(self) -> None:
        """Validate TTL value."""
        if not isinstance(self.seconds, (int, float)) or isinstance(self.seconds, bool):
            raise ValueError("TTL must be a number of seconds")
        if not math.isfinite(self.seconds):
            raise ValueError("TTL must be finite")
        if self.seconds < 0:
            raise ValueError("TTL cannot be negative")
        if self.seconds > self.MAX_SECONDS:
            raise ValueError(f"TTL exceeds maximum duration of {self.MAX_SECONDS:.0f}s")

    @classmethod
    def never(cls) -> "TTL":
        """TTL that never expires."""
        return cls(0)

    @classmethod
    def milliseconds(cls, milliseconds: float) -> "TTL":
        """Create TTL from milliseconds."""
        return cls(milliseconds / 1000)

    @classmethod
    def minutes(cls, minutes: float) -> "TTL":
        """Create TTL from minutes."""
        return cls(minutes * 60)

    @classmethod
    def hours(cls, hours: float) -> "TTL":
        """Create TTL from hours."""
        return cls(hours * 3600)

    @classmethod
    def from_timedelta(cls, delta: timedelta) -> "TTL":
        """Create TTL from a timedelta."""
        return cls(delta.total_seconds())

    @classmethod
    def parse(cls, raw: str) -> "TTL":
        """Create TTL from a duration string such as "100ms" or "1h30m"."""
        return cls(parse_duration(raw))

    @classmethod
    def coerce(cls, value: Union["TTL", timedelta, int, float, None]) -> "TTL":
        """Normalize the accepted TTL spellings into a TTL."""
        if value is None:
            return cls.never()
        if isinstance(value, TTL):
            return value
        if isinstance(value, timedelta):
            return cls.from_timedelta(value)
        return cls(value)

    @property
    def expires(self) -> bool:
        """Whether entries stored with this TTL ever expire."""
        return self.seconds > 0

    def as_timedelta(self) -> timedelta:
        return timedelta(seconds=self.seconds)

    def __str__(self) -> str:
        return f"{self.seconds:g}s"
