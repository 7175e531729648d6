"""
Unit tests for the cache entry codec.

Covers the persisted JSON layout, interoperability with entries written
by other clients, and rejection of malformed data.
"""

import json
from datetime import datetime, timedelta, timezone

import pytest

from kvcache.domain.cache.codec import NEVER_EXPIRES, decode_entry, encode_entry
from kvcache.domain.cache.entities import CacheEntry
from kvcache.domain.cache.exceptions import DecodingException, EncodingException

EXPIRE_AT = datetime(2024, 1, 1, 12, 0, 0, 500000, tzinfo=timezone.utc)


class TestEncodeEntry:
    """Test encoding cache entries."""

    def test_wire_layout(self):
        data = encode_entry(CacheEntry("user:1", {"name": "Ada"}, EXPIRE_AT))

        document = json.loads(data)
        assert document == {
            "key": "user:1",
            "value": {"name": "Ada"},
            "expireAt": "2024-01-01T12:00:00.500000Z",
        }

    def test_never_expires_written_as_zero_time(self):
        document = json.loads(encode_entry(CacheEntry("k", 1)))
        assert document["expireAt"] == NEVER_EXPIRES

    def test_non_utc_expire_at_written_in_utc(self):
        plus_two = timezone(timedelta(hours=2))
        entry = CacheEntry("k", 1, datetime(2024, 1, 1, 14, 0, tzinfo=plus_two))

        assert json.loads(encode_entry(entry))["expireAt"] == "2024-01-01T12:00:00.000000Z"

    def test_unicode_kept_as_utf8(self):
        data = encode_entry(CacheEntry("k", "naïve ☃"))
        assert "naïve ☃".encode("utf-8") in data

    @pytest.mark.parametrize(
        "value",
        [
            float("nan"),
            float("inf"),
            {1: "int key"},
            {"nested": [object()]},
            b"bytes",
            {1, 2},
        ],
    )
    def test_non_json_values_rejected(self, value):
        with pytest.raises(EncodingException) as exc_info:
            encode_entry(CacheEntry("k", value))
        assert exc_info.value.error_code == "CACHE_ENCODING_ERROR"
        assert exc_info.value.details["key"] == "k"

    def test_cyclic_value_rejected(self):
        value = []
        value.append(value)

        with pytest.raises(EncodingException, match="cyclic"):
            encode_entry(CacheEntry("k", value))

    def test_shared_subtree_is_not_a_cycle(self):
        shared = {"x": 1}
        data = encode_entry(CacheEntry("k", [shared, shared]))
        assert json.loads(data)["value"] == [{"x": 1}, {"x": 1}]


class TestDecodeEntry:
    """Test decoding stored cache entries."""

    @pytest.mark.parametrize(
        "value",
        [None, True, 0, -7, 3.25, "", "text", [], [1, "a", None], {}, {"a": {"b": [1.5]}}],
    )
    def test_round_trip(self, value):
        entry = CacheEntry("k", value, EXPIRE_AT)
        assert decode_entry(encode_entry(entry)) == entry

    def test_round_trip_never_expires(self):
        entry = CacheEntry("k", {"a": 1})
        assert decode_entry(encode_entry(entry)) == entry

    def test_round_trip_epoch_expiry(self):
        """An entry that expired at the epoch stays expired after a round trip."""
        entry = CacheEntry("k", 1, datetime(1970, 1, 1, tzinfo=timezone.utc))

        decoded = decode_entry(encode_entry(entry))

        assert decoded == entry
        assert decoded.is_expired(datetime(2024, 1, 1, tzinfo=timezone.utc))

    def test_accepts_nanosecond_timestamps(self):
        """Writers with nanosecond precision are truncated to microseconds."""
        data = b'{"key":"k","value":1,"expireAt":"2024-01-01T12:00:00.123456789Z"}'

        entry = decode_entry(data)
        assert entry.expire_at == datetime(2024, 1, 1, 12, 0, 0, 123456, tzinfo=timezone.utc)

    def test_accepts_offset_timestamps(self):
        data = b'{"key":"k","value":1,"expireAt":"2024-01-01T14:00:00+02:00"}'

        entry = decode_entry(data)
        assert entry.expire_at == datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
        assert entry.expire_at.tzinfo == timezone.utc

    @pytest.mark.parametrize(
        "expire_at",
        ['"0001-01-01T00:00:00Z"', "null", "0", "0.0"],
    )
    def test_never_expires_sentinels(self, expire_at):
        data = f'{{"key":"k","value":1,"expireAt":{expire_at}}}'.encode()
        assert decode_entry(data).expire_at is None

    def test_missing_fields_default(self):
        entry = decode_entry(b'{"key":"k"}')

        assert entry.value is None
        assert entry.expire_at is None

    def test_epoch_seconds(self):
        entry = decode_entry(b'{"key":"k","value":1,"expireAt":1704110400}')
        assert entry.expire_at == datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

    def test_accepts_str_input(self):
        assert decode_entry('{"key":"k","value":"v"}').value == "v"

    def test_unknown_fields_ignored(self):
        entry = decode_entry(b'{"key":"k","value":2,"extra":true,"version":1}')
        assert entry.value == 2

    @pytest.mark.parametrize(
        "data",
        [
            b"",
            b"not json",
            b'{"key":"k"',
            b"[1, 2]",
            b'"just a string"',
            b'{"value": 1}',
            b'{"key": 5}',
            b'{"key": ""}',
            b'{"key":"k","expireAt":"yesterday"}',
            b'{"key":"k","value":NaN}',
            b'{"key":"k","version":2}',
            b"\xff\xfe",
        ],
    )
    def test_malformed_data_rejected(self, data):
        with pytest.raises(DecodingException) as exc_info:
            decode_entry(data)
        assert exc_info.value.error_code == "CACHE_DECODING_ERROR"
