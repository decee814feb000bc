"""
Tests for utils.time module.

Tests cover:
- Current time helpers (aware, UTC, 'Z' suffix)
- Formatting of aware datetimes in other zones
- Strict parsing of stored timestamps
"""

from datetime import UTC, datetime, timedelta, timezone

import pytest
from freezegun import freeze_time

from llm_visibility.utils.time import (
    format_timestamp,
    parse_timestamp,
    utc_now,
    utc_timestamp,
)


class TestNow:
    """Test suite for utc_now() and utc_timestamp()."""

    def test_utc_now_is_aware(self):
        assert utc_now().tzinfo is UTC

    @freeze_time("2025-11-02 08:30:45.123456")
    def test_utc_timestamp_drops_microseconds(self):
        assert utc_timestamp() == "2025-11-02T08:30:45Z"


class TestFormatTimestamp:
    """Test suite for format_timestamp()."""

    def test_utc(self):
        assert format_timestamp(datetime(2025, 11, 2, 8, 30, tzinfo=UTC)) == (
            "2025-11-02T08:30:00Z"
        )

    def test_converts_other_zones(self):
        cest = timezone(timedelta(hours=2))

        assert format_timestamp(datetime(2025, 11, 2, 10, 30, tzinfo=cest)) == (
            "2025-11-02T08:30:00Z"
        )

    def test_naive_rejected(self):
        with pytest.raises(ValueError, match="timezone-aware"):
            format_timestamp(datetime(2025, 11, 2, 8, 30))


class TestParseTimestamp:
    """Test suite for parse_timestamp()."""

    def test_parse(self):
        parsed = parse_timestamp("2025-11-02T08:30:45Z")

        assert parsed == datetime(2025, 11, 2, 8, 30, 45, tzinfo=UTC)
        assert parsed.tzinfo is UTC

    def test_round_trip(self):
        assert format_timestamp(parse_timestamp("2025-01-31T23:59:59Z")) == (
            "2025-01-31T23:59:59Z"
        )

    def test_missing_z(self):
        with pytest.raises(ValueError, match="must end with 'Z'"):
            parse_timestamp("2025-11-02T08:30:45")

    def test_offset_rejected(self):
        with pytest.raises(ValueError, match="offset"):
            parse_timestamp("2025-11-02T08:30:45+02:00Z")

    def test_garbage(self):
        with pytest.raises(ValueError, match="Invalid ISO 8601"):
            parse_timestamp("yesterdayZ")
