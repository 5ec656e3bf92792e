"""Tests for timestamp parsing and epoch conversion utilities."""

from datetime import UTC, datetime

import pytest

from manifold_tools.core.timestamps import from_epoch_ms, parse_date, to_epoch_ms

_JAN_1_2024 = datetime(2024, 1, 1, tzinfo=UTC)
_JAN_1_2024_MS = 1704067200000


class TestParseDate:
    """Tests for parse_date."""

    def test_iso_date(self) -> None:
        """Parse an ISO 8601 date string as UTC midnight."""
        assert parse_date("2024-01-01") == _JAN_1_2024

    def test_iso_datetime(self) -> None:
        """Parse an ISO 8601 datetime string."""
        assert parse_date("2024-01-01T12:00:00") == datetime(2024, 1, 1, 12, tzinfo=UTC)

    def test_unix_timestamp(self) -> None:
        """Parse a raw Unix timestamp in seconds."""
        assert parse_date("1704067200") == _JAN_1_2024

    def test_invalid_raises(self) -> None:
        """Raise ValueError for unparseable input."""
        with pytest.raises(ValueError, match="Cannot parse date"):
            parse_date("not-a-date")


class TestEpochMillis:
    """Tests for epoch millisecond conversion."""

    def test_from_epoch_ms(self) -> None:
        """Convert epoch milliseconds into an aware UTC datetime."""
        result = from_epoch_ms(_JAN_1_2024_MS + 123)
        assert result == datetime(2024, 1, 1, 0, 0, 0, 123000, tzinfo=UTC)
        assert result.tzinfo is UTC

    def test_to_epoch_ms(self) -> None:
        """Convert an aware datetime into epoch milliseconds."""
        assert to_epoch_ms(_JAN_1_2024) == _JAN_1_2024_MS

    def test_millisecond_values_survive_conversion(self) -> None:
        """Keep millisecond instants exact through both conversions."""
        for millis in (_JAN_1_2024_MS + 1, _JAN_1_2024_MS + 122, 1700000000999):
            assert to_epoch_ms(from_epoch_ms(millis)) == millis

    def test_sub_millisecond_precision_truncated(self) -> None:
        """Drop microseconds below one millisecond."""
        value = datetime(2024, 1, 1, 0, 0, 0, 999, tzinfo=UTC)
        assert to_epoch_ms(value) == _JAN_1_2024_MS
