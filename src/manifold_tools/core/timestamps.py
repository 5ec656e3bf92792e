"""Timestamp helpers for CLI date arguments and Manifold epoch values."""

from datetime import UTC, datetime, timedelta

_MS_PER_SECOND = 1000
_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)
_ONE_MS = timedelta(milliseconds=1)


def parse_date(value: str) -> datetime:
    """Parse a date string or raw integer into an aware UTC datetime.

    Accept ISO 8601 date strings (``2024-01-01``, ``2024-01-01T12:00:00``)
    or raw integer Unix timestamps in seconds.

    Args:
        value: Date string or integer timestamp.

    Returns:
        Timezone-aware UTC datetime.

    Raises:
        ValueError: If the value cannot be parsed.

    """
    # Try raw integer first
    try:
        return datetime.fromtimestamp(int(value), tz=UTC)
    except ValueError:
        pass

    for fmt in ("%Y-%m-%d", "%Y-%m-%dT%H:%M:%S"):
        try:
            return datetime.strptime(value, fmt).replace(tzinfo=UTC)
        except ValueError:
            continue

    msg = f"Cannot parse date: {value!r}. Use ISO 8601 (YYYY-MM-DD) or a Unix timestamp."
    raise ValueError(msg)


def from_epoch_ms(value: int) -> datetime:
    """Convert Manifold epoch milliseconds into an aware UTC datetime."""
    seconds, millis = divmod(value, _MS_PER_SECOND)
    return datetime.fromtimestamp(seconds, tz=UTC) + timedelta(milliseconds=millis)


def to_epoch_ms(value: datetime) -> int:
    """Convert an aware datetime into epoch milliseconds."""
    return (value - _EPOCH) // _ONE_MS
