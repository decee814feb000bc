"""
UTC time helpers.

Every timestamp the tracker stores or prints is UTC, second precision, with a
trailing 'Z' (``2025-11-02T08:30:45Z``). Naive datetimes are rejected so that
day and week windows are never computed against local time.
"""

from datetime import UTC, datetime

TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(UTC)


def utc_timestamp() -> str:
    """Current time in the storage format, e.g. '2025-11-02T08:30:45Z'."""
    return utc_now().strftime(TIMESTAMP_FORMAT)


def format_timestamp(dt: datetime) -> str:
    """
    Render an aware datetime in the storage format, converting to UTC first.

    Raises:
        ValueError: If dt is naive

    Example:
        >>> from datetime import timedelta, timezone
        >>> format_timestamp(datetime(2025, 11, 2, 10, 30, tzinfo=timezone(timedelta(hours=2))))
        '2025-11-02T08:30:00Z'
    """
    if dt.tzinfo is None:
        raise ValueError(f"Datetime must be timezone-aware (UTC), got naive: {dt!r}")

    return dt.astimezone(UTC).strftime(TIMESTAMP_FORMAT)


def parse_timestamp(value: str) -> datetime:
    """
    Parse a stored timestamp back into an aware UTC datetime.

    Only the 'Z' form is accepted; offsets like '+02:00' are rejected.

    Raises:
        ValueError: If the 'Z' suffix is missing or the text is not ISO 8601
    """
    if not value.endswith("Z"):
        raise ValueError(f"Timestamp must end with 'Z' (UTC): {value}")

    try:
        parsed = datetime.fromisoformat(value[:-1])
    except ValueError as e:
        raise ValueError(f"Invalid ISO 8601 timestamp format: {value}") from e

    if parsed.tzinfo is not None:
        raise ValueError(f"Timestamp must not carry an offset besides 'Z': {value}")
    return parsed.replace(tzinfo=UTC)
