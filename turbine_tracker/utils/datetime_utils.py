"""
Datetime utilities.

Provides timezone-aware datetime functions and epoch-millisecond helpers.
"""

from datetime import UTC, datetime


def utc_now() -> datetime:
    """
    Get current UTC datetime with timezone info.

    Returns:
        Current datetime in UTC with timezone awareness
    """
    return datetime.now(UTC)


def to_epoch_ms(value: datetime) -> int:
    """
    Convert a datetime to milliseconds since epoch.

    Naive datetimes are interpreted in the local timezone.
    """
    return round(value.astimezone().timestamp() * 1000)


def from_epoch_ms(ms: int) -> datetime:
    """Convert milliseconds since epoch to an aware UTC datetime."""
    return datetime.fromtimestamp(ms / 1000, tz=UTC)


def utc_date_key(ms: int) -> str:
    """UTC calendar date (YYYY-MM-DD) of an epoch-ms timestamp."""
    return from_epoch_ms(ms).strftime("%Y-%m-%d")


def utc_midnight(now: datetime | None = None) -> datetime:
    """Start of the current UTC day."""
    now = (now or utc_now()).astimezone(UTC)
    return now.replace(hour=0, minute=0, second=0, microsecond=0)


def local_midnight_ms(now: datetime | None = None) -> int:
    """Start of the current local calendar day, in epoch ms."""
    local = (now or utc_now()).astimezone()
    # Naive wall-clock midnight, so the offset in effect at midnight applies
    return to_epoch_ms(datetime(local.year, local.month, local.day))
