"""
Datetime helpers.

pymongo hands back naive datetimes that are implicitly UTC, so every
timestamp this service writes or compares is naive UTC as well. BSON
dates hold milliseconds; timestamps are truncated to match, so a value
returned right after a write equals the one read back later.
"""

from datetime import datetime, timezone
from typing import Optional


def to_millis(value: datetime) -> datetime:
    return value.replace(microsecond=value.microsecond // 1000 * 1000)


def utcnow() -> datetime:
    return to_millis(datetime.now(timezone.utc).replace(tzinfo=None))


def as_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Convert to naive UTC at millisecond precision; naive values are assumed UTC."""
    if value is None:
        return value
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return to_millis(value)
