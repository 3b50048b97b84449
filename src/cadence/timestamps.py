"""Timestamp helpers shared by the stores.

Stored timestamps are UTC with a ``Z`` marker and millisecond precision,
so plain string comparison in SQL orders them chronologically. Anything
finer than a millisecond is truncated on write.
"""

from __future__ import annotations

from datetime import date, datetime, time, timezone, tzinfo


def parse_timestamp(value: str | datetime, tz: tzinfo | None = None) -> datetime:
    """Return an aware datetime. Naive input is read as local wall-clock time."""
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if value.tzinfo is None:
        value = value.replace(tzinfo=tz) if tz is not None else value.astimezone()
    return value


def format_timestamp(value: datetime) -> str:
    utc = value.astimezone(timezone.utc)
    return utc.strftime("%Y-%m-%dT%H:%M:%S.") + f"{utc.microsecond // 1000:03d}Z"


def normalize_timestamp(value: str | datetime, tz: tzinfo | None = None) -> str:
    """Re-render any ISO timestamp in the stored UTC form."""
    return format_timestamp(parse_timestamp(value, tz))


def to_local(value: str | datetime, tz: tzinfo | None = None) -> datetime:
    """Convert to *tz*, or to the host zone when *tz* is None."""
    return parse_timestamp(value, tz).astimezone(tz)


def at_local_time(day: date, clock_time: time, tz: tzinfo | None = None) -> datetime:
    """Combine a calendar date with a local time-of-day."""
    if tz is not None:
        return datetime.combine(day, clock_time, tzinfo=tz)
    return datetime.combine(day, clock_time).astimezone()


def utc_now() -> datetime:
    return datetime.now(timezone.utc)
