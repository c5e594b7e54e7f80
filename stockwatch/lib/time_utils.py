"""
Time utilities for bar processing.

This module provides timezone-aware helpers for:
- Normalizing vendor timestamps (ISO strings, epoch millis, datetimes) to UTC
- Flooring timestamps to bar boundaries
- Minute-of-day and regular-trading-hours checks
- Elapsed years between timestamps (for CAGR)

Every timestamp leaving this module is a timezone-aware UTC datetime.
"""

from datetime import datetime, timedelta, timezone
from typing import Union

import pandas as pd

from stockwatch.lib.constants import RTH_WINDOWS_UTC, SECONDS_PER_YEAR

TimestampLike = Union[datetime, pd.Timestamp, str, int, float]

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def utc_now() -> datetime:
    """Current time in UTC."""
    return datetime.now(timezone.utc)


def to_utc(dt: datetime) -> datetime:
    """
    Convert a datetime to UTC.

    Naive datetimes are assumed to already be UTC.
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_timestamp(value: TimestampLike) -> datetime:
    """
    Normalize a vendor timestamp to an aware UTC datetime.

    Accepts:
        - datetime / pandas Timestamp (naive values are treated as UTC)
        - ISO-8601 string ("2024-01-02T14:45:00Z")
        - epoch milliseconds (int or float)

    Raises:
        TypeError: If the value is none of the above
        ValueError: If a string cannot be parsed
    """
    if isinstance(value, pd.Timestamp):
        return to_utc(value.to_pydatetime())
    if isinstance(value, datetime):
        return to_utc(value)
    if isinstance(value, bool):
        raise TypeError(f"Unsupported timestamp type: {type(value).__name__}")
    if isinstance(value, (int, float)):
        return _EPOCH + timedelta(milliseconds=value)
    if isinstance(value, str):
        return to_utc(pd.Timestamp(value).to_pydatetime())
    raise TypeError(f"Unsupported timestamp type: {type(value).__name__}")


def to_epoch_seconds(dt: datetime) -> float:
    """Seconds since the Unix epoch for an aware or naive-UTC datetime."""
    return (to_utc(dt) - _EPOCH).total_seconds()


def floor_to_minutes(dt: datetime, minutes: int) -> datetime:
    """
    Floor a UTC datetime to the nearest N-minute boundary (epoch aligned).

    Example:
        floor_to_minutes(10:07Z, 15) -> 10:00Z
    """
    step = minutes * 60
    seconds = to_epoch_seconds(dt)
    return _EPOCH + timedelta(seconds=(seconds // step) * step)


def is_on_boundary(dt: datetime, minutes: int) -> bool:
    """True if the timestamp sits exactly on an N-minute boundary."""
    return to_epoch_seconds(dt) % (minutes * 60) == 0


def minute_of_day(dt: datetime) -> int:
    """UTC hours * 60 + UTC minutes (0-1439)."""
    utc = to_utc(dt)
    return utc.hour * 60 + utc.minute


def is_rth_close_utc(dt: TimestampLike) -> bool:
    """
    Check whether a bar close falls within US equity regular trading hours.

    09:30-16:00 New York is approximated in UTC by accepting either the
    EDT window (13:30-20:00) or the EST window (14:30-21:00), inclusive.
    """
    m = minute_of_day(parse_timestamp(dt))
    return any(start <= m <= end for start, end in RTH_WINDOWS_UTC)


def years_between(start: datetime, end: datetime) -> float:
    """Elapsed wall-clock time in years of 365.25 days."""
    return (to_epoch_seconds(end) - to_epoch_seconds(start)) / SECONDS_PER_YEAR


def to_iso_utc(dt: datetime) -> str:
    """ISO string in UTC without fractional seconds, Z-terminated."""
    return to_utc(dt).replace(microsecond=0).strftime("%Y-%m-%dT%H:%M:%SZ")
