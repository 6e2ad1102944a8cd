"""Boundary to the IANA timezone database.

The engine never implements timezone rules itself; identifiers are resolved by
:mod:`zoneinfo` (backed by the ``tzdata`` package where the platform has no
system database) and only the zone's raw offset is consumed.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

__all__ = ["HOUR_NANOS", "MINUTE_NANOS", "raw_offset", "resolve_time_zone", "to_nanos"]

SECOND_NANOS = 1_000_000_000
MINUTE_NANOS = 60 * SECOND_NANOS
HOUR_NANOS = 60 * MINUTE_NANOS


def resolve_time_zone(key: str) -> ZoneInfo:
    """Return the :class:`ZoneInfo` for *key*.

    Raises
    ------
    ValueError
        If the identifier is not known to the timezone database.
    """

    try:
        return ZoneInfo(key)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValueError(f"Unknown time zone identifier: {key!r}") from exc


def to_nanos(delta: timedelta) -> int:
    """Convert *delta* to an integer number of nanoseconds."""

    return (delta.days * 86_400 + delta.seconds) * SECOND_NANOS + delta.microseconds * 1_000


def raw_offset(zone: ZoneInfo, when: Optional[datetime] = None) -> int:
    """Return the standard (daylight saving excluded) UTC offset of *zone* in nanoseconds.

    The offset in force at *when* is used, defaulting to the current instant.
    """

    instant = (when or datetime.now(UTC)).astimezone(zone)
    offset = instant.utcoffset() or timedelta(0)
    dst = instant.dst() or timedelta(0)
    return to_nanos(offset - dst)
