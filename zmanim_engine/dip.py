"""Inversion of a time offset from sunrise or sunset into a solar depression angle.

Both searches walk the zenith away from 90 degrees in fixed increments,
recomputing the event after every step, until the event has moved past the
requested offset. They are linear scans, not bisections, and the returned
angle is quantised to the increment. They are slow and should not be used in
tight loops.
"""

from __future__ import annotations

import math
from datetime import UTC, timedelta
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from .calculators.base import GEOMETRIC_ZENITH

if TYPE_CHECKING:  # pragma: no cover
    from .calendar import AstronomicalCalendar

__all__ = ["sunrise_solar_dip_from_offset", "sunset_solar_dip_from_offset"]

SUNRISE_INCREMENT = Decimal("0.0001")
SUNSET_INCREMENT = Decimal("0.001")

# The sun never sits further than this from the horizon.
MAX_DIP = Decimal(90)


def sunrise_solar_dip_from_offset(calendar: "AstronomicalCalendar", minutes: float) -> Optional[float]:
    """Return the degrees below the horizon matching *minutes* before sea-level sunrise.

    A positive *minutes* is before sunrise and yields a positive dip (the sun
    below the horizon); a negative one is after sunrise and yields a negative
    dip. For example 72 minutes before sunrise in Jerusalem around the equinox
    is roughly 16.1 degrees.

    Returns ``None`` for ``nan`` minutes, when sea-level sunrise does not occur,
    or when no zenith reachable by the sun matches the offset.
    """

    if math.isnan(minutes):
        return None

    offset_by_degrees = calendar.sea_level_sunrise()
    if offset_by_degrees is None:
        return None
    offset_by_time = offset_by_degrees.astimezone(UTC) - timedelta(minutes=minutes)

    degrees = Decimal(0)
    while offset_by_degrees is None or (
        (minutes < 0 and offset_by_degrees.astimezone(UTC) < offset_by_time)
        or (minutes > 0 and offset_by_degrees.astimezone(UTC) > offset_by_time)
    ):
        if minutes > 0:
            degrees += SUNRISE_INCREMENT
        else:
            degrees -= SUNRISE_INCREMENT
        if abs(degrees) > MAX_DIP:
            return None
        offset_by_degrees = calendar.sunrise_offset_by_degrees(GEOMETRIC_ZENITH + float(degrees))

    return float(degrees)


def sunset_solar_dip_from_offset(calendar: "AstronomicalCalendar", minutes: float) -> Optional[float]:
    """Return the degrees below the horizon matching *minutes* after sea-level sunset.

    A positive *minutes* is after sunset, a negative one before it. The
    increment is ten times coarser than for sunrise.
    """

    if math.isnan(minutes):
        return None

    offset_by_degrees = calendar.sea_level_sunset()
    if offset_by_degrees is None:
        return None
    offset_by_time = offset_by_degrees.astimezone(UTC) + timedelta(minutes=minutes)

    degrees = Decimal(0)
    while offset_by_degrees is None or (
        (minutes > 0 and offset_by_degrees.astimezone(UTC) < offset_by_time)
        or (minutes < 0 and offset_by_degrees.astimezone(UTC) > offset_by_time)
    ):
        if minutes > 0:
            degrees += SUNSET_INCREMENT
        else:
            degrees -= SUNSET_INCREMENT
        if abs(degrees) > MAX_DIP:
            return None
        offset_by_degrees = calendar.sunset_offset_by_degrees(GEOMETRIC_ZENITH + float(degrees))

    return float(degrees)
