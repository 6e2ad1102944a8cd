"""Astronomical calendar: sunrise, sunset, twilight and transit for one date and place.

The calendar owns a civil date, a :class:`~zmanim_engine.geolocation.GeoLocation`
and the solar-position calculator used for every query. Nothing is cached;
each query asks the calculator again, so changing the date or location takes
effect immediately.

There are times when a solar event simply does not happen: far enough north
or south the sun may not rise or set on a given date, and a deep twilight
zenith may never be reached in summer even at the latitude of London. Those
queries return ``None`` instead of raising, as the lack of an event is an
expected condition rather than an error.

Example::

    location = GeoLocation(location_name="Lakewood, NJ", latitude=40.0828,
                           longitude=-74.2094, elevation=20,
                           time_zone_id="America/New_York")
    calendar = AstronomicalCalendar(location, date(2023, 2, 8))
    calendar.sunrise()
"""

from __future__ import annotations

import json
import logging
import math
from datetime import UTC, date, datetime, time, timedelta
from enum import Enum
from typing import Optional, Union

from . import dip
from .calculators.base import (
    ASTRONOMICAL_ZENITH,
    CIVIL_ZENITH,
    GEOMETRIC_ZENITH,
    NAUTICAL_ZENITH,
    SolarPositionCalculator,
)
from .calculators.noaa import NOAACalculator
from .errors import InvalidArgumentError, UnsupportedOperationError
from .geolocation import GeoLocation
from .timezones import HOUR_NANOS

__all__ = ["AstronomicalCalendar", "SolarEvent"]

LOGGER = logging.getLogger(__name__)


class SolarEvent(Enum):
    """Kind of event a fractional UTC hour refers to, used for day rollover."""

    SUNRISE = "sunrise"
    SUNSET = "sunset"
    NOON = "noon"
    MIDNIGHT = "midnight"


class _Default(Enum):
    TOKEN = 0


_DEFAULT = _Default.TOKEN

Bound = Union[datetime, None, _Default]


def _truncated_micros(delta: timedelta) -> int:
    return delta // timedelta(microseconds=1)


def _elapsed(start: datetime, end: datetime) -> timedelta:
    # Aware datetimes sharing a tzinfo subtract as wall clock time, so go through UTC.
    return end.astimezone(UTC) - start.astimezone(UTC)


def _shift(instant: datetime, delta: timedelta) -> datetime:
    return (instant.astimezone(UTC) + delta).astimezone(instant.tzinfo)


class AstronomicalCalendar:
    """Calculates astronomical times for a date at a location.

    Parameters
    ----------
    geo_location:
        Where to calculate; defaults to :meth:`GeoLocation.greenwich`.
    date:
        The civil date; defaults to today in the location's time zone.
    calculator:
        The solar-position algorithm; defaults to :class:`NOAACalculator`.
    """

    GEOMETRIC_ZENITH = GEOMETRIC_ZENITH
    CIVIL_ZENITH = CIVIL_ZENITH
    NAUTICAL_ZENITH = NAUTICAL_ZENITH
    ASTRONOMICAL_ZENITH = ASTRONOMICAL_ZENITH

    def __init__(
        self,
        geo_location: Optional[GeoLocation] = None,
        date: Union[date, datetime, str, None] = None,
        calculator: Optional[SolarPositionCalculator] = None,
    ):
        self.geo_location = geo_location if geo_location is not None else GeoLocation.greenwich()
        self.calculator = calculator if calculator is not None else NOAACalculator()
        if date is None:
            date = datetime.now(self.geo_location.time_zone)
        self.date = date

    @property
    def date(self) -> date:
        return self._date

    @date.setter
    def date(self, value: Union[date, datetime, str]) -> None:
        """Accept a date, a datetime (read in the location's zone when aware) or an ISO string."""

        if isinstance(value, datetime):
            if value.tzinfo is not None:
                value = value.astimezone(self.geo_location.time_zone)
            self._date = value.date()
        elif isinstance(value, date):
            self._date = value
        elif isinstance(value, str):
            try:
                self._date = date.fromisoformat(value)
            except ValueError as exc:
                raise InvalidArgumentError(f"Invalid ISO date: {value!r}") from exc
        else:
            raise InvalidArgumentError(f"Unsupported date value: {value!r}")

    # -- sunrise and sunset ------------------------------------------------

    def sunrise(self) -> Optional[datetime]:
        """Return the elevation-adjusted sunrise.

        The geometric zenith is corrected by the calculator for the sun's
        radius, refraction and the location's elevation, about 90.8333
        degrees at sea level.
        """

        return self.date_from_fractional_time(self.utc_sunrise(GEOMETRIC_ZENITH), SolarEvent.SUNRISE)

    def sea_level_sunrise(self) -> Optional[datetime]:
        """Return sunrise without the elevation adjustment.

        Dawn and dusk depend on the amount of visible light, which elevation
        does not change, so twilight calculations are offsets from this.
        """

        return self.date_from_fractional_time(
            self.utc_sea_level_sunrise(GEOMETRIC_ZENITH), SolarEvent.SUNRISE
        )

    def sunset(self) -> Optional[datetime]:
        """Return the elevation-adjusted sunset.

        When a zone far from the location's longitude is used the UTC sunset
        can fall before sunrise; the rollover rule then moves it to the next
        day so that it stays on the same solar day as sunrise.
        """

        return self.date_from_fractional_time(self.utc_sunset(GEOMETRIC_ZENITH), SolarEvent.SUNSET)

    def sea_level_sunset(self) -> Optional[datetime]:
        """Return sunset without the elevation adjustment."""

        return self.date_from_fractional_time(
            self.utc_sea_level_sunset(GEOMETRIC_ZENITH), SolarEvent.SUNSET
        )

    def sunrise_offset_by_degrees(self, offset_zenith: float) -> Optional[datetime]:
        """Return the time the sun is at *offset_zenith* in the morning.

        The zenith is measured from the vertical: 16.1 degrees before sunrise
        is ``GEOMETRIC_ZENITH + 16.1``; after sunrise use less than 90.
        """

        return self.date_from_fractional_time(self.utc_sunrise(offset_zenith), SolarEvent.SUNRISE)

    def sunset_offset_by_degrees(self, offset_zenith: float) -> Optional[datetime]:
        """Return the time the sun is at *offset_zenith* in the evening."""

        return self.date_from_fractional_time(self.utc_sunset(offset_zenith), SolarEvent.SUNSET)

    def begin_civil_twilight(self) -> Optional[datetime]:
        return self.sunrise_offset_by_degrees(CIVIL_ZENITH)

    def begin_nautical_twilight(self) -> Optional[datetime]:
        return self.sunrise_offset_by_degrees(NAUTICAL_ZENITH)

    def begin_astronomical_twilight(self) -> Optional[datetime]:
        return self.sunrise_offset_by_degrees(ASTRONOMICAL_ZENITH)

    def end_civil_twilight(self) -> Optional[datetime]:
        return self.sunset_offset_by_degrees(CIVIL_ZENITH)

    def end_nautical_twilight(self) -> Optional[datetime]:
        return self.sunset_offset_by_degrees(NAUTICAL_ZENITH)

    def end_astronomical_twilight(self) -> Optional[datetime]:
        return self.sunset_offset_by_degrees(ASTRONOMICAL_ZENITH)

    # -- raw UTC hours ---------------------------------------------------------

    def utc_sunrise(self, zenith: float) -> float:
        """Return sunrise at *zenith* as a fractional UTC hour (18.75 is 18:45 UTC), ``nan`` if none."""

        return self.calculator.utc_sunrise(self.adjusted_date(), self.geo_location, zenith, True)

    def utc_sea_level_sunrise(self, zenith: float) -> float:
        return self.calculator.utc_sunrise(self.adjusted_date(), self.geo_location, zenith, False)

    def utc_sunset(self, zenith: float) -> float:
        return self.calculator.utc_sunset(self.adjusted_date(), self.geo_location, zenith, True)

    def utc_sea_level_sunset(self, zenith: float) -> float:
        return self.calculator.utc_sunset(self.adjusted_date(), self.geo_location, zenith, False)

    # -- derived times ---------------------------------------------------------

    def temporal_hour(self, start: Bound = _DEFAULT, end: Bound = _DEFAULT) -> Optional[timedelta]:
        """Return a twelfth of the day between *start* and *end*.

        Omitted bounds default to sea-level sunrise and sunset. When either
        bound is ``None`` (an event that does not occur) so is the result.
        """

        if start is _DEFAULT:
            start = self.sea_level_sunrise()
        if end is _DEFAULT:
            end = self.sea_level_sunset()
        if start is None or end is None:
            return None
        return timedelta(microseconds=math.trunc(_truncated_micros(_elapsed(start, end)) / 12))

    def sun_transit(self, start: Bound = _DEFAULT, end: Bound = _DEFAULT) -> Optional[datetime]:
        """Return solar noon.

        Without arguments this is the calculator's transit of the sun across
        the meridian. With a custom start and end of day it is six temporal
        hours after *start*, the midpoint of that day. Both bounds must be
        given together.

        Raises
        ------
        InvalidArgumentError
            If only one of *start* and *end* is given.
        """

        if start is _DEFAULT and end is _DEFAULT:
            noon = self.calculator.utc_noon(self.adjusted_date(), self.geo_location)
            return self.date_from_fractional_time(noon, SolarEvent.NOON)
        if start is _DEFAULT or end is _DEFAULT:
            raise InvalidArgumentError("Both the start and the end of the day must be provided")

        temporal_hour = self.temporal_hour(start, end)
        if temporal_hour is None:
            return None
        return _shift(start, temporal_hour * 6)

    def solar_midnight(self) -> Optional[datetime]:
        """Return the midpoint between today's and tomorrow's transit.

        This is an approximation of the sun's lower transit; see
        :meth:`sun_lower_transit` for the astronomical one.
        """

        transit = self.sun_transit()
        tomorrow = self.clone()
        tomorrow.date = self.date + timedelta(days=1)
        next_transit = tomorrow.sun_transit()
        if transit is None or next_transit is None:
            return None
        half = math.trunc(_truncated_micros(_elapsed(transit, next_transit)) / 2)
        return _shift(transit, timedelta(microseconds=half))

    def sun_lower_transit(self) -> Optional[datetime]:
        """Return the lower transit of the sun, computed as noon at the antipodal meridian."""

        day = self.adjusted_date()
        lower_location = self.geo_location.clone()
        lower_meridian = lower_location.longitude + 180
        if lower_meridian > 180:
            lower_meridian -= 360
            day -= timedelta(days=1)
        lower_location.longitude = lower_meridian
        noon = self.calculator.utc_noon(day, lower_location)
        return self.date_from_fractional_time(noon, SolarEvent.MIDNIGHT)

    def local_mean_time(self, hours: float) -> Optional[datetime]:
        """Return the instant *hours* into the day by local mean time.

        Local mean time is the time of a clock set to the mean solar time of
        the location's longitude, ignoring daylight saving time. ``12.0`` is
        mean solar noon at the location.

        Raises
        ------
        InvalidArgumentError
            If *hours* is not within ``[0, 24)``.
        """

        if math.isnan(hours) or hours < 0 or hours >= 24:
            raise InvalidArgumentError("Hours must between 0 and 23.9999...")

        when = self._reference_instant()
        raw_offset_hours = self.geo_location.raw_offset(when) / HOUR_NANOS
        instant = self.date_from_fractional_time(hours - raw_offset_hours, SolarEvent.SUNRISE)
        if instant is None:
            return None
        offset_micros = math.trunc(self.geo_location.local_mean_time_offset(when) / 1000)
        return _shift(instant, -timedelta(microseconds=offset_micros))

    def sunrise_solar_dip_from_offset(self, minutes: float) -> Optional[float]:
        """See :func:`zmanim_engine.dip.sunrise_solar_dip_from_offset`."""

        return dip.sunrise_solar_dip_from_offset(self, minutes)

    def sunset_solar_dip_from_offset(self, minutes: float) -> Optional[float]:
        """See :func:`zmanim_engine.dip.sunset_solar_dip_from_offset`."""

        return dip.sunset_solar_dip_from_offset(self, minutes)

    # -- date handling ---------------------------------------------------------

    def date_from_fractional_time(self, time_: float, solar_event: SolarEvent) -> Optional[datetime]:
        """Convert a fractional UTC hour on the adjusted date into a zoned datetime.

        The calculators only know hours of a UTC day, so an event can belong
        to the previous or next UTC date. Using the nominal UTC offset of the
        longitude, a sunrise later than 18:00 local is moved to the previous
        day, a sunset earlier than 06:00 local to the next day and a lower
        transit later than 12:00 local to the previous day. Noon that wrapped
        past either end of the UTC day is moved back onto the civil day.

        Returns ``None`` when *time_* is ``nan``.
        """

        if time_ is None or math.isnan(time_):
            LOGGER.debug(
                json.dumps(
                    {
                        "event": "event_undefined",
                        "solar_event": solar_event.value,
                        "date": self.date.isoformat(),
                        "latitude": self.geo_location.latitude,
                        "longitude": self.geo_location.longitude,
                    }
                )
            )
            return None

        calculated_time = time_
        hours = int(calculated_time)
        calculated_time = (calculated_time - hours) * 60
        minutes = int(calculated_time)
        calculated_time = (calculated_time - minutes) * 60
        seconds = int(calculated_time)
        microseconds = int((calculated_time - seconds) * 1_000_000)

        local_time_hours = int(self.geo_location.longitude / 15)
        day_shift = 0
        if solar_event is SolarEvent.SUNRISE and local_time_hours + hours > 18:
            day_shift = -1
        elif solar_event is SolarEvent.SUNSET and local_time_hours + hours < 6:
            day_shift = 1
        elif solar_event is SolarEvent.MIDNIGHT and local_time_hours + hours > 12:
            day_shift = -1
        elif solar_event is SolarEvent.NOON:
            # Only near the antimeridian does noon wrap around the UTC day.
            if local_time_hours + hours > 24:
                day_shift = -1
            elif local_time_hours + hours < 0:
                day_shift = 1

        instant = datetime.combine(self.adjusted_date(), time(0), tzinfo=UTC) + timedelta(
            days=day_shift, hours=hours, minutes=minutes, seconds=seconds, microseconds=microseconds
        )
        return instant.astimezone(self.geo_location.time_zone)

    def adjusted_date(self) -> date:
        """Return the date shifted by the location's antimeridian adjustment."""

        offset = self.geo_location.antimeridian_adjustment(self._reference_instant())
        if offset == 0:
            return self.date
        return self.date + timedelta(days=offset)

    def _reference_instant(self) -> datetime:
        # Zones occasionally change their standard offset; use the one in force on the date.
        return datetime.combine(self.date, time(12), tzinfo=UTC)

    # -- object protocol -------------------------------------------------------

    def clone(self) -> "AstronomicalCalendar":
        """Return an independent copy; the stateless calculator is shared."""

        return AstronomicalCalendar(self.geo_location.clone(), self.date, self.calculator)

    def to_json(self) -> str:
        raise UnsupportedOperationError(
            "This method is unsupported. Use `models.ZmanimResponse.from_calendar(calendar)` instead."
        )

    def to_xml(self) -> str:
        raise UnsupportedOperationError(
            "This method is unsupported. Use `models.ZmanimResponse.from_calendar(calendar)` instead."
        )

    def __eq__(self, other: object) -> bool:
        if self is other:
            return True
        if not isinstance(other, AstronomicalCalendar):
            return NotImplemented
        return (
            self.date == other.date
            and self.geo_location == other.geo_location
            and self.calculator == other.calculator
        )

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(date={self.date.isoformat()!r}, "
            f"geo_location={self.geo_location!r}, calculator={type(self.calculator).__name__}())"
        )
