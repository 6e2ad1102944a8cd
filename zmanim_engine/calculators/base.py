"""The solar-position calculator capability shared by every algorithm."""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from datetime import date
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:  # pragma: no cover
    from ..geolocation import GeoLocation

__all__ = [
    "ASTRONOMICAL_ZENITH",
    "CIVIL_ZENITH",
    "GEOMETRIC_ZENITH",
    "NAUTICAL_ZENITH",
    "AstronomicalCalculator",
    "SolarPositionCalculator",
]

# Zenith angles (degrees from the vertical) at which the named events occur.
GEOMETRIC_ZENITH = 90.0
CIVIL_ZENITH = 96.0
NAUTICAL_ZENITH = 102.0
ASTRONOMICAL_ZENITH = 108.0


class SolarPositionCalculator(Protocol):
    """Contract the calendar relies on to compute solar events.

    All times are fractional hours of the UTC day in ``[0, 24)``, e.g.
    ``18.75`` for 18:45:00 UTC. When the sun does not reach *zenith* on the
    requested day ``math.nan`` is returned; this is an expected outcome near
    the poles and must never be raised.
    """

    name: str

    def utc_sunrise(
        self, day: date, geo_location: "GeoLocation", zenith: float, adjust_for_elevation: bool
    ) -> float: ...

    def utc_sunset(
        self, day: date, geo_location: "GeoLocation", zenith: float, adjust_for_elevation: bool
    ) -> float: ...

    def utc_noon(self, day: date, geo_location: "GeoLocation") -> float: ...

    def elevation_adjustment(self, elevation: float) -> float: ...


class AstronomicalCalculator(ABC):
    """Base class for concrete algorithms.

    Supplies the zenith corrections that every algorithm shares: the sun's
    apparent radius, atmospheric refraction at the horizon and the dip of the
    horizon seen from above sea level.
    """

    name = "Abstract Astronomical Calculator"

    #: Mean radius of the Earth in kilometres, as used for the horizon dip.
    earth_radius = 6356.9
    #: Refraction at the horizon, 34 arcminutes.
    refraction = 34 / 60.0
    #: Apparent radius of the sun, 16 arcminutes.
    solar_radius = 16 / 60.0

    @abstractmethod
    def utc_sunrise(
        self, day: date, geo_location: "GeoLocation", zenith: float, adjust_for_elevation: bool
    ) -> float:
        """Return sunrise (or dawn at *zenith*) as a fractional UTC hour, ``nan`` if it does not occur."""

    @abstractmethod
    def utc_sunset(
        self, day: date, geo_location: "GeoLocation", zenith: float, adjust_for_elevation: bool
    ) -> float:
        """Return sunset (or dusk at *zenith*) as a fractional UTC hour, ``nan`` if it does not occur."""

    @abstractmethod
    def utc_noon(self, day: date, geo_location: "GeoLocation") -> float:
        """Return the upper transit of the sun as a fractional UTC hour."""

    def elevation_adjustment(self, elevation: float) -> float:
        """Return the dip of the horizon in degrees for an observer *elevation* metres above sea level.

        ``acos(R / (R + h))``, which is roughly ``0.032 * sqrt(h)`` degrees.
        """

        if elevation <= 0:
            return 0.0
        return math.degrees(math.acos(self.earth_radius / (self.earth_radius + elevation / 1000.0)))

    def adjust_zenith(self, zenith: float, elevation: float) -> float:
        """Correct the geometric zenith for solar radius, refraction and horizon dip.

        Only the 90 degree zenith is corrected. Twilight and other offsets are
        defined relative to the geometric horizon and are returned unchanged.
        """

        if zenith != GEOMETRIC_ZENITH:
            return zenith
        return zenith + self.solar_radius + self.refraction + self.elevation_adjustment(elevation)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AstronomicalCalculator):
            return NotImplemented
        return type(self) is type(other) and vars(self) == vars(other)

    def __hash__(self) -> int:
        return hash((type(self), tuple(sorted(vars(self).items()))))
