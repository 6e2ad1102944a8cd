"""Astronomical time calculations for zmanim."""

from .calculators import (
    ASTRONOMICAL_ZENITH,
    CIVIL_ZENITH,
    GEOMETRIC_ZENITH,
    NAUTICAL_ZENITH,
    AstronomicalCalculator,
    EphemerisCalculator,
    EphemerisCoverageError,
    EphemerisError,
    NOAACalculator,
    SolarPositionCalculator,
    SunTimesCalculator,
    ensure_ephemeris,
    load_ephemeris,
)
from .calendar import AstronomicalCalendar, SolarEvent
from .errors import InvalidArgumentError, UnsupportedOperationError
from .geolocation import GeoLocation

__all__ = [
    "ASTRONOMICAL_ZENITH",
    "CIVIL_ZENITH",
    "GEOMETRIC_ZENITH",
    "NAUTICAL_ZENITH",
    "AstronomicalCalculator",
    "AstronomicalCalendar",
    "EphemerisCalculator",
    "EphemerisCoverageError",
    "EphemerisError",
    "GeoLocation",
    "InvalidArgumentError",
    "NOAACalculator",
    "SolarEvent",
    "SolarPositionCalculator",
    "SunTimesCalculator",
    "UnsupportedOperationError",
    "ensure_ephemeris",
    "load_ephemeris",
]
