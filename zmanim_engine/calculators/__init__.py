"""Solar-position calculators behind a single capability."""

from .base import (
    ASTRONOMICAL_ZENITH,
    CIVIL_ZENITH,
    GEOMETRIC_ZENITH,
    NAUTICAL_ZENITH,
    AstronomicalCalculator,
    SolarPositionCalculator,
)
from .ephemeris import (
    EphemerisCalculator,
    EphemerisCoverageError,
    EphemerisError,
    ensure_ephemeris,
    load_ephemeris,
)
from .noaa import NOAACalculator
from .suntimes import SunTimesCalculator

__all__ = [
    "ASTRONOMICAL_ZENITH",
    "CIVIL_ZENITH",
    "GEOMETRIC_ZENITH",
    "NAUTICAL_ZENITH",
    "AstronomicalCalculator",
    "EphemerisCalculator",
    "EphemerisCoverageError",
    "EphemerisError",
    "NOAACalculator",
    "SolarPositionCalculator",
    "SunTimesCalculator",
    "ensure_ephemeris",
    "load_ephemeris",
]
