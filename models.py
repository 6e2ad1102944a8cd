"""Pydantic models for API requests and responses."""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

from zmanim_engine import (
    AstronomicalCalendar,
    EphemerisCalculator,
    NOAACalculator,
    SolarPositionCalculator,
    SunTimesCalculator,
)
from zmanim_engine.timezones import resolve_time_zone


class Algorithm(str, Enum):
    """Enumeration of the selectable solar-position algorithms."""

    noaa = "noaa"
    usno = "usno"
    ephemeris = "ephemeris"

    def calculator(self) -> SolarPositionCalculator:
        if self is Algorithm.usno:
            return SunTimesCalculator()
        if self is Algorithm.ephemeris:
            return EphemerisCalculator()
        return NOAACalculator()


class ZmanimQueryParams(BaseModel):
    """Validated query parameters for the ``/zmanim`` endpoint."""

    model_config = ConfigDict(populate_by_name=True)

    lat: float = Field(..., ge=-90.0, le=90.0, description="Latitude in degrees")
    lon: float = Field(..., ge=-180.0, le=180.0, description="Longitude in degrees")
    date_local: Optional[date] = Field(
        None, alias="date", description="Civil date (YYYY-MM-DD), defaults to today at the location"
    )
    elevation: float = Field(0.0, ge=0.0, description="Observer elevation in meters")
    timezone: str = Field("UTC", description="IANA time zone identifier")
    location_name: Optional[str] = Field(None, description="Optional location name")
    calculator: Algorithm = Field(Algorithm.noaa, description="Solar-position algorithm")

    @field_validator("timezone")
    def validate_timezone(cls, value: str) -> str:
        resolve_time_zone(value)
        return value


def _format(dt: Optional[datetime]) -> Optional[str]:
    if dt is None:
        return None
    return dt.isoformat()


class ZmanimResponse(BaseModel):
    """Astronomical times for one date and location."""

    ok: bool = True
    algorithm: str = Field(..., description="Name of the solar-position algorithm")
    location: Optional[str] = Field(None, description="Location name")
    latitude: float = Field(..., description="Latitude in degrees")
    longitude: float = Field(..., description="Longitude in degrees")
    elevation: float = Field(..., description="Elevation above sea level in meters")
    time_zone_id: str = Field(..., description="IANA time zone identifier")
    calendar_date: date = Field(..., description="Civil date of the calculation")
    sunrise: Optional[str] = Field(None, description="Elevation-adjusted sunrise (ISO-8601)")
    sea_level_sunrise: Optional[str] = Field(None, description="Sea-level sunrise (ISO-8601)")
    sunset: Optional[str] = Field(None, description="Elevation-adjusted sunset (ISO-8601)")
    sea_level_sunset: Optional[str] = Field(None, description="Sea-level sunset (ISO-8601)")
    begin_civil_twilight: Optional[str] = None
    begin_nautical_twilight: Optional[str] = None
    begin_astronomical_twilight: Optional[str] = None
    end_civil_twilight: Optional[str] = None
    end_nautical_twilight: Optional[str] = None
    end_astronomical_twilight: Optional[str] = None
    sun_transit: Optional[str] = Field(None, description="Solar noon (ISO-8601)")
    solar_midnight: Optional[str] = Field(None, description="Midpoint of consecutive transits")
    sun_lower_transit: Optional[str] = Field(None, description="Lower transit of the sun")
    temporal_hour_seconds: Optional[float] = Field(
        None, description="Length of a temporal hour between sea-level sunrise and sunset"
    )

    @classmethod
    def from_calendar(cls, calendar: AstronomicalCalendar) -> "ZmanimResponse":
        """Evaluate every query of *calendar* into a response payload."""

        location = calendar.geo_location
        temporal_hour = calendar.temporal_hour()
        return cls(
            algorithm=calendar.calculator.name,
            location=location.location_name,
            latitude=location.latitude,
            longitude=location.longitude,
            elevation=location.elevation,
            time_zone_id=location.time_zone_id,
            calendar_date=calendar.date,
            sunrise=_format(calendar.sunrise()),
            sea_level_sunrise=_format(calendar.sea_level_sunrise()),
            sunset=_format(calendar.sunset()),
            sea_level_sunset=_format(calendar.sea_level_sunset()),
            begin_civil_twilight=_format(calendar.begin_civil_twilight()),
            begin_nautical_twilight=_format(calendar.begin_nautical_twilight()),
            begin_astronomical_twilight=_format(calendar.begin_astronomical_twilight()),
            end_civil_twilight=_format(calendar.end_civil_twilight()),
            end_nautical_twilight=_format(calendar.end_nautical_twilight()),
            end_astronomical_twilight=_format(calendar.end_astronomical_twilight()),
            sun_transit=_format(calendar.sun_transit()),
            solar_midnight=_format(calendar.solar_midnight()),
            sun_lower_transit=_format(calendar.sun_lower_transit()),
            temporal_hour_seconds=None if temporal_hour is None else temporal_hour.total_seconds(),
        )


class HealthResponse(BaseModel):
    """Health-check response."""

    ok: bool = True
    ephemeris_loaded: bool
    files: List[str]
    coverage: List[Tuple[datetime, datetime]] = Field(default_factory=list)


class ErrorResponse(BaseModel):
    """Error payload."""

    ok: bool = False
    code: str
    error: str
