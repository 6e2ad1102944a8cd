"""NOAA solar calculator.

Implementation of the algorithm behind the US National Oceanic and
Atmospheric Administration solar calculator spreadsheet, itself based on Jean
Meeus' *Astronomical Algorithms*. Accuracy is within a minute for locations
between +/- 72 degrees latitude and degrades towards the poles.
"""

from __future__ import annotations

import math
from datetime import UTC, date, datetime
from enum import Enum
from math import acos, asin, atan2, cos, degrees, radians, sin, tan
from typing import TYPE_CHECKING

from .base import AstronomicalCalculator

if TYPE_CHECKING:  # pragma: no cover
    from ..geolocation import GeoLocation

__all__ = ["NOAACalculator"]

JULIAN_DAY_JAN_1_2000 = 2451545.0
JULIAN_DAYS_PER_CENTURY = 36525.0


class _Event(Enum):
    SUNRISE = 1
    SUNSET = -1
    NOON = 0


class NOAACalculator(AstronomicalCalculator):
    """Calculates sunrise, sunset and transit with the NOAA algorithm.

    Event times are computed twice: a first pass evaluates the equation of
    time and declination at local noon, the second pass re-evaluates them at
    the instant found by the first pass.
    """

    name = "US National Oceanic and Atmospheric Administration Algorithm"

    def utc_sunrise(self, day, geo_location, zenith, adjust_for_elevation):
        elevation = geo_location.elevation if adjust_for_elevation else 0.0
        adjusted_zenith = self.adjust_zenith(zenith, elevation)
        sunrise = self._sun_rise_set_utc(
            day, geo_location.latitude, -geo_location.longitude, adjusted_zenith, _Event.SUNRISE
        )
        return (sunrise / 60.0) % 24

    def utc_sunset(self, day, geo_location, zenith, adjust_for_elevation):
        elevation = geo_location.elevation if adjust_for_elevation else 0.0
        adjusted_zenith = self.adjust_zenith(zenith, elevation)
        sunset = self._sun_rise_set_utc(
            day, geo_location.latitude, -geo_location.longitude, adjusted_zenith, _Event.SUNSET
        )
        return (sunset / 60.0) % 24

    def utc_noon(self, day, geo_location):
        noon = self._solar_noon_utc(self._julian_day(day), -geo_location.longitude)
        return (noon / 60.0) % 24

    def solar_elevation(self, when: datetime, geo_location: "GeoLocation") -> float:
        """Return the geometric elevation of the sun above the horizon at *when*, in degrees."""

        return 90.0 - self._solar_zenith_and_azimuth(when, geo_location)[0]

    def solar_azimuth(self, when: datetime, geo_location: "GeoLocation") -> float:
        """Return the azimuth of the sun at *when*, in degrees clockwise from north."""

        return self._solar_zenith_and_azimuth(when, geo_location)[1]

    @staticmethod
    def _julian_day(day: date) -> float:
        year, month = day.year, day.month
        if month <= 2:
            year -= 1
            month += 12
        a = year // 100
        b = 2 - a + a // 4
        return math.floor(365.25 * (year + 4716)) + math.floor(30.6001 * (month + 1)) + day.day + b - 1524.5

    @staticmethod
    def _julian_centuries(julian_day: float) -> float:
        return (julian_day - JULIAN_DAY_JAN_1_2000) / JULIAN_DAYS_PER_CENTURY

    @staticmethod
    def _geom_mean_long_sun(t):
        l0 = 280.46646 + t * (36000.76983 + 0.0003032 * t)
        return l0 % 360

    @staticmethod
    def _geom_mean_anomaly_sun(t):
        return 357.52911 + t * (35999.05029 - 0.0001537 * t)

    @staticmethod
    def _eccentricity_earth_orbit(t):
        return 0.016708634 - t * (0.000042037 + 0.0000001267 * t)

    def _sun_equation_of_center(self, t):
        m_rad = radians(self._geom_mean_anomaly_sun(t))
        return (
            sin(m_rad) * (1.914602 - t * (0.004817 + 0.000014 * t))
            + sin(2 * m_rad) * (0.019993 - 0.000101 * t)
            + sin(3 * m_rad) * 0.000289
        )

    def _sun_true_longitude(self, t):
        return self._geom_mean_long_sun(t) + self._sun_equation_of_center(t)

    def _sun_apparent_longitude(self, t):
        omega = 125.04 - 1934.136 * t
        return self._sun_true_longitude(t) - 0.00569 - 0.00478 * sin(radians(omega))

    @staticmethod
    def _mean_obliquity_of_ecliptic(t):
        seconds = 21.448 - t * (46.8150 + t * (0.00059 - t * 0.001813))
        return 23.0 + (26.0 + seconds / 60.0) / 60.0

    def _obliquity_correction(self, t):
        omega = 125.04 - 1934.136 * t
        return self._mean_obliquity_of_ecliptic(t) + 0.00256 * cos(radians(omega))

    def _sun_declination(self, t):
        sint = sin(radians(self._obliquity_correction(t))) * sin(radians(self._sun_apparent_longitude(t)))
        return degrees(asin(sint))

    def _equation_of_time(self, t):
        """Return the equation of time in minutes."""

        epsilon = self._obliquity_correction(t)
        l0 = self._geom_mean_long_sun(t)
        e = self._eccentricity_earth_orbit(t)
        m = self._geom_mean_anomaly_sun(t)

        y = tan(radians(epsilon) / 2.0) ** 2
        sin2l0 = sin(2 * radians(l0))
        sinm = sin(radians(m))
        cos2l0 = cos(2 * radians(l0))
        sin4l0 = sin(4 * radians(l0))
        sin2m = sin(2 * radians(m))

        etime = (
            y * sin2l0
            - 2 * e * sinm
            + 4 * e * y * sinm * cos2l0
            - 0.5 * y * y * sin4l0
            - 1.25 * e * e * sin2m
        )
        return degrees(etime) * 4.0

    @staticmethod
    def _sun_hour_angle(latitude, declination, zenith, event):
        """Return the hour angle in radians, ``nan`` when the sun never reaches *zenith*."""

        lat_rad = radians(latitude)
        dec_rad = radians(declination)
        cos_hour_angle = cos(radians(zenith)) / (cos(lat_rad) * cos(dec_rad)) - tan(lat_rad) * tan(dec_rad)
        if not -1.0 <= cos_hour_angle <= 1.0:
            return math.nan
        hour_angle = acos(cos_hour_angle)
        if event is _Event.SUNSET:
            hour_angle = -hour_angle
        return hour_angle

    def _solar_noon_utc(self, julian_day, longitude):
        """Return solar noon in minutes after UTC midnight. *longitude* is west-positive."""

        t_noon = self._julian_centuries(julian_day + longitude / 360.0)
        solar_noon = longitude * 4 - self._equation_of_time(t_noon)
        t_new = self._julian_centuries(julian_day + solar_noon / 1440.0)
        return 720 + longitude * 4 - self._equation_of_time(t_new)

    def _sun_rise_set_utc(self, day, latitude, longitude, zenith, event):
        """Return the event in minutes after UTC midnight. *longitude* is west-positive."""

        julian_day = self._julian_day(day)

        noon_minutes = self._solar_noon_utc(julian_day, longitude)
        t_noon = self._julian_centuries(julian_day + noon_minutes / 1440.0)

        equation_of_time = self._equation_of_time(t_noon)
        declination = self._sun_declination(t_noon)
        hour_angle = self._sun_hour_angle(latitude, declination, zenith, event)
        if math.isnan(hour_angle):
            return math.nan
        time_utc = 720 + 4 * (longitude - degrees(hour_angle)) - equation_of_time

        t_new = self._julian_centuries(julian_day + time_utc / 1440.0)
        equation_of_time = self._equation_of_time(t_new)
        declination = self._sun_declination(t_new)
        hour_angle = self._sun_hour_angle(latitude, declination, zenith, event)
        if math.isnan(hour_angle):
            return math.nan
        return 720 + 4 * (longitude - degrees(hour_angle)) - equation_of_time

    def _solar_zenith_and_azimuth(self, when, geo_location):
        when = when.astimezone(UTC)
        minutes = when.hour * 60 + when.minute + (when.second + when.microsecond / 1e6) / 60.0
        julian_day = self._julian_day(when.date()) + minutes / 1440.0
        t = self._julian_centuries(julian_day)

        equation_of_time = self._equation_of_time(t)
        declination = self._sun_declination(t)

        true_solar_time = (minutes + equation_of_time + 4 * geo_location.longitude) % 1440
        hour_angle = true_solar_time / 4.0 - 180.0
        if hour_angle < -180:
            hour_angle += 360

        lat_rad = radians(geo_location.latitude)
        dec_rad = radians(declination)
        cos_zenith = sin(lat_rad) * sin(dec_rad) + cos(lat_rad) * cos(dec_rad) * cos(radians(hour_angle))
        zenith = degrees(acos(max(-1.0, min(1.0, cos_zenith))))

        azimuth = degrees(
            atan2(
                sin(radians(hour_angle)),
                cos(radians(hour_angle)) * sin(lat_rad) - tan(dec_rad) * cos(lat_rad),
            )
        )
        return zenith, (azimuth + 180.0) % 360
