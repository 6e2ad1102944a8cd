"""US Naval Observatory sunrise/sunset algorithm.

Based on the *Almanac for Computers* (1990) procedure as popularised by
Ed Williams. It works from the day of the year rather than a Julian date and
is slightly less accurate than :class:`~.noaa.NOAACalculator`.
"""

from __future__ import annotations

import math

from .base import GEOMETRIC_ZENITH, AstronomicalCalculator

__all__ = ["SunTimesCalculator"]

DEG_PER_HOUR = 360.0 / 24.0


def _sin_deg(deg):
    return math.sin(math.radians(deg))


def _cos_deg(deg):
    return math.cos(math.radians(deg))


def _tan_deg(deg):
    return math.tan(math.radians(deg))


def _acos_deg(x):
    return math.degrees(math.acos(x))


def _asin_deg(x):
    return math.degrees(math.asin(x))


class SunTimesCalculator(AstronomicalCalculator):
    """Calculates sunrise and sunset with the US Naval Almanac algorithm."""

    name = "US Naval Almanac Algorithm"

    def utc_sunrise(self, day, geo_location, zenith, adjust_for_elevation):
        elevation = geo_location.elevation if adjust_for_elevation else 0.0
        adjusted_zenith = self.adjust_zenith(zenith, elevation)
        return self._time_utc(day, geo_location, adjusted_zenith, is_sunrise=True)

    def utc_sunset(self, day, geo_location, zenith, adjust_for_elevation):
        elevation = geo_location.elevation if adjust_for_elevation else 0.0
        adjusted_zenith = self.adjust_zenith(zenith, elevation)
        return self._time_utc(day, geo_location, adjusted_zenith, is_sunrise=False)

    def utc_noon(self, day, geo_location):
        """Return the midpoint of sea-level sunrise and sunset.

        Undefined when either of them is (polar day or night).
        """

        sunrise = self.utc_sunrise(day, geo_location, GEOMETRIC_ZENITH, False)
        sunset = self.utc_sunset(day, geo_location, GEOMETRIC_ZENITH, False)
        if math.isnan(sunrise) or math.isnan(sunset):
            return math.nan
        if sunset < sunrise:
            sunset += 24
        return (sunrise + (sunset - sunrise) / 2) % 24

    @staticmethod
    def _hours_from_meridian(longitude):
        return longitude / DEG_PER_HOUR

    @staticmethod
    def _approx_time_days(day_of_year, hours_from_meridian, is_sunrise):
        if is_sunrise:
            return day_of_year + (6.0 - hours_from_meridian) / 24
        return day_of_year + (18.0 - hours_from_meridian) / 24

    @staticmethod
    def _sun_true_longitude(mean_anomaly):
        longitude = mean_anomaly + 1.916 * _sin_deg(mean_anomaly) + 0.020 * _sin_deg(2 * mean_anomaly) + 282.634
        if longitude >= 360.0:
            longitude -= 360.0
        if longitude < 0:
            longitude += 360.0
        return longitude

    @staticmethod
    def _sun_right_ascension_hours(true_longitude):
        ra = math.degrees(math.atan(0.91764 * _tan_deg(true_longitude)))
        # right ascension has to be in the same quadrant as the true longitude
        l_quadrant = math.floor(true_longitude / 90.0) * 90.0
        ra_quadrant = math.floor(ra / 90.0) * 90.0
        ra += l_quadrant - ra_quadrant
        return ra / DEG_PER_HOUR

    @staticmethod
    def _cos_local_hour_angle(true_longitude, latitude, zenith):
        sin_dec = 0.39782 * _sin_deg(true_longitude)
        cos_dec = _cos_deg(_asin_deg(sin_dec))
        return (_cos_deg(zenith) - sin_dec * _sin_deg(latitude)) / (cos_dec * _cos_deg(latitude))

    def _time_utc(self, day, geo_location, zenith, is_sunrise):
        day_of_year = day.timetuple().tm_yday
        hours_from_meridian = self._hours_from_meridian(geo_location.longitude)
        approx_days = self._approx_time_days(day_of_year, hours_from_meridian, is_sunrise)

        mean_anomaly = 0.9856 * approx_days - 3.289
        true_longitude = self._sun_true_longitude(mean_anomaly)
        right_ascension = self._sun_right_ascension_hours(true_longitude)

        cos_hour_angle = self._cos_local_hour_angle(true_longitude, geo_location.latitude, zenith)
        if not -1.0 <= cos_hour_angle <= 1.0:
            return math.nan

        if is_sunrise:
            hour_angle = 360.0 - _acos_deg(cos_hour_angle)
        else:
            hour_angle = _acos_deg(cos_hour_angle)
        local_hour = hour_angle / DEG_PER_HOUR

        local_mean_time = local_hour + right_ascension - 0.06571 * approx_days - 6.622
        return (local_mean_time - hours_from_meridian) % 24
