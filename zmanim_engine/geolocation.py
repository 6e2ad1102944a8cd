"""Location and timezone value object consumed by every solar computation."""

from __future__ import annotations

from datetime import datetime
from typing import Optional
from zoneinfo import ZoneInfo

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .errors import InvalidArgumentError
from .timezones import HOUR_NANOS, MINUTE_NANOS, raw_offset, resolve_time_zone

__all__ = ["GeoLocation"]

# Offsets beyond this many hours mean the legal clock is about a day away from solar time.
ANTIMERIDIAN_THRESHOLD_HOURS = 20


class GeoLocation(BaseModel):
    """A named point on Earth together with the timezone its clocks follow.

    Every field can be reassigned after construction and is validated again
    on assignment, so a location can be moved around in place by the owning
    calendar's caller.

    Longitudes are east-positive: New York is at about ``-74``, Jerusalem at
    about ``35.2``. Elevation is metres above sea level and only affects the
    elevation-adjusted sunrise and sunset.
    """

    model_config = ConfigDict(validate_assignment=True)

    location_name: Optional[str] = Field(None, description="Optional display name")
    latitude: float = Field(..., ge=-90.0, le=90.0, description="Latitude in degrees")
    longitude: float = Field(..., ge=-180.0, le=180.0, description="Longitude in degrees")
    elevation: float = Field(0.0, ge=0.0, description="Elevation above sea level in meters")
    time_zone_id: str = Field("UTC", description="IANA time zone identifier")

    @field_validator("time_zone_id")
    def validate_time_zone_id(cls, value: str) -> str:
        resolve_time_zone(value)
        return value

    @classmethod
    def greenwich(cls) -> "GeoLocation":
        """Return the default location: the Royal Observatory at Greenwich."""

        return cls(
            location_name="Greenwich, England",
            latitude=51.4772,
            longitude=0.0,
            elevation=0.0,
            time_zone_id="GMT",
        )

    @property
    def time_zone(self) -> ZoneInfo:
        return resolve_time_zone(self.time_zone_id)

    def raw_offset(self, when: Optional[datetime] = None) -> int:
        """Standard UTC offset of the location's zone in nanoseconds (DST excluded)."""

        return raw_offset(self.time_zone, when)

    def set_latitude_dms(self, degrees: int, minutes: int, seconds: float, direction: str) -> None:
        """Set the latitude from degrees, minutes and seconds north or south of the equator.

        Parameters
        ----------
        degrees, minutes, seconds:
            Unsigned components; the hemisphere comes from *direction*.
        direction:
            ``"N"`` or ``"S"``.
        """

        value = degrees + (minutes + seconds / 60.0) / 60.0
        if value < 0 or value > 90:
            raise InvalidArgumentError(
                "Latitude must be between 0 and 90. Use direction of S instead of negative."
            )
        if direction == "S":
            value = -value
        elif direction != "N":
            raise InvalidArgumentError("Latitude direction must be N or S")
        self.latitude = value

    def set_longitude_dms(self, degrees: int, minutes: int, seconds: float, direction: str) -> None:
        """Set the longitude from degrees, minutes and seconds east or west of Greenwich."""

        value = degrees + (minutes + seconds / 60.0) / 60.0
        if value < 0 or value > 180:
            raise InvalidArgumentError(
                "Longitude must be between 0 and 180. Use a direction of W instead of negative."
            )
        if direction == "W":
            value = -value
        elif direction != "E":
            raise InvalidArgumentError("Longitude direction must be E or W")
        self.longitude = value

    def local_mean_time_offset(self, when: Optional[datetime] = None) -> int:
        """Return the offset of local mean time from standard time, in nanoseconds.

        Each degree of longitude away from the zone's standard meridian is
        worth four minutes; a location east of its meridian gets a positive
        offset. Daylight saving time is ignored.
        """

        return int(self.longitude * 4 * MINUTE_NANOS) - self.raw_offset(when)

    def antimeridian_adjustment(self, when: Optional[datetime] = None) -> int:
        """Return the number of days (-1, 0 or 1) to shift a civil date before solar computation.

        Locations whose zone sits across the antimeridian from their longitude
        (Samoa at UTC+13 on longitude -172 for example) have a local mean time
        offset of about a day. Their civil date is then a day ahead of (or
        behind) the solar day the calculator has to be asked about.
        """

        local_hours_offset = self.local_mean_time_offset(when) / HOUR_NANOS
        if local_hours_offset >= ANTIMERIDIAN_THRESHOLD_HOURS:
            return 1
        if local_hours_offset <= -ANTIMERIDIAN_THRESHOLD_HOURS:
            return -1
        return 0

    def clone(self) -> "GeoLocation":
        """Return an independent copy of this location."""

        return self.model_copy(deep=True)
