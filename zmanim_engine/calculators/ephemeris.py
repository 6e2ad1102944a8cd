"""Solar events computed from JPL DE ephemerides."""

from __future__ import annotations

import json
import logging
import math
import os
from dataclasses import dataclass
from datetime import UTC, date, datetime, time, timedelta
from pathlib import Path
from threading import Lock
from typing import Callable, List, Optional, Tuple

import erfa
import httpx
import numpy as np
import spiceypy as spice
from spiceypy.utils.exceptions import SpiceyError

from .base import AstronomicalCalculator

__all__ = [
    "DEFAULT_KERNEL_FILENAME",
    "DEFAULT_KERNEL_URL",
    "EphemerisCalculator",
    "EphemerisCoverageError",
    "EphemerisError",
    "configured_kernels",
    "download_kernel",
    "ensure_ephemeris",
    "ephemeris_files",
    "kernel_coverage",
    "load_ephemeris",
    "unload_ephemeris",
]

LOGGER = logging.getLogger(__name__)

EARTH_EQUATORIAL_RADIUS_KM = 6378.137  # WGS84 equatorial radius in kilometers.
EARTH_FLATTENING = 1.0 / 298.257223563  # WGS84 flattening.

DEFAULT_KERNEL_URL = "https://naif.jpl.nasa.gov/pub/naif/generic_kernels/spk/planets/de442.bsp"
DEFAULT_KERNEL_FILENAME = "de442.bsp"

SUN_ID = 10
EARTH_ID = 399

# Light time to the sun is about 8.3 minutes, so lookups reach that far back.
COVERAGE_MARGIN = timedelta(minutes=10)

_J2000_UTC = datetime(2000, 1, 1, 12, tzinfo=UTC)

_LOADED_FILES: Optional[List[str]] = None
_COVERAGE: List[Tuple[float, float]] = []
_LOAD_LOCK = Lock()
_ACQUIRE_LOCK = Lock()


class EphemerisError(RuntimeError):
    """Raised when ephemeris loading or computation fails."""


class EphemerisCoverageError(EphemerisError):
    """Raised when the loaded kernels do not cover the requested instants."""


@dataclass(frozen=True)
class _TimeScales:
    """Container for time-scale representations of a UTC instant."""

    utc: Tuple[float, float]
    ut1: Tuple[float, float]
    tt: Tuple[float, float]
    et: float


def _body_coverage(kernel: str, body: int) -> List[Tuple[float, float]]:
    cover = spice.cell_double(2000)
    spice.spkcov(kernel, body, cover)
    return [spice.wnfetd(cover, index) for index in range(spice.wncard(cover))]


def _sun_earth_coverage(kernels: List[str]) -> List[Tuple[float, float]]:
    """Return the ET windows in which both the sun and the earth are covered."""

    sun = spice.cell_double(2000)
    earth = spice.cell_double(2000)
    for kernel in kernels:
        spice.spkcov(kernel, SUN_ID, sun)
        spice.spkcov(kernel, EARTH_ID, earth)
    both = spice.wnintd(sun, earth)
    return [spice.wnfetd(both, index) for index in range(spice.wncard(both))]


def load_ephemeris(bsp_path: str) -> List[str]:
    """Load SPK kernels using :mod:`spiceypy`.

    Parameters
    ----------
    bsp_path:
        A ``.bsp`` file, or a directory containing one or more of them.

    Returns
    -------
    list[str]
        Sorted list of loaded kernel file names.

    Raises
    ------
    EphemerisError
        If the path is missing or holds no ``.bsp`` files.
    """

    global _LOADED_FILES, _COVERAGE

    if _LOADED_FILES is not None:
        return _LOADED_FILES

    path = Path(bsp_path).expanduser()
    if path.is_file() and path.suffix.lower() == ".bsp":
        bsp_files = [path]
    elif path.is_dir():
        bsp_files = sorted(
            file for file in path.iterdir() if file.is_file() and file.suffix.lower() == ".bsp"
        )
    else:
        raise EphemerisError(f"Ephemeris path not found: {path}")

    if not bsp_files:
        raise EphemerisError(f"No .bsp ephemeris files found in directory: {path}")

    with _LOAD_LOCK:
        if _LOADED_FILES is not None:
            return _LOADED_FILES

        loaded: List[str] = []
        try:
            for bsp_file in bsp_files:
                spice.furnsh(str(bsp_file))
                loaded.append(bsp_file.name)
            coverage = _sun_earth_coverage([str(bsp_file) for bsp_file in bsp_files])
        except SpiceyError as exc:  # pragma: no cover - corrupt kernel files.
            spice.kclear()
            raise EphemerisError(f"Failed to load ephemeris from '{path}': {exc}") from exc

        _LOADED_FILES = loaded
        _COVERAGE = coverage
        LOGGER.info(
            json.dumps(
                {
                    "event": "ephemeris_loaded",
                    "files": loaded,
                    "coverage": [[start.isoformat(), end.isoformat()] for start, end in kernel_coverage()],
                }
            )
        )
        return loaded


def unload_ephemeris() -> None:
    """Unload every kernel so that :func:`load_ephemeris` can be called again."""

    global _LOADED_FILES, _COVERAGE

    with _LOAD_LOCK:
        spice.kclear()
        _LOADED_FILES = None
        _COVERAGE = []


def ephemeris_files() -> List[str]:
    """Return the names of the loaded kernels, empty when none are loaded."""

    return list(_LOADED_FILES or [])


def kernel_coverage() -> List[Tuple[datetime, datetime]]:
    """Return the UTC windows in which the loaded kernels can place the sun."""

    return [(_et_to_datetime(start), _et_to_datetime(end)) for start, end in _COVERAGE]


def download_kernel(url: str, destination: Path, client: Optional[httpx.Client] = None) -> Path:
    """Stream the kernel at *url* into *destination*.

    The payload is written next to *destination* first and only moved into
    place once SPICE can read sun and earth coverage from it, so a failed or
    truncated transfer never leaves a kernel behind.
    """

    destination.parent.mkdir(parents=True, exist_ok=True)
    partial = destination.with_name(destination.name + ".part")
    owns_client = client is None
    if client is None:
        client = httpx.Client(timeout=httpx.Timeout(120.0, connect=30.0), follow_redirects=True)
    LOGGER.info(json.dumps({"event": "kernel_downloading", "url": url, "destination": str(destination)}))
    received = 0
    try:
        with client.stream("GET", url) as response:
            response.raise_for_status()
            with partial.open("wb") as handle:
                for chunk in response.iter_bytes(chunk_size=1 << 20):
                    handle.write(chunk)
                    received += len(chunk)
    except httpx.HTTPError as exc:
        partial.unlink(missing_ok=True)
        raise EphemerisError(f"Failed to download ephemeris from {url}: {exc}") from exc
    finally:
        if owns_client:
            client.close()

    try:
        sun = _body_coverage(str(partial), SUN_ID)
        earth = _body_coverage(str(partial), EARTH_ID)
    except SpiceyError as exc:
        partial.unlink(missing_ok=True)
        raise EphemerisError(f"Downloaded file from {url} is not an SPK kernel: {exc}") from exc
    if not sun or not earth:
        partial.unlink(missing_ok=True)
        raise EphemerisError(f"Downloaded kernel from {url} has no sun or earth coverage")

    partial.replace(destination)
    LOGGER.info(
        json.dumps({"event": "kernel_downloaded", "url": url, "destination": str(destination), "bytes": received})
    )
    return destination


def configured_kernels(client: Optional[httpx.Client] = None) -> Optional[Path]:
    """Return the kernel source named by the environment, or ``None``.

    ``DE_BSP`` names a kernel file or directory and is used as is. Otherwise
    ``DE_BSP_CACHE_DIR`` holds the default kernel, downloaded on first use.
    """

    override = os.environ.get("DE_BSP")
    if override:
        return Path(override).expanduser()
    cache_dir = os.environ.get("DE_BSP_CACHE_DIR")
    if not cache_dir:
        return None
    destination = Path(cache_dir).expanduser() / DEFAULT_KERNEL_FILENAME
    if not destination.is_file():
        download_kernel(DEFAULT_KERNEL_URL, destination, client)
    return destination


def ensure_ephemeris(client: Optional[httpx.Client] = None) -> List[str]:
    """Load the configured kernels unless some are loaded already."""

    if _LOADED_FILES is not None:
        return _LOADED_FILES
    with _ACQUIRE_LOCK:
        if _LOADED_FILES is not None:
            return _LOADED_FILES
        source = configured_kernels(client)
        if source is None:
            raise EphemerisError("No ephemeris configured; set DE_BSP or DE_BSP_CACHE_DIR")
        return load_ephemeris(str(source))


def _require_coverage(start: datetime, end: datetime) -> None:
    first = _datetime_to_timescales(start - COVERAGE_MARGIN).et
    last = _datetime_to_timescales(end + COVERAGE_MARGIN).et
    if not any(low <= first and last <= high for low, high in _COVERAGE):
        raise EphemerisCoverageError(
            f"Loaded ephemeris does not cover {start.isoformat()} to {end.isoformat()}"
        )


def _et_to_datetime(et: float) -> datetime:
    tai1, tai2 = erfa.tttai(erfa.DJ00, et / erfa.DAYSEC)
    utc1, utc2 = erfa.taiutc(tai1, tai2)
    return _J2000_UTC + timedelta(days=(utc1 - erfa.DJ00) + utc2)


def _datetime_to_timescales(dt: datetime) -> _TimeScales:
    """Convert a timezone-aware datetime into multiple time scales."""

    if dt.tzinfo is None:
        raise ValueError("datetime must be timezone-aware (UTC)")
    dt_utc = dt.astimezone(UTC)
    utc1, utc2 = erfa.dtf2d(
        "UTC",
        dt_utc.year,
        dt_utc.month,
        dt_utc.day,
        dt_utc.hour,
        dt_utc.minute,
        dt_utc.second + dt_utc.microsecond / 1_000_000,
    )
    tai1, tai2 = erfa.utctai(utc1, utc2)
    tt1, tt2 = erfa.taitt(tai1, tai2)
    ut11, ut12 = erfa.utcut1(utc1, utc2, 0.0)
    et = (tt1 - erfa.DJ00) * erfa.DAYSEC + tt2 * erfa.DAYSEC
    return _TimeScales(utc=(utc1, utc2), ut1=(ut11, ut12), tt=(tt1, tt2), et=et)


def _site_vector(lat_rad: float, lon_rad: float, elev_m: float) -> np.ndarray:
    """Return the geocentric position vector for the observer in ITRF (km)."""

    altitude_km = elev_m / 1000.0
    return np.array(
        spice.georec(lon_rad, lat_rad, altitude_km, EARTH_EQUATORIAL_RADIUS_KM, EARTH_FLATTENING),
        dtype=float,
    )


def _sun_topocentric(dt: datetime, site_vector: np.ndarray) -> np.ndarray:
    """Return the apparent observer-to-sun vector in ITRF (km)."""

    times = _datetime_to_timescales(dt)
    try:
        sun_vector, _ = spice.spkpos("SUN", times.et, "J2000", "LT+S", "EARTH")
    except SpiceyError as exc:
        raise EphemerisError(f"Ephemeris lookup failed at {dt.isoformat()}: {exc}") from exc
    rotation = np.array(erfa.c2t06a(*times.tt, *times.ut1, 0.0, 0.0), dtype=float)
    topocentric = rotation @ np.array(sun_vector, dtype=float) - site_vector
    if np.linalg.norm(topocentric) == 0:
        raise EphemerisError("Degenerate topocentric vector encountered")
    return topocentric


def _sun_altitude_degrees(dt: datetime, site_vector: np.ndarray, site_up: np.ndarray) -> float:
    """Compute the altitude of the sun in degrees above the geometric horizon."""

    topocentric = _sun_topocentric(dt, site_vector)
    unit = topocentric / np.linalg.norm(topocentric)
    return math.degrees(math.asin(float(np.clip(np.dot(unit, site_up), -1.0, 1.0))))


def _refine_crossing(
    start_dt: datetime,
    end_dt: datetime,
    func: Callable[[datetime], float],
    resolution: timedelta = timedelta(milliseconds=10),
    max_iterations: int = 32,
) -> datetime:
    """Refine the zero of *func* between *start_dt* and *end_dt* via binary search."""

    low_dt, low_val = start_dt, func(start_dt)
    high_dt, high_val = end_dt, func(end_dt)
    if low_val == 0:
        return low_dt
    if high_val == 0:
        return high_dt
    for _ in range(max_iterations):
        mid_dt = low_dt + (high_dt - low_dt) / 2
        if (high_dt - low_dt) <= resolution:
            return mid_dt
        mid_val = func(mid_dt)
        if mid_val == 0:
            return mid_dt
        if low_val * mid_val < 0:
            high_dt, high_val = mid_dt, mid_val
        else:
            low_dt, low_val = mid_dt, mid_val
    return low_dt + (high_dt - low_dt) / 2


class EphemerisCalculator(AstronomicalCalculator):
    """High-precision calculator driven by the loaded JPL DE kernels.

    The topocentric altitude of the sun is sampled every *step* across half
    a local solar day and each crossing of the requested zenith is refined by
    bisection. Transit is the instant the sun crosses the observer's meridian,
    found the same way from the east component of the solar vector.

    The configured kernels are loaded on first use through
    :func:`ensure_ephemeris`, and every scan window is checked against their
    coverage before any lookup is made.
    """

    name = "JPL DE Ephemeris (SPICE)"

    def __init__(self, step: timedelta = timedelta(minutes=5)):
        self.step = step

    def utc_sunrise(self, day, geo_location, zenith, adjust_for_elevation):
        noon = self._approximate_noon(day, geo_location.longitude)
        return self._crossing_hour(
            day, geo_location, zenith, adjust_for_elevation, noon - timedelta(hours=12), noon, rising=True
        )

    def utc_sunset(self, day, geo_location, zenith, adjust_for_elevation):
        noon = self._approximate_noon(day, geo_location.longitude)
        return self._crossing_hour(
            day, geo_location, zenith, adjust_for_elevation, noon, noon + timedelta(hours=12), rising=False
        )

    def utc_noon(self, day, geo_location):
        # The equation of time never exceeds about 17 minutes.
        noon = self._approximate_noon(day, geo_location.longitude)
        start, end = noon - timedelta(hours=1), noon + timedelta(hours=1)
        self._require_ephemeris(start, end)
        site_vector = _site_vector(
            math.radians(geo_location.latitude), math.radians(geo_location.longitude), geo_location.elevation
        )
        lon_rad = math.radians(geo_location.longitude)
        east = np.array([-math.sin(lon_rad), math.cos(lon_rad), 0.0])

        def east_component(dt: datetime) -> float:
            return float(np.dot(_sun_topocentric(dt, site_vector), east))

        if east_component(start) <= 0 or east_component(end) >= 0:
            LOGGER.debug(json.dumps({"event": "transit_not_bracketed", "date": day.isoformat()}))
            return math.nan
        return self._to_hour(day, _refine_crossing(start, end, east_component))

    @staticmethod
    def _require_ephemeris(start: datetime, end: datetime) -> None:
        ensure_ephemeris()
        _require_coverage(start, end)

    @staticmethod
    def _midnight(day: date) -> datetime:
        return datetime.combine(day, time(0), tzinfo=UTC)

    def _approximate_noon(self, day: date, longitude: float) -> datetime:
        return self._midnight(day) + timedelta(hours=12 - longitude / 15.0)

    def _to_hour(self, day: date, instant: datetime) -> float:
        return ((instant - self._midnight(day)).total_seconds() / 3600.0) % 24

    def _crossing_hour(self, day, geo_location, zenith, adjust_for_elevation, window_start, window_end, rising):
        self._require_ephemeris(window_start, window_end)
        elevation = geo_location.elevation if adjust_for_elevation else 0.0
        threshold = 90.0 - self.adjust_zenith(zenith, elevation)
        site_vector = _site_vector(
            math.radians(geo_location.latitude), math.radians(geo_location.longitude), elevation
        )
        site_up = site_vector / np.linalg.norm(site_vector)

        def offset(dt: datetime) -> float:
            return _sun_altitude_degrees(dt, site_vector, site_up) - threshold

        previous_dt, previous_val = window_start, offset(window_start)
        current_dt = window_start + self.step
        while current_dt <= window_end:
            current_val = offset(current_dt)
            if rising and previous_val < 0 <= current_val:
                return self._to_hour(day, _refine_crossing(previous_dt, current_dt, offset))
            if not rising and previous_val >= 0 > current_val:
                return self._to_hour(day, _refine_crossing(previous_dt, current_dt, offset))
            previous_dt, previous_val = current_dt, current_val
            current_dt += self.step

        LOGGER.debug(
            json.dumps(
                {
                    "event": "crossing_not_found",
                    "date": day.isoformat(),
                    "zenith": zenith,
                    "rising": rising,
                }
            )
        )
        return math.nan
