from __future__ import annotations

import sys
from datetime import date, datetime, timedelta, timezone
from pathlib import Path
from typing import Iterable

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

import erfa
import numpy as np
import pytest
import spiceypy as spice
from fastapi.testclient import TestClient

from zmanim_engine import AstronomicalCalendar, GeoLocation
from zmanim_engine.calculators import ephemeris

AU_KM = 149597870.700
STEP_HOURS = 6
KERNEL_START = datetime(2023, 6, 1, tzinfo=timezone.utc)
KERNEL_END = datetime(2023, 8, 1, tzinfo=timezone.utc)


def _datetime_to_tt(dt: datetime) -> tuple[float, float]:
    utc1, utc2 = erfa.dtf2d(
        "UTC",
        dt.year,
        dt.month,
        dt.day,
        dt.hour,
        dt.minute,
        dt.second + dt.microsecond / 1_000_000,
    )
    tai1, tai2 = erfa.utctai(utc1, utc2)
    return erfa.taitt(tai1, tai2)


def _datetime_to_et(dt: datetime) -> float:
    tt1, tt2 = _datetime_to_tt(dt)
    return (tt1 - erfa.DJ00) * erfa.DAYSEC + tt2 * erfa.DAYSEC


def _sun_and_earth_states(dt: datetime) -> tuple[np.ndarray, np.ndarray]:
    tt1, tt2 = _datetime_to_tt(dt)
    pvh, pvb = erfa.epv00(tt1, tt2)
    pos_km = -np.array(pvh[0]) * AU_KM
    vel_km_s = -np.array(pvh[1]) * (AU_KM / erfa.DAYSEC)
    sun_state = np.concatenate([pos_km, vel_km_s])

    earth_state = np.concatenate(
        [np.array(pvb[0]) * AU_KM, np.array(pvb[1]) * (AU_KM / erfa.DAYSEC)]
    )
    return sun_state, earth_state


def _generate_test_kernel(output: Path) -> None:
    """Write a small SPK covering mid-2023, built from the ERFA analytic ephemeris."""

    if output.exists():
        return
    step = timedelta(hours=STEP_HOURS)
    sun_states: list[np.ndarray] = []
    earth_states: list[np.ndarray] = []
    ets: list[float] = []
    current = KERNEL_START
    while current <= KERNEL_END:
        sun_state, earth_state = _sun_and_earth_states(current)
        sun_states.append(sun_state)
        earth_states.append(earth_state)
        ets.append(_datetime_to_et(current))
        current += step
    step_seconds = ets[1] - ets[0]
    handle = spice.spkopn(str(output), "SUNTEST", 0)
    try:
        spice.spkw08(
            handle, 10, 399, "J2000", ets[0], ets[-1], "SUNTEST", 7, len(ets),
            np.array(sun_states, dtype=float), ets[0], step_seconds,
        )
        spice.spkw08(
            handle, 399, 0, "J2000", ets[0], ets[-1], "EARTHTEST", 7, len(ets),
            np.array(earth_states, dtype=float), ets[0], step_seconds,
        )
    finally:
        spice.spkcls(handle)


@pytest.fixture(scope="session")
def kernel_dir(tmp_path_factory: pytest.TempPathFactory) -> Path:
    directory = tmp_path_factory.mktemp("kernels")
    _generate_test_kernel(directory / "sun_2023.bsp")
    return directory


@pytest.fixture(scope="session")
def configure_ephemeris(kernel_dir: Path) -> Iterable[None]:
    ephemeris.unload_ephemeris()
    ephemeris.load_ephemeris(str(kernel_dir))
    yield
    ephemeris.unload_ephemeris()


@pytest.fixture(scope="session")
def api_client(kernel_dir: Path, configure_ephemeris: None) -> Iterable[TestClient]:
    with pytest.MonkeyPatch.context() as patch:
        patch.setenv("DE_BSP", str(kernel_dir))
        from zmanim_api import app

        with TestClient(app) as client:
            yield client


@pytest.fixture
def lakewood() -> GeoLocation:
    return GeoLocation(
        location_name="Lakewood, NJ",
        latitude=40.0821,
        longitude=-74.2097,
        elevation=10,
        time_zone_id="America/New_York",
    )


@pytest.fixture
def lakewood_calendar(lakewood: GeoLocation) -> AstronomicalCalendar:
    return AstronomicalCalendar(lakewood, date(2023, 6, 21))


@pytest.fixture
def svalbard() -> GeoLocation:
    return GeoLocation(
        location_name="Longyearbyen",
        latitude=78.2232,
        longitude=15.6469,
        time_zone_id="Arctic/Longyearbyen",
    )
