from __future__ import annotations

import math
from datetime import UTC, date, datetime, timedelta
from pathlib import Path

import httpx
import pytest

from zmanim_engine import (
    GEOMETRIC_ZENITH,
    NAUTICAL_ZENITH,
    AstronomicalCalendar,
    EphemerisCalculator,
    EphemerisCoverageError,
    EphemerisError,
    GeoLocation,
    NOAACalculator,
)
from zmanim_engine.calculators import ephemeris

SOLSTICE = date(2023, 6, 21)


def _minutes_apart(first: float, second: float) -> float:
    delta = abs(first - second) % 24
    return min(delta, 24 - delta) * 60


@pytest.mark.usefixtures("configure_ephemeris")
def test_ephemeris_agrees_with_noaa(lakewood: GeoLocation) -> None:
    precise = EphemerisCalculator()
    noaa = NOAACalculator()
    for zenith in (GEOMETRIC_ZENITH, NAUTICAL_ZENITH):
        for elevated in (True, False):
            assert _minutes_apart(
                precise.utc_sunrise(SOLSTICE, lakewood, zenith, elevated),
                noaa.utc_sunrise(SOLSTICE, lakewood, zenith, elevated),
            ) < 2
            assert _minutes_apart(
                precise.utc_sunset(SOLSTICE, lakewood, zenith, elevated),
                noaa.utc_sunset(SOLSTICE, lakewood, zenith, elevated),
            ) < 2
    assert _minutes_apart(precise.utc_noon(SOLSTICE, lakewood), noaa.utc_noon(SOLSTICE, lakewood)) < 1


@pytest.mark.usefixtures("configure_ephemeris")
def test_ephemeris_calendar(lakewood: GeoLocation) -> None:
    precise = AstronomicalCalendar(lakewood, SOLSTICE, EphemerisCalculator())
    reference = AstronomicalCalendar(lakewood, SOLSTICE)
    assert abs(precise.sunrise() - reference.sunrise()) < timedelta(minutes=2)
    assert abs(precise.sunset() - reference.sunset()) < timedelta(minutes=2)
    assert precise.sunrise() < precise.sun_transit() < precise.sunset()
    assert abs(precise.sun_lower_transit() - reference.sun_lower_transit()) < timedelta(minutes=1)


@pytest.mark.usefixtures("configure_ephemeris")
def test_ephemeris_polar_day(svalbard: GeoLocation) -> None:
    calculator = EphemerisCalculator()
    assert math.isnan(calculator.utc_sunrise(SOLSTICE, svalbard, GEOMETRIC_ZENITH, True))
    assert math.isnan(calculator.utc_sunset(SOLSTICE, svalbard, GEOMETRIC_ZENITH, True))
    assert AstronomicalCalendar(svalbard, SOLSTICE, calculator).sunrise() is None


@pytest.mark.usefixtures("configure_ephemeris")
def test_ephemeris_outside_coverage(lakewood: GeoLocation) -> None:
    calculator = EphemerisCalculator()
    with pytest.raises(EphemerisCoverageError):
        calculator.utc_noon(date(2024, 1, 15), lakewood)
    with pytest.raises(EphemerisCoverageError):
        calculator.utc_sunrise(date(2023, 5, 31), lakewood, GEOMETRIC_ZENITH, True)
    # The sunset scan for the last covered day runs past the end of the kernel.
    with pytest.raises(EphemerisCoverageError):
        calculator.utc_sunset(date(2023, 7, 31), lakewood, GEOMETRIC_ZENITH, True)


@pytest.mark.usefixtures("configure_ephemeris")
def test_kernel_coverage() -> None:
    [(start, end)] = ephemeris.kernel_coverage()
    assert abs(start - datetime(2023, 6, 1, tzinfo=UTC)) < timedelta(seconds=1)
    assert abs(end - datetime(2023, 8, 1, tzinfo=UTC)) < timedelta(seconds=1)


def test_ephemeris_requires_configured_kernels(
    kernel_dir: Path, configure_ephemeris: None, lakewood: GeoLocation, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.delenv("DE_BSP", raising=False)
    monkeypatch.delenv("DE_BSP_CACHE_DIR", raising=False)
    ephemeris.unload_ephemeris()
    try:
        assert ephemeris.ephemeris_files() == []
        assert ephemeris.kernel_coverage() == []
        with pytest.raises(EphemerisError, match="DE_BSP"):
            EphemerisCalculator().utc_sunrise(SOLSTICE, lakewood, GEOMETRIC_ZENITH, True)
    finally:
        ephemeris.load_ephemeris(str(kernel_dir))
    assert ephemeris.ephemeris_files() == ["sun_2023.bsp"]


def test_ephemeris_loads_lazily(
    kernel_dir: Path, configure_ephemeris: None, lakewood: GeoLocation, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("DE_BSP", str(kernel_dir / "sun_2023.bsp"))
    ephemeris.unload_ephemeris()
    try:
        hour = EphemerisCalculator().utc_noon(SOLSTICE, lakewood)
        assert ephemeris.ephemeris_files() == ["sun_2023.bsp"]
        assert _minutes_apart(hour, NOAACalculator().utc_noon(SOLSTICE, lakewood)) < 1
    finally:
        ephemeris.unload_ephemeris()
        ephemeris.load_ephemeris(str(kernel_dir))


def test_load_ephemeris_rejects_missing_path(
    kernel_dir: Path, configure_ephemeris: None, tmp_path: Path
) -> None:
    ephemeris.unload_ephemeris()
    try:
        with pytest.raises(EphemerisError):
            ephemeris.load_ephemeris(str(tmp_path / "missing.bsp"))
        with pytest.raises(EphemerisError):
            ephemeris.load_ephemeris(str(tmp_path))
    finally:
        ephemeris.load_ephemeris(str(kernel_dir))


def test_configured_kernels(kernel_dir: Path, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DE_BSP", str(kernel_dir))
    monkeypatch.setenv("DE_BSP_CACHE_DIR", str(tmp_path))
    assert ephemeris.configured_kernels() == kernel_dir

    monkeypatch.delenv("DE_BSP")
    cached = tmp_path / ephemeris.DEFAULT_KERNEL_FILENAME
    cached.write_bytes((kernel_dir / "sun_2023.bsp").read_bytes())
    assert ephemeris.configured_kernels() == cached

    monkeypatch.delenv("DE_BSP_CACHE_DIR")
    assert ephemeris.configured_kernels() is None


def _serving(handler) -> httpx.Client:
    return httpx.Client(transport=httpx.MockTransport(handler))


def test_download_into_cache(kernel_dir: Path, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    payload = (kernel_dir / "sun_2023.bsp").read_bytes()
    requested = []

    def handler(request: httpx.Request) -> httpx.Response:
        requested.append(str(request.url))
        return httpx.Response(200, content=payload)

    monkeypatch.delenv("DE_BSP", raising=False)
    monkeypatch.setenv("DE_BSP_CACHE_DIR", str(tmp_path / "cache"))
    with _serving(handler) as client:
        path = ephemeris.configured_kernels(client)
        assert ephemeris.configured_kernels(client) == path
    assert requested == [ephemeris.DEFAULT_KERNEL_URL]
    assert path == tmp_path / "cache" / ephemeris.DEFAULT_KERNEL_FILENAME
    assert path.read_bytes() == payload
    assert not path.with_name(path.name + ".part").exists()


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(404, content=b"missing"),
        httpx.Response(200, content=b"<html>not a kernel</html>"),
    ],
    ids=["not-found", "not-a-kernel"],
)
def test_download_rejected(tmp_path: Path, response: httpx.Response) -> None:
    destination = tmp_path / ephemeris.DEFAULT_KERNEL_FILENAME
    with _serving(lambda request: response) as client:
        with pytest.raises(EphemerisError):
            ephemeris.download_kernel(ephemeris.DEFAULT_KERNEL_URL, destination, client)
    assert list(tmp_path.iterdir()) == []


def test_download_failure(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    def refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    monkeypatch.delenv("DE_BSP", raising=False)
    monkeypatch.setenv("DE_BSP_CACHE_DIR", str(tmp_path / "cache"))
    with _serving(refuse) as client:
        with pytest.raises(EphemerisError):
            ephemeris.configured_kernels(client)
    assert list((tmp_path / "cache").iterdir()) == []
