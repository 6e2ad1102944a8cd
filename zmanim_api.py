"""FastAPI application exposing the zmanim engine."""

from __future__ import annotations

import json
import logging
import os
import time
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Annotated

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from models import ErrorResponse, HealthResponse, ZmanimQueryParams, ZmanimResponse
from zmanim_engine import AstronomicalCalendar, EphemerisError, GeoLocation, ensure_ephemeris
from zmanim_engine.calculators.ephemeris import ephemeris_files, kernel_coverage

logging.basicConfig(level=logging.INFO, format="%(message)s")
LOGGER = logging.getLogger("zmanim-api")

APP_DESCRIPTION = "Sunrise, sunset, twilight and transit times for halachic calculations"


@asynccontextmanager
async def lifespan(app: FastAPI):
    if not (os.environ.get("DE_BSP") or os.environ.get("DE_BSP_CACHE_DIR")):
        LOGGER.info(json.dumps({"event": "startup", "ephemeris_files": []}))
        yield
        return
    try:
        files = ensure_ephemeris()
    except EphemerisError as exc:
        LOGGER.error(json.dumps({"event": "ephemeris_load_failed", "error": str(exc)}))
        raise
    LOGGER.info(json.dumps({"event": "startup", "ephemeris_files": files}))
    yield


app = FastAPI(
    title="Zmanim API",
    description=APP_DESCRIPTION,
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[origin for origin in os.environ.get("ZMANIM_CORS_ORIGINS", "*").split(",") if origin],
    allow_methods=["GET"],
    allow_headers=["*"],
)


def _error_response(status_code: int, code: str, message: str) -> JSONResponse:
    payload = ErrorResponse(code=code, error=message)
    LOGGER.error(json.dumps({"event": "error", "code": code, "message": message}))
    return JSONResponse(status_code=status_code, content=payload.model_dump())


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    messages = ", ".join(error["msg"] for error in exc.errors())
    return _error_response(422, "validation_error", messages)


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    detail = exc.detail
    if isinstance(detail, dict):
        message = detail.get("error") or detail.get("message") or str(detail)
    elif isinstance(detail, list):
        message = ", ".join(str(item) for item in detail)
    else:
        message = str(detail)
    return _error_response(exc.status_code, f"http_{exc.status_code}", message)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    LOGGER.exception("Unhandled exception", exc_info=exc)
    return _error_response(500, "internal_error", "Unhandled server error")


@app.get("/health", response_model=HealthResponse)
def health() -> HealthResponse:
    files = ephemeris_files()
    return HealthResponse(ok=True, ephemeris_loaded=bool(files), files=files, coverage=kernel_coverage())


@app.get(
    "/zmanim",
    response_model=ZmanimResponse,
    responses={
        400: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
    },
)
def zmanim_endpoint(params: Annotated[ZmanimQueryParams, Query()]) -> ZmanimResponse:
    start_time = time.perf_counter()
    try:
        location = GeoLocation(
            location_name=params.location_name,
            latitude=params.lat,
            longitude=params.lon,
            elevation=params.elevation,
            time_zone_id=params.timezone,
        )
        calendar = AstronomicalCalendar(
            location,
            params.date_local or datetime.now(location.time_zone),
            params.calculator.calculator(),
        )
        response = ZmanimResponse.from_calendar(calendar)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except EphemerisError as exc:
        raise HTTPException(status_code=503, detail=str(exc))

    duration_ms = (time.perf_counter() - start_time) * 1000.0
    LOGGER.info(
        json.dumps(
            {
                "event": "zmanim",
                "lat": params.lat,
                "lon": params.lon,
                "date": response.calendar_date.isoformat(),
                "calculator": params.calculator.value,
                "duration_ms": round(duration_ms, 3),
            }
        )
    )
    return response
