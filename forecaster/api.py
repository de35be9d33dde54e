"""Forecast HTTP API: FastAPI app serving cached and provider forecasts."""

import dataclasses
import logging
import sqlite3
import time
from datetime import date

from fastapi import FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address

from forecaster.config.schema import AppConfig, ServerConfig
from forecaster.errors import ExternalProviderError, ForecasterError, StoreError
from forecaster.ingest.openweather_client import OpenWeatherClient
from forecaster.models.forecast import ForecastRecord
from forecaster.reporting.health_checker import HealthChecker
from forecaster.service.forecast_service import ForecastService
from forecaster.storage.database import connect, run_migrations

logger = logging.getLogger(__name__)

NON_BLANK = r".*\S.*"


class ForecastCreate(BaseModel):
    """Body of POST /api/forecast."""

    model_config = {"populate_by_name": True, "str_strip_whitespace": True}

    city: str = Field(min_length=1, max_length=100)
    state: str = Field(min_length=1, max_length=100)
    forecast_date: date = Field(alias="date")
    temperature: float = Field(ge=-100, le=100)
    feels_like: float = Field(alias="feelsLike", ge=-100, le=100)
    conditions: str = Field(min_length=1, max_length=100)
    description: str = Field(min_length=1, max_length=500)
    precipitation_chance: float = Field(alias="precipitationChance", ge=0, le=100)
    humidity: int = Field(ge=0, le=100)
    wind_speed: float = Field(alias="windSpeed", ge=0, le=500)
    icon_code: str | None = Field(default=None, alias="iconCode", max_length=10)

    def to_record(self) -> ForecastRecord:
        return ForecastRecord(
            city=self.city,
            state=self.state,
            forecast_date=self.forecast_date,
            temperature=self.temperature,
            feels_like=self.feels_like,
            conditions=self.conditions,
            description=self.description,
            precipitation_chance=self.precipitation_chance,
            humidity=self.humidity,
            wind_speed=self.wind_speed,
            icon_code=self.icon_code,
        )


def forecast_to_dict(record: ForecastRecord) -> dict:
    """Consumer view of a record; absent optional fields get their defaults."""
    return {
        "date": record.forecast_date.isoformat(),
        "temperature": record.temperature,
        "feelsLike": record.feels_like if record.feels_like is not None else record.temperature,
        "conditions": record.conditions,
        "description": record.description if record.description is not None else record.conditions,
        "precipitationChance": record.precipitation_chance or 0,
        "humidity": record.humidity or 0,
        "windSpeed": record.wind_speed or 0,
        "city": record.city,
        "state": record.state,
    }


def _error_response(status_code: int, message: str, code: str, metadata: dict | None = None) -> JSONResponse:
    error = {"message": message, "code": code, "statusCode": status_code}
    if metadata:
        error["metadata"] = metadata
    return JSONResponse(status_code=status_code, content={"success": False, "error": error})


def build_limiter(server: ServerConfig) -> Limiter:
    """Per-client-address limiter; rate_limit_requests=0 disables it."""
    return Limiter(
        key_func=get_remote_address,
        default_limits=[
            f"{server.rate_limit_requests}/{server.rate_limit_window_seconds} seconds"
        ],
        enabled=server.rate_limit_requests > 0,
        headers_enabled=True,
    )


def create_app(
    config: AppConfig | None = None,
    weather_client: OpenWeatherClient | None = None,
) -> FastAPI:
    config = config or AppConfig()
    weather = weather_client
    if weather is None:
        try:
            weather = OpenWeatherClient.from_config(config.provider)
        except ExternalProviderError as e:
            # stored forecasts and saves still work; provider lookups fail per request
            logger.warning("Weather provider disabled: %s", e.message)
    started_at = time.monotonic()

    conn = connect(config.storage.db_path, config.storage.busy_timeout_seconds)
    try:
        run_migrations(conn)
    finally:
        conn.close()

    app = FastAPI(title="Weather Forecast API", version="0.1.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.server.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    limiter = build_limiter(config.server)
    app.state.limiter = limiter
    app.add_middleware(SlowAPIMiddleware)

    def _conn() -> sqlite3.Connection:
        return connect(config.storage.db_path, config.storage.busy_timeout_seconds)

    # ── Error mapping ───────────────────────────────────────────────

    @app.exception_handler(ForecasterError)
    def handle_forecaster_error(request: Request, exc: ForecasterError):
        logger.warning(
            "%s %s failed: %s (%s)", request.method, request.url.path, exc.message, exc.code
        )
        return _error_response(exc.status_code, exc.message, exc.code, exc.metadata)

    @app.exception_handler(RequestValidationError)
    def handle_validation_error(request: Request, exc: RequestValidationError):
        details = [
            {"field": ".".join(str(p) for p in err["loc"][1:]), "message": err["msg"]}
            for err in exc.errors()
        ]
        return _error_response(
            400, "Request validation failed", "VALIDATION_ERROR", {"errors": details}
        )

    @app.exception_handler(RateLimitExceeded)
    def handle_rate_limited(request: Request, exc: RateLimitExceeded):
        logger.warning("Rate limit exceeded for %s: %s", get_remote_address(request), exc.detail)
        response = _error_response(
            429, f"Rate limit exceeded: {exc.detail}", "RATE_LIMITED"
        )
        return limiter._inject_headers(response, getattr(request.state, "view_rate_limit", None))

    @app.exception_handler(Exception)
    def handle_unexpected_error(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return _error_response(500, "Internal server error", "INTERNAL_SERVER_ERROR")

    # ── Forecast endpoints ──────────────────────────────────────────

    @app.get("/api/forecast")
    def get_forecast(
        city: str = Query(min_length=1, max_length=100, pattern=NON_BLANK),
        state: str = Query(min_length=1, max_length=100, pattern=NON_BLANK),
        forecast_date: date | None = Query(default=None, alias="date"),
    ):
        """Cache-first forecast lookup. Provider results are not persisted."""
        conn = _conn()
        try:
            service = ForecastService(conn, weather, config.forecast.default_days)
            records = service.retrieve(city, state, forecast_date)
            return {"success": True, "data": [forecast_to_dict(r) for r in records]}
        finally:
            conn.close()

    @app.post("/api/forecast", status_code=201)
    def save_forecast(body: ForecastCreate):
        """Explicitly store a forecast, replacing any with the same city/state/date."""
        conn = _conn()
        try:
            service = ForecastService(conn, weather, config.forecast.default_days)
            saved = service.save(body.to_record())
            return {"success": True, "data": forecast_to_dict(saved)}
        finally:
            conn.close()

    @app.get("/api/forecast/history")
    def get_history(
        city: str = Query(min_length=1, max_length=100, pattern=NON_BLANK),
        state: str = Query(min_length=1, max_length=100, pattern=NON_BLANK),
    ):
        """All stored forecasts for a location, oldest first."""
        conn = _conn()
        try:
            service = ForecastService(conn, weather, config.forecast.default_days)
            records = service.history(city, state)
            return {"success": True, "data": [forecast_to_dict(r) for r in records]}
        finally:
            conn.close()

    # ── Health ──────────────────────────────────────────────────────

    @app.get("/health")
    @limiter.exempt
    def get_health():
        try:
            conn = _conn()
        except StoreError:
            conn = None
        try:
            status = HealthChecker(conn, weather, started_at).check()
        finally:
            if conn is not None:
                conn.close()
        return JSONResponse(
            status_code=200 if status.status == "ok" else 503,
            content=dataclasses.asdict(status),
        )

    return app
