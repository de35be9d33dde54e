"""Forecast service: cache-first retrieval and explicit saves."""

import logging
import sqlite3
from datetime import date

from forecaster.errors import ExternalProviderError
from forecaster.ingest.openweather_client import PROVIDER_NAME, OpenWeatherClient
from forecaster.models.common import normalize_location
from forecaster.models.forecast import ForecastRecord
from forecaster.storage import forecast_repo

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_DAYS = 3


class ForecastService:
    """Answers forecast queries from the store first, the provider second.

    Provider results are returned to the caller but never written to the
    store; persisting is always an explicit save().
    """

    def __init__(
        self,
        conn: sqlite3.Connection,
        weather_client: OpenWeatherClient | None,
        default_days: int = DEFAULT_WINDOW_DAYS,
    ):
        self.conn = conn
        self.weather = weather_client
        self.default_days = default_days

    def retrieve(
        self, city: str, state: str, forecast_date: date | None = None
    ) -> list[ForecastRecord]:
        """Get forecasts for a location.

        With a date: the stored record if there is one, otherwise the matching
        day from the provider window, otherwise an empty list. Without a date:
        the provider window (up to default_days records).
        """
        city = normalize_location(city)
        state = normalize_location(state)

        if forecast_date is not None:
            cached = forecast_repo.find_one(self.conn, city, state, forecast_date)
            if cached is not None:
                logger.info(
                    "Cache HIT for %s, %s on %s (id=%s)",
                    city, state, forecast_date, cached.id,
                )
                return [cached]
            logger.info("Cache MISS for %s, %s on %s", city, state, forecast_date)

        logger.info(
            "Fetching forecast from provider for %s, %s (reason=%s)",
            city, state, "cache_miss" if forecast_date else "no_date_specified",
        )
        if self.weather is None:
            raise ExternalProviderError("Weather client not configured", PROVIDER_NAME)
        window = self.weather.get_forecast(city, state, self.default_days)
        logger.info("Provider returned %d days for %s, %s", len(window), city, state)

        if forecast_date is None:
            return window

        for record in window:
            if record.forecast_date == forecast_date:
                return [record]

        logger.warning(
            "Requested date %s not in provider window for %s, %s (available: %s)",
            forecast_date, city, state,
            ", ".join(r.forecast_date.isoformat() for r in window) or "none",
        )
        return []

    def save(self, record: ForecastRecord) -> ForecastRecord:
        """Persist a record, replacing any stored one with the same identity."""
        saved = forecast_repo.save(self.conn, record.normalized())
        logger.info(
            "Saved forecast for %s, %s on %s (id=%s)",
            saved.city, saved.state, saved.forecast_date, saved.id,
        )
        return saved

    def save_many(self, records: list[ForecastRecord]) -> list[ForecastRecord]:
        """Persist several records atomically."""
        saved = forecast_repo.save_batch(self.conn, [r.normalized() for r in records])
        logger.info("Saved %d forecasts in one batch", len(saved))
        return saved

    def history(self, city: str, state: str) -> list[ForecastRecord]:
        return forecast_repo.find_all_for_location(
            self.conn, normalize_location(city), normalize_location(state)
        )
