"""Health checker: DB connectivity and provider reachability."""

import logging
import sqlite3
import time

from forecaster.ingest.openweather_client import OpenWeatherClient
from forecaster.models.common import utc_now_iso
from forecaster.models.reporting import ComponentCheck, HealthStatus

logger = logging.getLogger(__name__)


class HealthChecker:
    def __init__(
        self,
        conn: sqlite3.Connection | None,
        weather_client: OpenWeatherClient | None = None,
        started_at: float | None = None,
    ):
        self.conn = conn
        self.weather = weather_client
        self.started_at = started_at if started_at is not None else time.monotonic()

    def check(self) -> HealthStatus:
        """Database failure means down; provider failure only degrades."""
        db = self._check_db()
        provider = self._check_provider()

        if db.status != "ok":
            status = "down"
        elif provider.status != "ok":
            status = "degraded"
        else:
            status = "ok"

        logger.info(
            "Health check: %s (database=%s, provider=%s)",
            status, db.status, provider.status,
        )
        return HealthStatus(
            status=status,
            timestamp=utc_now_iso(),
            uptime_seconds=int(time.monotonic() - self.started_at),
            database=db,
            provider=provider,
        )

    def _check_db(self) -> ComponentCheck:
        if self.conn is None:
            return ComponentCheck(status="error", message="Database unavailable")
        start = time.monotonic()
        try:
            self.conn.execute("SELECT 1").fetchone()
        except sqlite3.Error as e:
            logger.error("Database health check failed: %s", e)
            return ComponentCheck(
                status="error", response_time_ms=_elapsed_ms(start), message=str(e)
            )
        return ComponentCheck(status="ok", response_time_ms=_elapsed_ms(start))

    def _check_provider(self) -> ComponentCheck:
        if self.weather is None:
            return ComponentCheck(status="error", message="Weather client not configured")
        start = time.monotonic()
        if self.weather.ping():
            return ComponentCheck(status="ok", response_time_ms=_elapsed_ms(start))
        return ComponentCheck(
            status="error",
            response_time_ms=_elapsed_ms(start),
            message="Weather provider unreachable",
        )


def _elapsed_ms(start: float) -> float:
    return round((time.monotonic() - start) * 1000, 1)
