"""Tests for the health checker."""

import sqlite3
from pathlib import Path
from unittest.mock import MagicMock

from forecaster.ingest.openweather_client import OpenWeatherClient
from forecaster.reporting.health_checker import HealthChecker
from forecaster.storage.database import connect


def _weather(reachable: bool = True) -> MagicMock:
    mock = MagicMock(spec=OpenWeatherClient)
    mock.ping.return_value = reachable
    return mock


class TestHealthChecker:
    def test_all_ok(self, db: sqlite3.Connection):
        status = HealthChecker(db, _weather()).check()
        assert status.status == "ok"
        assert status.database.status == "ok"
        assert status.database.response_time_ms is not None
        assert status.provider.status == "ok"
        assert status.uptime_seconds >= 0
        assert status.timestamp.endswith("+00:00")

    def test_provider_unreachable_degrades(self, db: sqlite3.Connection):
        status = HealthChecker(db, _weather(reachable=False)).check()
        assert status.status == "degraded"
        assert status.provider.message == "Weather provider unreachable"

    def test_provider_not_configured_degrades(self, db: sqlite3.Connection):
        status = HealthChecker(db, None).check()
        assert status.status == "degraded"
        assert status.provider.status == "error"

    def test_closed_database_is_down(self, tmp_path: Path):
        conn = connect(tmp_path / "health.db")
        conn.close()
        status = HealthChecker(conn, _weather()).check()
        assert status.status == "down"
        assert status.database.status == "error"
        assert status.database.message

    def test_missing_connection_is_down(self):
        status = HealthChecker(None, _weather(reachable=False)).check()
        assert status.status == "down"
        assert status.database.message == "Database unavailable"

    def test_uptime_from_start(self, db: sqlite3.Connection, monkeypatch):
        monkeypatch.setattr(
            "forecaster.reporting.health_checker.time.monotonic", lambda: 1000.0
        )
        status = HealthChecker(db, _weather(), started_at=880.0).check()
        assert status.uptime_seconds == 120
