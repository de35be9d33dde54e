"""Shared test fixtures."""

import json
import sqlite3
from datetime import date
from pathlib import Path

import pytest
import yaml

from forecaster.config.schema import AppConfig
from forecaster.models.forecast import ForecastRecord
from forecaster.storage.database import connect, run_migrations


@pytest.fixture
def db(tmp_path: Path) -> sqlite3.Connection:
    """A migrated SQLite database in a temp directory."""
    conn = connect(tmp_path / "test.db")
    run_migrations(conn)
    yield conn
    conn.close()


@pytest.fixture
def fixtures_dir() -> Path:
    """Return the path to the test fixtures directory."""
    return Path(__file__).parent / "fixtures"


@pytest.fixture
def fresno_payload(fixtures_dir: Path) -> dict:
    """OpenWeatherMap response for Fresno: 2025-11-25 through a partial 2025-11-28."""
    with open(fixtures_dir / "openweather_forecast_fresno.json") as f:
        return json.load(f)


@pytest.fixture
def fresno_record() -> ForecastRecord:
    return ForecastRecord(
        city="fresno",
        state="california",
        forecast_date=date(2025, 11, 25),
        temperature=18.5,
        feels_like=17.2,
        conditions="Clear",
        description="clear sky",
        precipitation_chance=10,
        humidity=45,
        wind_speed=12.5,
        icon_code="01d",
    )


@pytest.fixture
def app_config(tmp_path: Path) -> AppConfig:
    """Config pointing at a temp database with a dummy API key."""
    return AppConfig(
        provider={"api_key": "test-key", "base_url": "https://test-owm.example.com"},
        storage={"db_path": str(tmp_path / "api.db")},
        server={"rate_limit_requests": 0},
    )


@pytest.fixture
def config_yaml_path(tmp_path: Path) -> Path:
    """Write a minimal valid config YAML and return its path."""
    data = {
        "provider": {"timeout_seconds": 5.0, "max_retries": 0},
        "storage": {"db_path": str(tmp_path / "from_yaml.db")},
        "forecast": {"default_days": 2},
    }
    path = tmp_path / "test_config.yaml"
    with open(path, "w") as f:
        yaml.dump(data, f)
    return path
