"""Index on forecast_date for date-range scans across locations."""

import sqlite3


def up(conn: sqlite3.Connection) -> None:
    conn.execute(
        "CREATE INDEX IF NOT EXISTS idx_forecasts_forecast_date "
        "ON forecasts(forecast_date)"
    )
