"""Initial schema: the forecasts table keyed by (city, state, forecast_date)."""

import sqlite3

DDL = [
    """
    CREATE TABLE IF NOT EXISTS forecasts (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        city TEXT NOT NULL CHECK (length(city) BETWEEN 1 AND 100),
        state TEXT NOT NULL CHECK (length(state) BETWEEN 1 AND 100),
        forecast_date TEXT NOT NULL,
        temperature REAL NOT NULL,
        feels_like REAL,
        conditions TEXT NOT NULL CHECK (length(conditions) BETWEEN 1 AND 100),
        description TEXT,
        precipitation_chance REAL
            CHECK (precipitation_chance IS NULL OR precipitation_chance BETWEEN 0 AND 100),
        humidity INTEGER
            CHECK (humidity IS NULL OR humidity BETWEEN 0 AND 100),
        wind_speed REAL
            CHECK (wind_speed IS NULL OR wind_speed >= 0),
        icon_code TEXT,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL,
        CONSTRAINT forecasts_city_state_forecast_date_unique
            UNIQUE (city, state, forecast_date)
    )
    """,
]


def up(conn: sqlite3.Connection) -> None:
    for stmt in DDL:
        conn.execute(stmt)
