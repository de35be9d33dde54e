"""Repository for daily forecast records keyed by (city, state, forecast_date).

Writes are upserts against the table's unique constraint, so concurrent
saves of the same identity resolve to a single row (last writer wins)
without any application-level locking.
"""

import sqlite3
from datetime import date

from forecaster.errors import StoreError
from forecaster.models.common import normalize_location, utc_now_iso
from forecaster.models.forecast import ForecastRecord

_UPSERT_SQL = (
    "INSERT INTO forecasts "
    "(city, state, forecast_date, temperature, feels_like, conditions, description, "
    "precipitation_chance, humidity, wind_speed, icon_code, created_at, updated_at) "
    "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?) "
    "ON CONFLICT(city, state, forecast_date) DO UPDATE SET "
    "temperature = excluded.temperature, "
    "feels_like = excluded.feels_like, "
    "conditions = excluded.conditions, "
    "description = excluded.description, "
    "precipitation_chance = excluded.precipitation_chance, "
    "humidity = excluded.humidity, "
    "wind_speed = excluded.wind_speed, "
    "icon_code = excluded.icon_code, "
    "updated_at = excluded.updated_at "
    "RETURNING *"
)


def find_one(
    conn: sqlite3.Connection, city: str, state: str, forecast_date: date
) -> ForecastRecord | None:
    """Get the stored forecast for a location and date, or None."""
    try:
        row = conn.execute(
            "SELECT * FROM forecasts WHERE city = ? AND state = ? AND forecast_date = ?",
            (
                normalize_location(city),
                normalize_location(state),
                forecast_date.isoformat(),
            ),
        ).fetchone()
    except sqlite3.Error as e:
        raise StoreError.from_sqlite_error(e) from e
    if row is None:
        return None
    return _row_to_record(row)


def find_all_for_location(
    conn: sqlite3.Connection, city: str, state: str
) -> list[ForecastRecord]:
    """Get every stored forecast for a location, oldest date first."""
    try:
        rows = conn.execute(
            "SELECT * FROM forecasts WHERE city = ? AND state = ? "
            "ORDER BY forecast_date ASC",
            (normalize_location(city), normalize_location(state)),
        ).fetchall()
    except sqlite3.Error as e:
        raise StoreError.from_sqlite_error(e) from e
    return [_row_to_record(r) for r in rows]


def save(conn: sqlite3.Connection, record: ForecastRecord) -> ForecastRecord:
    """Insert or fully replace the forecast for the record's identity."""
    return save_batch(conn, [record])[0]


def save_batch(
    conn: sqlite3.Connection, records: list[ForecastRecord]
) -> list[ForecastRecord]:
    """Upsert every record in one transaction. Either all are saved or none.

    Returns the persisted records in input order.
    """
    if not records:
        return []

    normalized = [r.normalized() for r in records]
    now = utc_now_iso()
    saved = []
    try:
        with conn:
            for record in normalized:
                rows = conn.execute(_UPSERT_SQL, _record_to_params(record, now)).fetchall()
                saved.append(_row_to_record(rows[0]))
    except sqlite3.Error as e:
        raise StoreError.from_sqlite_error(e) from e
    return saved


def _record_to_params(record: ForecastRecord, now: str) -> tuple:
    return (
        record.city,
        record.state,
        record.forecast_date.isoformat(),
        record.temperature,
        record.feels_like,
        record.conditions,
        record.description,
        record.precipitation_chance,
        record.humidity,
        record.wind_speed,
        record.icon_code,
        now,
        now,
    )


def _row_to_record(row: sqlite3.Row) -> ForecastRecord:
    return ForecastRecord(
        id=row["id"],
        city=row["city"],
        state=row["state"],
        forecast_date=date.fromisoformat(row["forecast_date"]),
        temperature=row["temperature"],
        feels_like=row["feels_like"],
        conditions=row["conditions"],
        description=row["description"],
        precipitation_chance=row["precipitation_chance"],
        humidity=row["humidity"],
        wind_speed=row["wind_speed"],
        icon_code=row["icon_code"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )
