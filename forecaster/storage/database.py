"""SQLite connection manager with WAL mode and migration support."""

import importlib
import logging
import sqlite3
from pathlib import Path

from forecaster.errors import StoreError

MIGRATIONS_PACKAGE = "forecaster.storage.migrations"

logger = logging.getLogger(__name__)


def connect(db_path: str | Path, timeout: float = 5.0) -> sqlite3.Connection:
    """Open a SQLite connection with WAL mode and foreign keys enabled.

    `timeout` is how long a writer waits on a locked database before failing.
    The connection may be handed across threads but must not be shared by
    concurrent requests.
    """
    db_path = Path(db_path)
    try:
        if str(db_path) != ":memory:":
            db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(str(db_path), timeout=timeout, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA foreign_keys=ON")
    except sqlite3.Error as e:
        raise StoreError.from_sqlite_error(e) from e
    except OSError as e:
        raise StoreError.from_sqlite_error(
            sqlite3.OperationalError(f"unable to open database file: {e}")
        ) from e
    return conn


def run_migrations(conn: sqlite3.Connection) -> list[str]:
    """Run all pending migrations in order. Returns list of applied migration names."""
    try:
        conn.execute(
            "CREATE TABLE IF NOT EXISTS schema_versions ("
            "  version TEXT PRIMARY KEY,"
            "  applied_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP"
            ")"
        )
        conn.commit()

        applied = {
            row[0]
            for row in conn.execute("SELECT version FROM schema_versions").fetchall()
        }

        newly_applied = []
        for name in _discover_migrations():
            if name not in applied:
                mod = importlib.import_module(f"{MIGRATIONS_PACKAGE}.{name}")
                mod.up(conn)
                conn.execute(
                    "INSERT INTO schema_versions (version) VALUES (?)", (name,)
                )
                conn.commit()
                newly_applied.append(name)
                logger.info("Applied migration %s", name)
    except sqlite3.Error as e:
        raise StoreError.from_sqlite_error(e) from e

    return newly_applied


def _discover_migrations() -> list[str]:
    """Discover migration modules by naming convention v###_*.py."""
    migrations_dir = Path(__file__).parent / "migrations"
    results = []
    for p in migrations_dir.glob("v[0-9]*_*.py"):
        if p.stem != "__init__":
            results.append(p.stem)
    return sorted(results)
