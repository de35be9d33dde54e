"""Common helpers shared across models."""

from datetime import UTC, datetime


def utc_now() -> datetime:
    return datetime.now(UTC)


def utc_now_iso() -> str:
    return utc_now().isoformat()


def normalize_location(value: str) -> str:
    """Location identity is case-insensitive and ignores surrounding whitespace."""
    return value.strip().lower()
