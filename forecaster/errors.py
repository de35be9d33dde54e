"""Typed errors raised by the provider client and the forecast store."""

import sqlite3
from enum import StrEnum
from typing import Any


class ForecasterError(Exception):
    """Base class for all errors the service reports to callers."""

    def __init__(
        self,
        message: str,
        code: str,
        status_code: int = 500,
        metadata: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code
        self.metadata = metadata


class ExternalProviderError(ForecasterError):
    """Raised when the weather provider call fails (timeout, non-2xx, network)."""

    def __init__(
        self,
        message: str,
        provider: str,
        status_code: int | None = None,
        response_body: str | None = None,
    ):
        super().__init__(
            message,
            "EXTERNAL_API_ERROR",
            502,
            {"provider": provider, "provider_status": status_code},
        )
        self.provider = provider
        self.provider_status = status_code
        self.response_body = response_body


class InvalidProviderResponse(ExternalProviderError):
    """Raised when a provider payload does not match the expected schema."""

    def __init__(self, message: str, provider: str = "openweathermap", response_body: str | None = None):
        super().__init__(message, provider, None, response_body)
        self.code = "INVALID_PROVIDER_RESPONSE"


class StoreErrorKind(StrEnum):
    UNIQUE_VIOLATION = "unique_violation"
    CONNECTION = "connection"
    QUERY = "query"


_CONNECTION_MARKERS = (
    "unable to open",
    "database is locked",
    "database is busy",
    "disk i/o",
    "closed database",
    "not a database",
    "readonly database",
)


class StoreError(ForecasterError):
    """Raised when a persistence operation fails."""

    def __init__(
        self,
        message: str,
        kind: StoreErrorKind = StoreErrorKind.QUERY,
        original_error: str | None = None,
    ):
        super().__init__(
            message,
            f"DATABASE_{kind.name}",
            500,
            {"original_error": original_error} if original_error else None,
        )
        self.kind = kind
        self.original_error = original_error

    @classmethod
    def from_sqlite_error(cls, error: sqlite3.Error) -> "StoreError":
        """Classify a sqlite3 exception into a StoreError."""
        text = str(error)
        lowered = text.lower()
        if isinstance(error, sqlite3.IntegrityError) and "unique" in lowered:
            return cls(
                "A record with these values already exists",
                StoreErrorKind.UNIQUE_VIOLATION,
                text,
            )
        if isinstance(error, (sqlite3.OperationalError, sqlite3.ProgrammingError)) and any(
            marker in lowered for marker in _CONNECTION_MARKERS
        ):
            return cls("Unable to connect to database", StoreErrorKind.CONNECTION, text)
        return cls("Database operation failed", StoreErrorKind.QUERY, text)
