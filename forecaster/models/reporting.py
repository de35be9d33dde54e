"""Operational health models."""

from dataclasses import dataclass


@dataclass(frozen=True)
class ComponentCheck:
    status: str  # "ok" or "error"
    response_time_ms: float | None = None
    message: str | None = None


@dataclass(frozen=True)
class HealthStatus:
    status: str  # "ok", "degraded" or "down"
    timestamp: str
    uptime_seconds: int
    database: ComponentCheck
    provider: ComponentCheck
