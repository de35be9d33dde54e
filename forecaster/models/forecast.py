"""Forecast data models."""

from dataclasses import dataclass, replace
from datetime import date, datetime

from forecaster.models.common import normalize_location


@dataclass(frozen=True)
class WeatherCondition:
    main: str
    description: str
    icon: str


@dataclass(frozen=True)
class ProviderSample:
    """One 3-hour observation from the provider."""

    timestamp: datetime  # tz-aware, UTC
    temperature: float
    feels_like: float
    humidity: int
    wind_speed: float
    precipitation_probability: float  # 0.0-1.0
    conditions: tuple[WeatherCondition, ...]


@dataclass(frozen=True)
class ForecastRecord:
    city: str
    state: str
    forecast_date: date
    temperature: float
    conditions: str
    feels_like: float | None = None
    description: str | None = None
    precipitation_chance: float | None = None
    humidity: int | None = None
    wind_speed: float | None = None
    icon_code: str | None = None
    id: int | None = None
    created_at: str | None = None
    updated_at: str | None = None

    @property
    def identity(self) -> tuple[str, str, date]:
        return (self.city, self.state, self.forecast_date)

    def normalized(self) -> "ForecastRecord":
        return replace(
            self,
            city=normalize_location(self.city),
            state=normalize_location(self.state),
        )
