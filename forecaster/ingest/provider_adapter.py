"""Provider adapter: collapses 3-hour provider samples into daily forecast records.

The provider payload is decoded against an explicit schema first; anything
that does not match fails closed with InvalidProviderResponse. Every function
here is pure, so the same samples always produce the same records.
"""

import math
from datetime import UTC, date, datetime
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from forecaster.errors import InvalidProviderResponse
from forecaster.models.common import normalize_location
from forecaster.models.forecast import ForecastRecord, ProviderSample, WeatherCondition

NOON_HOUR = 12


class _Main(BaseModel):
    temp: float
    feels_like: float
    humidity: int = Field(ge=0, le=100)


class _Weather(BaseModel):
    main: str
    description: str
    icon: str


class _Wind(BaseModel):
    speed: float = Field(ge=0.0)


class _Item(BaseModel):
    dt: int
    main: _Main
    weather: list[_Weather] = Field(min_length=1)
    wind: _Wind
    pop: float = Field(ge=0.0, le=1.0)


class _Payload(BaseModel):
    items: list[_Item] = Field(alias="list", min_length=1)


def decode_samples(payload: Any) -> list[ProviderSample]:
    """Validate a raw provider payload and convert it to ProviderSamples."""
    if not isinstance(payload, dict):
        raise InvalidProviderResponse("Invalid API response: expected a JSON object")
    if not payload.get("list"):
        raise InvalidProviderResponse("Invalid API response: missing or empty forecast list")
    try:
        decoded = _Payload.model_validate(payload)
    except ValidationError as e:
        raise InvalidProviderResponse(
            f"Invalid API response: {e.error_count()} schema error(s): {e.errors()[0]['msg']}"
        ) from e

    return [
        ProviderSample(
            timestamp=datetime.fromtimestamp(item.dt, tz=UTC),
            temperature=item.main.temp,
            feels_like=item.main.feels_like,
            humidity=item.main.humidity,
            wind_speed=item.wind.speed,
            precipitation_probability=item.pop,
            conditions=tuple(
                WeatherCondition(main=w.main, description=w.description, icon=w.icon)
                for w in item.weather
            ),
        )
        for item in decoded.items
    ]


def select_noon_sample(samples: list[ProviderSample]) -> ProviderSample:
    """Pick the sample whose UTC hour is closest to noon.

    Equally close samples keep the first one encountered.
    """
    closest = samples[0]
    for current in samples[1:]:
        if abs(current.timestamp.hour - NOON_HOUR) < abs(closest.timestamp.hour - NOON_HOUR):
            closest = current
    return closest


def to_daily_records(
    samples: list[ProviderSample], city: str, state: str, days: int
) -> list[ForecastRecord]:
    """One record per UTC calendar day, oldest first, at most `days` of them."""
    by_date: dict[date, list[ProviderSample]] = {}
    for sample in samples:
        by_date.setdefault(sample.timestamp.date(), []).append(sample)

    records = []
    for day in sorted(by_date)[: max(days, 0)]:
        noon = select_noon_sample(by_date[day])
        condition = noon.conditions[0]
        records.append(
            ForecastRecord(
                city=normalize_location(city),
                state=normalize_location(state),
                forecast_date=day,
                temperature=_round1(noon.temperature),
                feels_like=_round1(noon.feels_like),
                conditions=condition.main,
                description=condition.description,
                precipitation_chance=_percent(noon.precipitation_probability),
                humidity=noon.humidity,
                wind_speed=_round1(noon.wind_speed),
                icon_code=condition.icon,
            )
        )
    return records


def adapt(payload: Any, city: str, state: str, days: int) -> list[ForecastRecord]:
    return to_daily_records(decode_samples(payload), city, state, days)


def _round1(value: float) -> float:
    # half up, not half to even
    return math.floor(value * 10 + 0.5) / 10


def _percent(fraction: float) -> int:
    return int(math.floor(fraction * 100 + 0.5))
