"""Pydantic v2 configuration schema with strict validation."""

from enum import StrEnum

from pydantic import BaseModel, Field, SecretStr


class LogLevel(StrEnum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


class ProviderConfig(BaseModel):
    model_config = {"extra": "forbid"}

    name: str = "openweathermap"
    base_url: str = "https://api.openweathermap.org/data/2.5"
    api_key: SecretStr = SecretStr("")
    timeout_seconds: float = Field(default=10.0, gt=0.0)
    sample_count: int = Field(default=40, ge=1, le=40)
    country_code: str = "US"
    units: str = "metric"
    max_retries: int = Field(default=1, ge=0, le=5)
    retry_base_delay_seconds: float = Field(default=0.5, ge=0.0)


class StorageConfig(BaseModel):
    model_config = {"extra": "forbid"}

    db_path: str = "data/forecasts.db"
    busy_timeout_seconds: float = Field(default=5.0, ge=0.0)


class ForecastConfig(BaseModel):
    model_config = {"extra": "forbid"}

    default_days: int = Field(default=3, ge=1, le=5)


class ServerConfig(BaseModel):
    model_config = {"extra": "forbid"}

    host: str = "0.0.0.0"
    port: int = Field(default=8000, ge=1, le=65535)
    cors_origins: list[str] = ["*"]
    rate_limit_requests: int = Field(default=100, ge=0)  # 0 disables
    rate_limit_window_seconds: int = Field(default=900, ge=1)


class LoggingConfig(BaseModel):
    model_config = {"extra": "forbid"}

    level: LogLevel = LogLevel.INFO


class AppConfig(BaseModel):
    model_config = {"extra": "forbid"}

    provider: ProviderConfig = ProviderConfig()
    storage: StorageConfig = StorageConfig()
    forecast: ForecastConfig = ForecastConfig()
    server: ServerConfig = ServerConfig()
    logging: LoggingConfig = LoggingConfig()
