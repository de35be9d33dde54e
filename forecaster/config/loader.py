"""YAML config loader with environment overrides and dotted-key lookup."""

import os
from pathlib import Path
from typing import Any

import yaml

from forecaster.config.schema import AppConfig

# env var -> (section, key)
ENV_OVERRIDES: dict[str, tuple[str, str]] = {
    "OPENWEATHER_API_KEY": ("provider", "api_key"),
    "FORECASTER_DB_PATH": ("storage", "db_path"),
    "FORECASTER_LOG_LEVEL": ("logging", "level"),
}


def load_config(path: str | Path | None = None) -> AppConfig:
    """Load and validate config from a YAML file.

    A missing or empty file yields the defaults. Environment variables in
    ENV_OVERRIDES win over values from the file.
    """
    raw: dict[str, Any] = {}
    if path is not None:
        path = Path(path)
        if path.exists():
            with open(path) as f:
                raw = yaml.safe_load(f) or {}

    for env_name, (section, key) in ENV_OVERRIDES.items():
        value = os.environ.get(env_name)
        if value:
            raw.setdefault(section, {})[key] = value

    return AppConfig(**raw)


def get_config_value(config: AppConfig, dotted_key: str) -> Any:
    """Get a config value by dotted key path. E.g. 'provider.timeout_seconds'."""
    parts = dotted_key.split(".")
    obj: Any = config
    for part in parts:
        if isinstance(obj, list):
            obj = obj[int(part)]
        elif hasattr(obj, part):
            obj = getattr(obj, part)
        elif isinstance(obj, dict):
            obj = obj[part]
        else:
            raise KeyError(f"Config key not found: {dotted_key}")
    return obj
