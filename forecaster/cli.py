"""CLI entry point for the forecast service."""

import argparse
import logging
from datetime import date

from forecaster.config.loader import get_config_value, load_config
from forecaster.config.schema import AppConfig
from forecaster.errors import ForecasterError
from forecaster.ingest.openweather_client import OpenWeatherClient
from forecaster.models.forecast import ForecastRecord
from forecaster.reporting.health_checker import HealthChecker
from forecaster.service.forecast_service import ForecastService
from forecaster.storage.database import connect, run_migrations

DEFAULT_CONFIG = "config/forecaster.yaml"


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="forecaster",
        description="Cache-first weather forecast service",
    )
    parser.add_argument(
        "--config", default=DEFAULT_CONFIG, help="Config YAML path"
    )
    parser.add_argument("--db", default=None, help="SQLite DB path (overrides config)")

    sub = parser.add_subparsers(dest="command")

    # get
    get_p = sub.add_parser("get", help="Cache-first forecast lookup")
    _add_location_args(get_p)
    get_p.add_argument("--date", type=date.fromisoformat, help="YYYY-MM-DD")

    # fetch
    fetch_p = sub.add_parser("fetch", help="Fetch a forecast window from the provider")
    _add_location_args(fetch_p)
    fetch_p.add_argument("--days", type=int, default=None, help="Days to fetch")
    fetch_p.add_argument(
        "--save", action="store_true", help="Store the fetched window in one batch"
    )

    # save
    save_p = sub.add_parser("save", help="Store a forecast record")
    _add_location_args(save_p)
    save_p.add_argument("--date", type=date.fromisoformat, required=True, help="YYYY-MM-DD")
    save_p.add_argument("--temperature", type=float, required=True, help="Celsius")
    save_p.add_argument("--conditions", required=True, help="Short label, e.g. Clear")
    save_p.add_argument("--feels-like", type=float, default=None)
    save_p.add_argument("--description", default=None)
    save_p.add_argument("--precipitation-chance", type=float, default=None, help="0-100")
    save_p.add_argument("--humidity", type=int, default=None, help="0-100")
    save_p.add_argument("--wind-speed", type=float, default=None)

    # history
    history_p = sub.add_parser("history", help="List stored forecasts for a location")
    _add_location_args(history_p)

    # migrate / health / serve
    sub.add_parser("migrate", help="Apply pending database migrations")
    sub.add_parser("health", help="Run health checks")
    serve_p = sub.add_parser("serve", help="Run the HTTP API")
    serve_p.add_argument("--host", default=None)
    serve_p.add_argument("--port", type=int, default=None)

    # config show / config get
    config_p = sub.add_parser("config", help="Config operations")
    config_sub = config_p.add_subparsers(dest="config_command")
    config_sub.add_parser("show", help="Display current config")
    cget_p = config_sub.add_parser("get", help="Get a config value")
    cget_p.add_argument("key", help="Dotted key, e.g. provider.timeout_seconds")

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    config = load_config(args.config)
    if args.db:
        config = config.model_copy(
            update={"storage": config.storage.model_copy(update={"db_path": args.db})}
        )

    logging.basicConfig(
        level=config.logging.level.value,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        if args.command == "get":
            return _cmd_get(config, args)
        elif args.command == "fetch":
            return _cmd_fetch(config, args)
        elif args.command == "save":
            return _cmd_save(config, args)
        elif args.command == "history":
            return _cmd_history(config, args)
        elif args.command == "migrate":
            return _cmd_migrate(config)
        elif args.command == "health":
            return _cmd_health(config)
        elif args.command == "serve":
            return _cmd_serve(config, args)
        elif args.command == "config":
            return _cmd_config(config, args)
        else:
            parser.print_help()
            return 1
    except ForecasterError as e:
        print(f"Error [{e.code}]: {e.message}")
        return 1


def _add_location_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--city", required=True)
    p.add_argument("--state", required=True)


def _open_service(config: AppConfig, with_provider: bool = True):
    conn = connect(config.storage.db_path, config.storage.busy_timeout_seconds)
    run_migrations(conn)
    weather = OpenWeatherClient.from_config(config.provider) if with_provider else None
    return conn, ForecastService(conn, weather, config.forecast.default_days)


def _print_records(records: list[ForecastRecord]) -> None:
    if not records:
        print("No forecasts found")
        return
    for r in records:
        line = f"{r.forecast_date} {r.city}, {r.state}: {r.temperature:.1f}C {r.conditions}"
        if r.precipitation_chance is not None:
            line += f" | precip {r.precipitation_chance:.0f}%"
        if r.humidity is not None:
            line += f" | humidity {r.humidity}%"
        if r.wind_speed is not None:
            line += f" | wind {r.wind_speed:.1f}"
        print(line)


def _cmd_get(config: AppConfig, args) -> int:
    conn, service = _open_service(config)
    try:
        _print_records(service.retrieve(args.city, args.state, args.date))
    finally:
        conn.close()
    return 0


def _cmd_fetch(config: AppConfig, args) -> int:
    conn, service = _open_service(config)
    try:
        days = args.days if args.days is not None else config.forecast.default_days
        records = service.weather.get_forecast(args.city, args.state, days)
        _print_records(records)
        if args.save and records:
            saved = service.save_many(records)
            print(f"Saved {len(saved)} forecasts")
    finally:
        conn.close()
    return 0


def _cmd_save(config: AppConfig, args) -> int:
    conn, service = _open_service(config, with_provider=False)
    try:
        saved = service.save(
            ForecastRecord(
                city=args.city,
                state=args.state,
                forecast_date=args.date,
                temperature=args.temperature,
                conditions=args.conditions,
                feels_like=args.feels_like,
                description=args.description,
                precipitation_chance=args.precipitation_chance,
                humidity=args.humidity,
                wind_speed=args.wind_speed,
            )
        )
        print(f"Saved forecast id={saved.id} for {saved.city}, {saved.state} on {saved.forecast_date}")
    finally:
        conn.close()
    return 0


def _cmd_history(config: AppConfig, args) -> int:
    conn, service = _open_service(config, with_provider=False)
    try:
        _print_records(service.history(args.city, args.state))
    finally:
        conn.close()
    return 0


def _cmd_migrate(config: AppConfig) -> int:
    conn = connect(config.storage.db_path, config.storage.busy_timeout_seconds)
    try:
        applied = run_migrations(conn)
    finally:
        conn.close()
    if applied:
        print(f"Applied: {', '.join(applied)}")
    else:
        print("Database is up to date")
    return 0


def _cmd_health(config: AppConfig) -> int:
    conn = connect(config.storage.db_path, config.storage.busy_timeout_seconds)
    try:
        try:
            weather = OpenWeatherClient.from_config(config.provider)
        except ForecasterError:
            weather = None
        status = HealthChecker(conn, weather).check()
    finally:
        conn.close()

    print(f"Status: {status.status}")
    print(f"DB: {'OK' if status.database.status == 'ok' else 'FAIL'}")
    print(f"Provider: {'OK' if status.provider.status == 'ok' else 'FAIL'}")
    for name, check in (("DB", status.database), ("Provider", status.provider)):
        if check.message:
            print(f"  {name}: {check.message}")
    return 0 if status.status == "ok" else 1


def _cmd_serve(config: AppConfig, args) -> int:
    import uvicorn

    from forecaster.api import create_app

    app = create_app(config)
    uvicorn.run(
        app,
        host=args.host or config.server.host,
        port=args.port or config.server.port,
    )
    return 0


def _cmd_config(config: AppConfig, args) -> int:
    if args.config_command == "show":
        print(config.model_dump_json(indent=2))
        return 0
    elif args.config_command == "get":
        try:
            print(get_config_value(config, args.key))
            return 0
        except (KeyError, IndexError, ValueError) as e:
            print(f"Error: {e}")
            return 1
    else:
        print("Use: config show | config get key")
        return 1
