from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, List, Optional

import typer
from dotenv import load_dotenv

from drivers import ComposedDriver, available_drivers
from drivers.errors import ConfigurationError, ILSError, UnsupportedOperation
from io_utils.config import Settings, TomlConfigLoader, load_config
from io_utils.logs import setup_logging

# Environment variables from .env seed the settings defaults
load_dotenv()

logger = logging.getLogger(__name__)

app = typer.Typer(help="Query several library systems through one composed driver")

_CONFIG_OPTION = typer.Option(
    None,
    "--config",
    "-c",
    exists=True,
    dir_okay=False,
    file_okay=True,
    help="Composed driver config file (TOML)",
)
_CONFIG_DIR_OPTION = typer.Option(
    None,
    "--config-dir",
    "-d",
    exists=True,
    file_okay=False,
    dir_okay=True,
    help="Directory holding one <driver>.toml per backend",
)


def build_driver(config: Optional[Path], config_dir: Optional[Path]) -> ComposedDriver:
    """Create and initialize a composed driver from config files.

    Missing options fall back to ``ILS_COMPOSER_CONFIG`` and
    ``ILS_COMPOSER_CONFIG_DIR``.
    """
    settings = Settings.from_env()
    composed = ComposedDriver(TomlConfigLoader(config_dir or settings.config_dir))
    composed.set_config(load_config(config or settings.config_file))
    composed.init()
    return composed


def parse_argument(value: str) -> Any:
    """Decode a command line argument as JSON, falling back to the raw string."""
    try:
        return json.loads(value)
    except json.JSONDecodeError:
        return value


@app.callback()
def main(
    log_level: Optional[str] = typer.Option(None, "--log-level", help="DEBUG, INFO, WARNING, ERROR"),
    json_logs: bool = typer.Option(False, "--json-logs", help="Emit JSON log lines"),
    log_file: Optional[str] = typer.Option(None, "--log-file", help="Also log to this file"),
) -> None:
    settings = Settings.from_env()
    if log_level:
        settings.log_level = log_level.upper()
    try:
        settings.validate()
    except ConfigurationError as exc:
        typer.echo(f"❌ {exc.message}", err=True)
        raise typer.Exit(1)
    setup_logging(
        level=settings.log_level,
        json_format=json_logs or settings.log_json,
        log_file=log_file or settings.log_file,
    )


@app.command()
def drivers() -> None:
    """List registered driver types."""
    for name in available_drivers():
        typer.echo(name)


@app.command()
def check(
    config: Optional[Path] = _CONFIG_OPTION,
    config_dir: Optional[Path] = _CONFIG_DIR_OPTION,
) -> None:
    """Validate the configuration and initialize every configured driver."""
    try:
        composed = build_driver(config, config_dir)
    except ConfigurationError as exc:
        typer.echo(f"❌ {exc.message}", err=True)
        raise typer.Exit(1)

    failed = False
    typer.echo(f"Main driver: {composed.main_driver}")
    for name, driver_type in composed.drivers.items():
        if not composed.driver_manager.has(driver_type):
            typer.echo(f"❌ {name} ({driver_type}): unknown driver type")
            failed = True
            continue
        try:
            driver = composed.get_driver(name)
        except ILSError as exc:
            typer.echo(f"❌ {name} ({driver_type}): {exc.message}")
            failed = True
            continue
        if driver is None:
            typer.echo(f"❌ {name} ({driver_type}): unavailable")
            failed = True
        else:
            typer.echo(f"✅ {name} ({driver_type})")
    if failed:
        raise typer.Exit(1)


@app.command()
def call(
    method: str = typer.Argument(..., help="Operation name, e.g. get_holding"),
    args: Optional[List[str]] = typer.Argument(None, help="Arguments (JSON or plain strings)"),
    config: Optional[Path] = _CONFIG_OPTION,
    config_dir: Optional[Path] = _CONFIG_DIR_OPTION,
) -> None:
    """Invoke one operation and print its result as JSON."""
    params = [parse_argument(a) for a in args or []]
    try:
        composed = build_driver(config, config_dir)
        result = composed.call(method, *params)
    except ConfigurationError as exc:
        typer.echo(f"❌ {exc.message}", err=True)
        raise typer.Exit(1)
    except UnsupportedOperation as exc:
        typer.echo(f"❌ {exc.message}", err=True)
        raise typer.Exit(2)
    typer.echo(json.dumps(result, indent=2, default=str))


if __name__ == "__main__":
    app()
