"""CLI for Eventide — run the API server and inspect configuration."""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path

import click

from eventide import __version__
from eventide.config import CONFIG_ENV_VAR, ConfigError, EventideConfig, load_config
from eventide.core.logging import configure_logging

logger = logging.getLogger(__name__)

APP_FACTORY = "eventide.api.app:create_app"


def _load_or_exit(config_path: Path | None) -> EventideConfig:
    try:
        return load_config(config_path)
    except ConfigError as exc:
        click.echo(f"Configuration error: {exc}", err=True)
        sys.exit(1)


def _configure_logging(config: EventideConfig) -> None:
    configure_logging(
        level=config.logging.level,
        fmt=config.logging.format,
        log_root=Path(config.logging.log_root) if config.logging.log_root else None,
    )


@click.group()
@click.version_option(version=__version__)
def cli() -> None:
    """Eventide — events, todos, notes and shared collaboration spaces."""


@cli.command()
@click.option("--host", default=None, help="Bind address (default: [server].host, 0.0.0.0)")
@click.option("--port", type=int, default=None, help="Port (default: [server].port, 40300)")
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Path to eventide.toml",
)
def serve(host: str | None, port: int | None, config_path: Path | None) -> None:
    """Start the Eventide API server."""
    import uvicorn

    config = _load_or_exit(config_path)
    if config_path is not None:
        # the app factory runs inside uvicorn and reloads config from here
        os.environ[CONFIG_ENV_VAR] = str(config_path)
    _configure_logging(config)

    host = host or config.server.host
    port = port or config.server.port
    click.echo(f"Starting Eventide API on {host}:{port}")
    uvicorn.run(APP_FACTORY, host=host, port=port, factory=True)


@cli.command("check-config")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Path to eventide.toml",
)
def check_config(config_path: Path | None) -> None:
    """Load the configuration and print the effective settings."""
    config = _load_or_exit(config_path)
    db = config.database
    click.echo(f"server:   {config.server.host}:{config.server.port}")
    click.echo(f"cors:     {', '.join(config.server.cors_origins) or '(none)'}")
    click.echo(
        f"database: {db.user}@{db.host}:{db.port}/{db.name} "
        f"(pool {db.min_pool_size}-{db.max_pool_size})"
    )
    click.echo(f"identity: {config.identity.url}")
    click.echo(f"logging:  {config.logging.level} ({config.logging.format})")
    click.echo("Configuration OK")
