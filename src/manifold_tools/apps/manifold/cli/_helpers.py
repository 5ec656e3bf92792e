"""Shared helpers for Manifold CLI commands.

Centralise the pieces every command needs: loading settings, configuring
logging, and building the API client and market store from configuration.
"""

import logging
from pathlib import Path
from typing import Annotated

import typer

from manifold_tools.apps.manifold_bot.config import BotConfig, load_bot_config
from manifold_tools.apps.market_store.repository import MarketRepository
from manifold_tools.clients.manifold._constants import DEFAULT_BASE_URL
from manifold_tools.clients.manifold.client import ManifoldClient
from manifold_tools.core.config import ConfigError, ConfigLoader

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"
_DEFAULT_DB_URL = "sqlite+aiosqlite:///data/manifold_bot.db"

ConfigOption = Annotated[
    Path | None, typer.Option("--config", help="YAML file layered over the default settings")
]
VerboseOption = Annotated[bool, typer.Option("--verbose", "-v", help="Enable debug logging")]


def load_settings(config_file: Path | None) -> tuple[ConfigLoader, BotConfig]:
    """Load raw and typed settings, exiting with an error on invalid config.

    Args:
        config_file: Optional YAML file layered over the packaged defaults.

    Returns:
        The loader and the typed bot configuration.

    """
    try:
        loader = ConfigLoader(config_file=config_file)
        return loader, load_bot_config(loader)
    except ConfigError as exc:
        typer.echo(f"Error: invalid configuration: {exc}", err=True)
        raise typer.Exit(code=1) from exc


def configure_logging(loader: ConfigLoader, *, verbose: bool) -> None:
    """Configure root logging from ``--verbose`` or ``general.log_level``.

    Args:
        loader: Loaded settings.
        verbose: Force DEBUG level when set.

    """
    if verbose:
        level = logging.DEBUG
    else:
        name = str(loader.get("general.log_level", "info")).upper()
        level = logging.getLevelNamesMapping().get(name, logging.INFO)
    logging.basicConfig(level=level, format=LOG_FORMAT)


def build_client(loader: ConfigLoader) -> ManifoldClient:
    """Build a Manifold client from the ``manifold`` settings section."""
    return ManifoldClient(
        api_key=str(loader.get("manifold.api_key", "") or ""),
        base_url=str(loader.get("manifold.base_url", DEFAULT_BASE_URL)),
        timeout=float(loader.get("manifold.timeout", 30)),
    )


def build_repository(loader: ConfigLoader) -> MarketRepository:
    """Build the market store repository from ``general.db_url``."""
    return MarketRepository(str(loader.get("general.db_url", _DEFAULT_DB_URL)))
