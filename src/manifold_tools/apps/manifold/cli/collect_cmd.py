"""CLI command for capturing one round of market snapshots."""

import asyncio

import typer

from manifold_tools.apps.manifold.cli._helpers import (
    ConfigOption,
    VerboseOption,
    build_client,
    build_repository,
    configure_logging,
    load_settings,
)
from manifold_tools.apps.manifold_bot.config import CollectorConfig
from manifold_tools.apps.manifold_bot.scanner import MarketScanner
from manifold_tools.apps.market_store.collector import MarketCollector
from manifold_tools.apps.market_store.repository import MarketRepository
from manifold_tools.clients.manifold.client import ManifoldClient
from manifold_tools.clients.manifold.exceptions import ManifoldAPIError


def collect(
    config: ConfigOption = None,
    verbose: VerboseOption = False,  # noqa: FBT002
) -> None:
    """Scan open markets once and store a snapshot of each."""
    loader, bot_config = load_settings(config)
    configure_logging(loader, verbose=verbose)
    try:
        written = asyncio.run(
            _collect(build_client(loader), build_repository(loader), bot_config.collector)
        )
    except ManifoldAPIError as exc:
        typer.echo(f"Error: collection failed: {exc}", err=True)
        raise typer.Exit(code=1) from exc
    typer.echo(f"Stored {written} market snapshots.")


async def _collect(
    client: ManifoldClient, repository: MarketRepository, config: CollectorConfig
) -> int:
    async with client:
        try:
            await repository.init_db()
            collector = MarketCollector(MarketScanner(client), repository, config)
            return await collector.collect()
        finally:
            await repository.close()
