"""CLI command for running the live Manifold trading bot.

Wire the client, market store, strategies, risk manager and executor into
a ``TradingEngine`` and run it until SIGINT or SIGTERM.  Require
``--confirm-live`` because every approved signal places a real bet.
"""

import asyncio
import signal
from typing import Annotated

import typer

from manifold_tools.apps.manifold.cli._helpers import (
    ConfigOption,
    VerboseOption,
    build_client,
    build_repository,
    configure_logging,
    load_settings,
)
from manifold_tools.apps.manifold_bot.cache import SnapshotCache
from manifold_tools.apps.manifold_bot.config import BotConfig
from manifold_tools.apps.manifold_bot.engine import TradingEngine
from manifold_tools.apps.manifold_bot.executor import BetExecutor
from manifold_tools.apps.manifold_bot.performance import PerformanceTracker
from manifold_tools.apps.manifold_bot.portfolio import LivePortfolio
from manifold_tools.apps.manifold_bot.risk import RiskManager
from manifold_tools.apps.manifold_bot.scanner import MarketScanner
from manifold_tools.apps.manifold_bot.strategies import build_strategies
from manifold_tools.apps.market_store.collector import MarketCollector
from manifold_tools.apps.market_store.repository import MarketRepository
from manifold_tools.clients.manifold.client import ManifoldClient
from manifold_tools.clients.manifold.exceptions import ManifoldAPIError


def run(
    confirm_live: Annotated[  # noqa: FBT002
        bool, typer.Option("--confirm-live", help="Required flag to enable live betting")
    ] = False,
    config: ConfigOption = None,
    verbose: VerboseOption = False,  # noqa: FBT002
) -> None:
    """Run the live trading bot with real mana.

    Trading, snapshot collection and performance reporting run on their
    configured intervals until the process receives SIGINT or SIGTERM.
    """
    if not confirm_live:
        typer.echo("Error: --confirm-live is required for live trading.", err=True)
        typer.echo("This flag prevents accidental bets with real mana.", err=True)
        raise typer.Exit(code=1)

    loader, bot_config = load_settings(config)
    configure_logging(loader, verbose=verbose)
    client = build_client(loader)
    if not client.authenticated:
        typer.echo("Error: MANIFOLD_API_KEY is required for live trading.", err=True)
        raise typer.Exit(code=1)

    asyncio.run(_run(client, build_repository(loader), bot_config))


def build_engine(
    client: ManifoldClient, repository: MarketRepository, bot_config: BotConfig
) -> TradingEngine:
    """Assemble a ``TradingEngine`` from its collaborators.

    Args:
        client: Authenticated Manifold client.
        repository: Initialised market store.
        bot_config: Typed bot configuration.

    Returns:
        An engine ready to ``run``.

    """
    portfolio = LivePortfolio(client)
    scanner = MarketScanner(client)
    return TradingEngine(
        portfolio=portfolio,
        risk=RiskManager(bot_config.risk, portfolio),
        scanner=scanner,
        cache=SnapshotCache(bot_config.schedule.cache_ttl),
        strategies=build_strategies(bot_config),
        executor=BetExecutor(client, repository, bot_config.risk.kelly_fraction),
        repository=repository,
        collector=MarketCollector(scanner, repository, bot_config.collector),
        tracker=PerformanceTracker(repository),
        schedule=bot_config.schedule,
    )


async def _run(
    client: ManifoldClient, repository: MarketRepository, bot_config: BotConfig
) -> None:
    """Initialise the store, install signal handlers and run the engine.

    Args:
        client: Authenticated Manifold client.
        repository: Market store repository.
        bot_config: Typed bot configuration.

    """
    try:
        await repository.init_db()
        engine = build_engine(client, repository, bot_config)
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, engine.request_shutdown)

        enabled = [s.name for s in build_strategies(bot_config) if s.enabled]
        typer.echo("")
        typer.echo("=" * 60)
        typer.echo("  LIVE TRADING MODE -- real mana at risk")
        typer.echo("=" * 60)
        typer.echo(f"Strategies: {', '.join(enabled) or 'none'}")
        typer.echo(f"Scan interval: {bot_config.schedule.scan_interval}")
        typer.echo("")

        try:
            await engine.run()
        except ManifoldAPIError as exc:
            typer.echo(f"Error: startup failed: {exc}", err=True)
            raise typer.Exit(code=1) from exc
        finally:
            for sig in (signal.SIGINT, signal.SIGTERM):
                loop.remove_signal_handler(sig)
    finally:
        await client.close()
        await repository.close()
    typer.echo("Bot stopped.")
