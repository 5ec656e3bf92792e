"""CLI command for printing the performance report of the bet ledger.

Summarise placed bets, realised profit, win rate and drawdown from the
market store, overall and per strategy.
"""

import asyncio

import typer

from manifold_tools.apps.manifold.cli._helpers import (
    ConfigOption,
    VerboseOption,
    build_repository,
    configure_logging,
    load_settings,
)
from manifold_tools.apps.manifold_bot.models import PerformanceReport
from manifold_tools.apps.manifold_bot.performance import PerformanceTracker
from manifold_tools.apps.market_store.repository import MarketRepository


def report(
    config: ConfigOption = None,
    verbose: VerboseOption = False,  # noqa: FBT002
) -> None:
    """Print performance statistics from the bet ledger."""
    loader, _ = load_settings(config)
    configure_logging(loader, verbose=verbose)
    _display_report(asyncio.run(_report(build_repository(loader))))


async def _report(repository: MarketRepository) -> PerformanceReport:
    try:
        await repository.init_db()
        return await PerformanceTracker(repository).generate()
    finally:
        await repository.close()


def _display_report(result: PerformanceReport) -> None:
    """Print a performance report as a summary block and a strategy table.

    Args:
        result: Report built from the ledger.

    """
    typer.echo("\n--- Performance Report ---")
    typer.echo(f"Total bets: {result.total_bets} ({result.resolved_bets} resolved)")
    typer.echo(f"Total wagered: M{result.total_wagered:.0f}")
    typer.echo(f"Total P&L: M{result.total_pnl:.2f}")
    typer.echo(f"ROI: {result.roi:.2%}")
    typer.echo(f"Win rate: {result.win_rate:.2%}")
    typer.echo(f"Peak balance: M{result.peak_balance:.2f}")
    typer.echo(f"Max drawdown: {result.max_drawdown:.2%}")
    if not result.strategies:
        return

    typer.echo(
        f"\n{'Strategy':<14} {'Bets':>6} {'Wagered':>10} {'P&L':>10} "
        f"{'ROI':>8} {'Win':>8} {'Edge':>8}"
    )
    typer.echo("-" * 70)
    for stats in result.strategies:
        typer.echo(
            f"{stats.strategy:<14} {stats.bet_count:>6} {stats.wagered:>10.0f} "
            f"{stats.pnl:>10.2f} {stats.roi:>8.2%} {stats.win_rate:>8.2%} {stats.avg_edge:>8.4f}"
        )
