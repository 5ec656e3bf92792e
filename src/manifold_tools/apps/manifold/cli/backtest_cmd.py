"""CLI command for replaying recorded snapshots through the strategies.

Load the snapshots collected between two dates, run the same
generate-then-size sequence as the live bot at every snapshot instant, and
print how many bets each strategy would have placed.
"""

import asyncio
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Annotated

import typer

from manifold_tools.apps.manifold.cli._helpers import (
    ConfigOption,
    VerboseOption,
    build_repository,
    configure_logging,
    load_settings,
)
from manifold_tools.apps.manifold_bot.config import BotConfig
from manifold_tools.apps.manifold_bot.models import ReplayResult
from manifold_tools.apps.manifold_bot.replay import ReplayEngine, ReplayError
from manifold_tools.apps.manifold_bot.strategies import build_strategies
from manifold_tools.apps.market_store.repository import MarketRepository
from manifold_tools.core.timestamps import parse_date

_DEFAULT_BALANCE = 2300.0
_END_OF_DAY = timedelta(days=1) - timedelta(milliseconds=1)


def backtest(
    from_date: Annotated[str, typer.Option("--from", help="Start date (YYYY-MM-DD)")],
    to_date: Annotated[str, typer.Option("--to", help="End date (YYYY-MM-DD), inclusive")],
    balance: Annotated[
        float, typer.Option(help="Simulated starting balance in mana")
    ] = _DEFAULT_BALANCE,
    run_id: Annotated[str, typer.Option(help="Tag for the recorded replay bets")] = "",
    config: ConfigOption = None,
    verbose: VerboseOption = False,  # noqa: FBT002
) -> None:
    """Replay stored market snapshots through the enabled strategies."""
    try:
        start = parse_date(from_date)
        end = parse_date(to_date)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc
    if _is_plain_date(to_date):
        end += _END_OF_DAY
    if end < start:
        raise typer.BadParameter("--to must not be before --from")

    loader, bot_config = load_settings(config)
    configure_logging(loader, verbose=verbose)
    repository = build_repository(loader)

    try:
        result = asyncio.run(
            _backtest(
                repository,
                bot_config,
                start=start,
                end=end,
                balance=Decimal(str(balance)),
                run_id=run_id or None,
            )
        )
    except ReplayError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc

    _display_result(result)


async def _backtest(  # noqa: PLR0913
    repository: MarketRepository,
    bot_config: BotConfig,
    *,
    start: datetime,
    end: datetime,
    balance: Decimal,
    run_id: str | None,
) -> ReplayResult:
    """Run the replay against the configured market store.

    Args:
        repository: Market store holding the snapshot history.
        bot_config: Typed bot configuration.
        start: Inclusive start of the replay range.
        end: Inclusive end of the replay range.
        balance: Simulated starting balance.
        run_id: Tag for the replay-bet rows.

    Returns:
        The replay summary.

    """
    try:
        await repository.init_db()
        engine = ReplayEngine(
            repository=repository,
            strategies=build_strategies(bot_config),
            risk_config=bot_config.risk,
            starting_balance=balance,
        )
        return await engine.run(start, end, run_id=run_id)
    finally:
        await repository.close()


def _display_result(result: ReplayResult) -> None:
    """Print the replay summary.

    Args:
        result: Completed replay result.

    """
    typer.echo("\n--- Replay Results ---")
    typer.echo(f"Snapshots processed: {result.snapshots_processed}")
    typer.echo(f"Starting balance: M{result.starting_balance:.0f}")
    typer.echo(f"Total bets: {result.total_bets}")
    typer.echo(f"Total wagered: M{result.total_wagered:.0f}")
    if result.bets_by_strategy:
        typer.echo("\nBets by strategy:")
        for name, count in sorted(result.bets_by_strategy.items()):
            typer.echo(f"  {name}: {count}")


def _is_plain_date(value: str) -> bool:
    """Return True when ``value`` names a whole day rather than an instant."""
    try:
        datetime.strptime(value, "%Y-%m-%d")  # noqa: DTZ007
    except ValueError:
        return False
    return True
