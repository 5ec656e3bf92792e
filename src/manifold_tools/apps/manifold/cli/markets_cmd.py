"""CLI command for listing open Manifold markets.

Show the most liquid open markets with probability, liquidity, 24h volume
and close date in a tabular format.
"""

import asyncio
from typing import Annotated

import typer

from manifold_tools.apps.manifold.cli._helpers import (
    ConfigOption,
    build_client,
    load_settings,
)
from manifold_tools.clients.manifold.client import ManifoldClient
from manifold_tools.clients.manifold.exceptions import ManifoldAPIError
from manifold_tools.clients.manifold.models import Market
from manifold_tools.core.timestamps import from_epoch_ms

_DEFAULT_LIMIT = 20
_MAX_QUESTION_LEN = 58


def markets(
    term: Annotated[str, typer.Option(help="Search term for market questions")] = "",
    contract_type: Annotated[
        str, typer.Option(help="BINARY, MULTIPLE_CHOICE or ALL")
    ] = "ALL",
    limit: Annotated[int, typer.Option(help="Maximum number of results")] = _DEFAULT_LIMIT,
    config: ConfigOption = None,
) -> None:
    """List open markets sorted by liquidity."""
    loader, _ = load_settings(config)
    try:
        results = asyncio.run(
            _markets(build_client(loader), term=term, contract_type=contract_type, limit=limit)
        )
    except ManifoldAPIError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc

    if not results:
        typer.echo("No open markets found")
        return

    typer.echo(
        f"\n{'Question':<60} {'Type':<6} {'Prob':>6} {'Liquidity':>10} {'Vol 24h':>10} "
        f"{'Closes':>12}"
    )
    typer.echo("-" * 110)
    for market in results:
        question = (
            market.question[:_MAX_QUESTION_LEN]
            if len(market.question) > _MAX_QUESTION_LEN
            else market.question
        )
        kind = "BIN" if market.outcome_type == "BINARY" else "MC"
        prob = f"{market.probability:.2f}" if market.outcome_type == "BINARY" else ""
        closes = (
            f"{from_epoch_ms(market.close_time):%Y-%m-%d}"
            if market.close_time is not None
            else "N/A"
        )
        typer.echo(
            f"{question:<60} {kind:<6} {prob:>6} {market.total_liquidity:>10.0f} "
            f"{market.volume_24h:>10.0f} {closes:>12}"
        )


async def _markets(
    client: ManifoldClient, *, term: str, contract_type: str, limit: int
) -> list[Market]:
    """Fetch open markets.

    Args:
        client: Manifold API client.
        term: Free-text search term.
        contract_type: Outcome type filter.
        limit: Maximum number of markets.

    Returns:
        Matching markets sorted by liquidity.

    """
    async with client:
        return await client.search_markets(term, contract_type=contract_type, limit=limit)
