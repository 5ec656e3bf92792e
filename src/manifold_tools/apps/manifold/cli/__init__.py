"""CLI subpackage for the Manifold trading bot app.

Create the Typer application and register all command modules.
"""

import typer

from manifold_tools.apps.manifold.cli.backtest_cmd import backtest
from manifold_tools.apps.manifold.cli.collect_cmd import collect
from manifold_tools.apps.manifold.cli.markets_cmd import markets
from manifold_tools.apps.manifold.cli.report_cmd import report
from manifold_tools.apps.manifold.cli.run_cmd import run

app = typer.Typer(help="Manifold prediction market trading bot")

app.command()(run)
app.command()(backtest)
app.command()(collect)
app.command()(report)
app.command()(markets)

__all__ = ["app"]
