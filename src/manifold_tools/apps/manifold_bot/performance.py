"""Performance metrics from the bet ledger and bankroll history."""

import logging
from collections import defaultdict
from collections.abc import Sequence
from decimal import Decimal

from manifold_tools.apps.manifold_bot.models import PerformanceReport, StrategyStats
from manifold_tools.apps.market_store.models import BankrollSnapshot, BetRecord
from manifold_tools.apps.market_store.repository import MarketRepository
from manifold_tools.core.models import ZERO, to_decimal

logger = logging.getLogger(__name__)


def _ratio(numerator: Decimal, denominator: Decimal) -> Decimal:
    return numerator / denominator if denominator > ZERO else ZERO


def _strategy_stats(name: str, bets: Sequence[BetRecord]) -> StrategyStats:
    wagered = sum((to_decimal(b.amount) for b in bets), start=ZERO)
    resolved = [b for b in bets if b.resolved]
    pnl = sum((to_decimal(b.pnl) for b in resolved), start=ZERO)
    wins = sum(1 for b in resolved if b.pnl is not None and b.pnl > 0)
    edge_sum = sum((to_decimal(b.edge) for b in resolved), start=ZERO)
    return StrategyStats(
        strategy=name,
        bet_count=len(bets),
        wagered=wagered,
        pnl=pnl,
        roi=_ratio(pnl, wagered),
        win_rate=_ratio(Decimal(wins), Decimal(len(resolved))),
        avg_edge=_ratio(edge_sum, Decimal(len(resolved))),
    )


def max_drawdown(history: Sequence[BankrollSnapshot]) -> tuple[Decimal, Decimal]:
    """Return the peak total value and the largest drawdown from a peak.

    Args:
        history: Bankroll snapshots in time order.

    Returns:
        ``(peak, max_drawdown)`` with the drawdown as a fraction of the peak.

    """
    peak = ZERO
    worst = ZERO
    for snapshot in history:
        value = to_decimal(snapshot.total_value)
        peak = max(peak, value)
        if peak > ZERO:
            worst = max(worst, (peak - value) / peak)
    return peak, worst


def build_report(
    bets: Sequence[BetRecord],
    history: Sequence[BankrollSnapshot],
) -> PerformanceReport:
    """Compute a performance report from ledger rows and bankroll history.

    Args:
        bets: Every bet in the ledger.
        history: Bankroll snapshots in time order.

    Returns:
        Totals, per-strategy statistics and drawdown.

    """
    by_strategy: dict[str, list[BetRecord]] = defaultdict(list)
    for bet in bets:
        by_strategy[bet.strategy].append(bet)

    overall = _strategy_stats("", bets)
    resolved = sum(1 for b in bets if b.resolved)
    peak, drawdown = max_drawdown(history)
    return PerformanceReport(
        total_bets=overall.bet_count,
        resolved_bets=resolved,
        total_wagered=overall.wagered,
        total_pnl=overall.pnl,
        roi=overall.roi,
        win_rate=overall.win_rate,
        peak_balance=peak,
        max_drawdown=drawdown,
        strategies=tuple(
            _strategy_stats(name, by_strategy[name]) for name in sorted(by_strategy)
        ),
    )


class PerformanceTracker:
    """Generate performance reports from the market store.

    Args:
        repository: Market store holding the ledger and bankroll history.

    """

    def __init__(self, repository: MarketRepository) -> None:
        """Initialize the tracker.

        Args:
            repository: Market store holding the ledger and bankroll history.

        """
        self._repo = repository

    async def generate(self) -> PerformanceReport:
        """Read the ledger and bankroll history and build a report."""
        bets = await self._repo.get_bets()
        history = await self._repo.get_bankroll_history()
        return build_report(bets, history)


def log_report(report: PerformanceReport, current_balance: Decimal | None = None) -> None:
    """Log a performance report at INFO, one line per strategy.

    Args:
        report: Report to log.
        current_balance: Current total portfolio value, logged when given.

    """
    logger.info(
        "Performance: bets=%d resolved=%d wagered=%.0f pnl=%.2f roi=%.2f%% "
        "win_rate=%.2f%% peak=%.2f max_drawdown=%.2f%%",
        report.total_bets,
        report.resolved_bets,
        report.total_wagered,
        report.total_pnl,
        report.roi * 100,
        report.win_rate * 100,
        report.peak_balance,
        report.max_drawdown * 100,
    )
    if current_balance is not None:
        logger.info("Current balance: %.2f", current_balance)
    for stats in report.strategies:
        logger.info(
            "Strategy %s: bets=%d wagered=%.0f pnl=%.2f roi=%.2f%% win_rate=%.2f%% avg_edge=%.4f",
            stats.strategy,
            stats.bet_count,
            stats.wagered,
            stats.pnl,
            stats.roi * 100,
            stats.win_rate * 100,
            stats.avg_edge,
        )
