"""The generate-then-size sequence shared by live trading and replay.

Both drivers call ``decide`` with a market set and an evaluation instant,
so identical snapshots and risk state always yield identical sized
signals regardless of where the snapshots came from.
"""

import logging
from collections.abc import Sequence
from datetime import datetime

from manifold_tools.apps.manifold_bot.models import MarketSnapshot, Signal, SizedSignal
from manifold_tools.apps.manifold_bot.protocols import SignalGenerator
from manifold_tools.apps.manifold_bot.risk import RiskManager

logger = logging.getLogger(__name__)


def generate_signals(
    strategies: Sequence[SignalGenerator],
    markets: Sequence[MarketSnapshot],
    now: datetime,
) -> list[Signal]:
    """Run every enabled strategy in order and concatenate their signals.

    A strategy that raises is logged and skipped; the others still run.

    Args:
        strategies: Strategies in evaluation order.
        markets: Market set of this cycle.
        now: Evaluation instant.

    Returns:
        All signals, grouped by strategy in evaluation order.

    """
    signals: list[Signal] = []
    for strategy in strategies:
        if not strategy.enabled:
            continue
        try:
            produced = strategy.evaluate(markets, now)
        except Exception:
            logger.exception("Strategy %s failed", strategy.name)
            continue
        logger.info("Strategy %s produced %d signals", strategy.name, len(produced))
        signals.extend(produced)
    return signals


def decide(
    strategies: Sequence[SignalGenerator],
    risk: RiskManager,
    markets: Sequence[MarketSnapshot],
    now: datetime,
) -> list[SizedSignal]:
    """Generate signals for a market set and size them.

    Args:
        strategies: Strategies in evaluation order.
        risk: Risk manager holding the current exposure state.
        markets: Market set of this cycle.
        now: Evaluation instant.

    Returns:
        Sized signals approved by the risk manager.

    """
    signals = generate_signals(strategies, markets, now)
    if not signals:
        logger.info("No trading signals this cycle")
        return []
    sized = risk.size_signals(signals)
    logger.info("Signals sized: %d approved of %d", len(sized), len(signals))
    return sized
