"""Replay recorded market snapshots through the live decision sequence.

Each distinct snapshot instant in a date range is treated as one trading
cycle: the snapshot set recorded at that instant is rebuilt, the simulated
bankroll is refreshed, and ``pipeline.decide`` runs with the snapshot time
as the evaluation instant.  Accepted signals are recorded against the risk
manager and written to the replay-bet table.  No resolution or profit
accounting happens here.
"""

import logging
import uuid
from collections import Counter
from collections.abc import Sequence
from datetime import datetime
from decimal import Decimal

from manifold_tools.apps.manifold_bot.config import RiskConfig
from manifold_tools.apps.manifold_bot.models import ReplayDecision, ReplayResult
from manifold_tools.apps.manifold_bot.pipeline import decide
from manifold_tools.apps.manifold_bot.portfolio import Portfolio
from manifold_tools.apps.manifold_bot.protocols import SignalGenerator
from manifold_tools.apps.manifold_bot.risk import RiskManager
from manifold_tools.apps.market_store.repository import MarketRepository
from manifold_tools.core.models import ZERO

logger = logging.getLogger(__name__)


class ReplayError(Exception):
    """Raised when a replay cannot run, e.g. the range holds no snapshots."""


class ReplayEngine:
    """Drive strategies and risk sizing over stored snapshots.

    Every run builds its own simulated portfolio and risk manager, so runs
    never share exposure state with each other or with the live loop.

    Args:
        repository: Market store holding the snapshot history.
        strategies: Strategies in evaluation order.
        risk_config: Risk limits applied to the simulated bankroll.
        starting_balance: Simulated mana balance at the start of a run.

    """

    def __init__(
        self,
        repository: MarketRepository,
        strategies: Sequence[SignalGenerator],
        risk_config: RiskConfig,
        starting_balance: Decimal,
    ) -> None:
        """Initialize the replay engine.

        Args:
            repository: Market store holding the snapshot history.
            strategies: Strategies in evaluation order.
            risk_config: Risk limits applied to the simulated bankroll.
            starting_balance: Simulated mana balance at the start of a run.

        """
        self._repo = repository
        self._strategies = list(strategies)
        self._risk_config = risk_config
        self._starting_balance = starting_balance

    async def run(
        self, start: datetime, end: datetime, run_id: str | None = None
    ) -> ReplayResult:
        """Replay every snapshot instant within ``[start, end]``.

        Args:
            start: Inclusive start of the range.
            end: Inclusive end of the range.
            run_id: Tag for the replay-bet rows; a random id when omitted.

        Returns:
            Totals of the run together with every accepted decision.

        Raises:
            ReplayError: If the range holds no snapshots.

        """
        times = await self._repo.distinct_snapshot_times(start, end)
        if not times:
            msg = f"No snapshots recorded between {start:%Y-%m-%d} and {end:%Y-%m-%d}"
            raise ReplayError(msg)

        run_id = run_id or uuid.uuid4().hex
        portfolio = Portfolio(balance=self._starting_balance)
        risk = RiskManager(self._risk_config, portfolio)
        logger.info("Replay %s: %d snapshot instants from %s to %s", run_id, len(times), start, end)

        decisions: list[ReplayDecision] = []
        for timestamp in times:
            markets = await self._repo.snapshots_at(timestamp)
            risk.refresh(portfolio.investment_value)
            step: list[ReplayDecision] = []
            for sized in decide(self._strategies, risk, markets, timestamp):
                risk.record_trade(sized.signal.market_id, sized.amount)
                step.append(ReplayDecision(timestamp=timestamp, sized=sized))
            await self._repo.record_replay_bets(run_id, step)
            decisions.extend(step)
            logger.debug("Replay step %s: %d markets, %d bets", timestamp, len(markets), len(step))

        total_wagered = sum((Decimal(d.sized.amount) for d in decisions), ZERO)
        by_strategy = Counter(d.sized.signal.strategy for d in decisions)
        result = ReplayResult(
            snapshots_processed=len(times),
            decisions=tuple(decisions),
            total_wagered=total_wagered,
            starting_balance=self._starting_balance,
            bets_by_strategy=dict(by_strategy),
        )
        logger.info(
            "Replay %s complete: %d snapshots, %d bets, M%s wagered",
            run_id,
            result.snapshots_processed,
            result.total_bets,
            result.total_wagered,
        )
        for strategy, count in sorted(result.bets_by_strategy.items()):
            logger.info("  %s: %d bets", strategy, count)
        return result
