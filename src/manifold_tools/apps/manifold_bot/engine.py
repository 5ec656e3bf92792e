"""Live orchestration loop for the Manifold trading bot.

Three periodic cycles run on independent intervals: trading (refresh,
scan, generate, size, execute, record), snapshot collection and the
performance report.  A single dispatch loop waits for the earliest due
timer or for shutdown, then runs every due cycle to completion one after
another.  A cycle never overlaps another; ticks missed while a cycle ran
are dropped and the timer resumes one interval after the tick that ran.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime

import httpx
from sqlalchemy.exc import SQLAlchemyError

from manifold_tools.apps.manifold_bot.cache import SnapshotCache
from manifold_tools.apps.manifold_bot.config import ScheduleConfig
from manifold_tools.apps.manifold_bot.executor import BetExecutor
from manifold_tools.apps.manifold_bot.models import ExecutionResult
from manifold_tools.apps.manifold_bot.performance import PerformanceTracker, log_report
from manifold_tools.apps.manifold_bot.pipeline import decide
from manifold_tools.apps.manifold_bot.portfolio import LivePortfolio
from manifold_tools.apps.manifold_bot.protocols import SignalGenerator
from manifold_tools.apps.manifold_bot.risk import RiskManager
from manifold_tools.apps.manifold_bot.scanner import MarketScanner
from manifold_tools.apps.market_store.collector import MarketCollector
from manifold_tools.apps.market_store.repository import MarketRepository
from manifold_tools.clients.manifold.exceptions import ManifoldAPIError

logger = logging.getLogger(__name__)

_CYCLE_ERRORS = (ManifoldAPIError, httpx.HTTPError, SQLAlchemyError)


def _utc_now() -> datetime:
    return datetime.now(UTC)


@dataclass
class _Timer:
    """Next due time (event-loop clock) and interval of one periodic cycle."""

    name: str
    interval: float
    due: float
    body: Callable[[], Awaitable[object]]


class TradingEngine:
    """Run the live trading, collection and performance cycles.

    Args:
        portfolio: Live bankroll refreshed from the API.
        risk: Risk manager sized against ``portfolio``.
        scanner: Market scanner.
        cache: Snapshot cache replaced on every trading cycle.
        strategies: Strategies in evaluation order.
        executor: Execution sink for sized signals.
        repository: Market store for exposure, catalog and bankroll history.
        collector: Snapshot collector.
        tracker: Performance tracker.
        schedule: Cycle intervals and scan size.
        clock: Source of wall-clock time for evaluation and records.

    """

    def __init__(  # noqa: PLR0913
        self,
        *,
        portfolio: LivePortfolio,
        risk: RiskManager,
        scanner: MarketScanner,
        cache: SnapshotCache,
        strategies: Sequence[SignalGenerator],
        executor: BetExecutor,
        repository: MarketRepository,
        collector: MarketCollector,
        tracker: PerformanceTracker,
        schedule: ScheduleConfig,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        """Initialize the engine with its collaborators.

        Args:
            portfolio: Live bankroll refreshed from the API.
            risk: Risk manager sized against ``portfolio``.
            scanner: Market scanner.
            cache: Snapshot cache replaced on every trading cycle.
            strategies: Strategies in evaluation order.
            executor: Execution sink for sized signals.
            repository: Market store.
            collector: Snapshot collector.
            tracker: Performance tracker.
            schedule: Cycle intervals and scan size.
            clock: Source of wall-clock time.

        """
        self._portfolio = portfolio
        self._risk = risk
        self._scanner = scanner
        self._cache = cache
        self._strategies = list(strategies)
        self._executor = executor
        self._repo = repository
        self._collector = collector
        self._tracker = tracker
        self._schedule = schedule
        self._clock = clock
        self._shutdown = asyncio.Event()
        self._cycles_run: dict[str, int] = {"trading": 0, "collection": 0, "performance": 0}

    @property
    def cycles_run(self) -> dict[str, int]:
        """Return how many times each cycle has completed or failed."""
        return dict(self._cycles_run)

    def request_shutdown(self) -> None:
        """Ask the dispatch loop to stop after the current cycle."""
        logger.info("Shutdown requested")
        self._shutdown.set()

    async def run(self) -> None:
        """Run until shutdown is requested.

        The portfolio is refreshed and a bankroll snapshot written first;
        a failure there aborts start-up.  One trading and one collection
        cycle then run immediately before the periodic schedule begins.

        Raises:
            ManifoldAPIError: When the initial portfolio refresh fails.

        """
        logger.info(
            "Engine starting: scan=%s snapshot=%s performance=%s",
            self._schedule.scan_interval,
            self._schedule.snapshot_interval,
            self._schedule.performance_interval,
        )
        await self._portfolio.refresh()
        await self._save_bankroll()

        await self._run_guarded("trading", self.run_trading_cycle)
        if not self._shutdown.is_set():
            await self._run_guarded("collection", self.run_collection_cycle)

        loop = asyncio.get_running_loop()
        start = loop.time()
        schedule: list[tuple[str, float, Callable[[], Awaitable[object]]]] = [
            ("trading", self._schedule.scan_interval.total_seconds(), self.run_trading_cycle),
            (
                "collection",
                self._schedule.snapshot_interval.total_seconds(),
                self.run_collection_cycle,
            ),
            (
                "performance",
                self._schedule.performance_interval.total_seconds(),
                self.run_performance_cycle,
            ),
        ]
        timers = [
            _Timer(name, interval, start + interval, body) for name, interval, body in schedule
        ]

        while not self._shutdown.is_set():
            delay = max(0.0, min(t.due for t in timers) - loop.time())
            try:
                await asyncio.wait_for(self._shutdown.wait(), timeout=delay)
            except TimeoutError:
                pass
            else:
                break
            for timer in timers:
                if self._shutdown.is_set():
                    break
                if timer.due > loop.time():
                    continue
                await self._run_guarded(timer.name, timer.body)
                timer.due += timer.interval
                now = loop.time()
                while timer.due <= now:
                    timer.due += timer.interval
        logger.info("Engine stopped")

    async def _run_guarded(self, name: str, body: Callable[[], Awaitable[object]]) -> None:
        """Run one cycle, logging provider and store failures instead of raising."""
        try:
            await body()
        except _CYCLE_ERRORS:
            logger.exception("%s cycle failed", name.capitalize())
        finally:
            self._cycles_run[name] += 1

    async def run_trading_cycle(self) -> list[ExecutionResult]:
        """Run one trading cycle.

        Returns:
            Execution results of the bets attempted this cycle.

        """
        logger.info("Starting trading cycle")
        now = self._clock()
        await self._portfolio.refresh()
        self._risk.refresh(self._portfolio.investment_value)
        self._risk.set_market_exposure(await self._repo.unresolved_exposure_by_market())

        limit = self._schedule.scan_limit
        binary = await self._scanner.scan_binary(limit)
        multiple_choice = await self._scanner.scan_multiple_choice(limit)
        markets = binary + multiple_choice
        self._cache.set_all(markets)
        logger.info(
            "Markets scanned: %d binary, %d multiple choice", len(binary), len(multiple_choice)
        )

        sized = decide(self._strategies, self._risk, markets, now)
        if not sized:
            return []

        by_id = {m.id: m for m in markets}
        for market_id in dict.fromkeys(s.signal.market_id for s in sized):
            market = by_id.get(market_id)
            if market is not None:
                await self._repo.ensure_market_exists(market, now)

        results = await self._executor.execute(sized)
        succeeded = 0
        for result in results:
            if result.success:
                self._risk.record_trade(result.sized.signal.market_id, result.sized.amount)
                succeeded += 1
        logger.info(
            "Trading cycle complete: %d executed, %d failed", succeeded, len(results) - succeeded
        )
        await self._save_bankroll()
        return results

    async def run_collection_cycle(self) -> int:
        """Run one snapshot collection."""
        logger.info("Starting data collection")
        return await self._collector.collect()

    async def run_performance_cycle(self) -> None:
        """Generate and log a performance report."""
        log_report(await self._tracker.generate(), self._portfolio.total_value)

    async def _save_bankroll(self) -> None:
        await self._repo.save_bankroll(
            self._portfolio.balance,
            self._portfolio.investment_value,
            self._portfolio.total_value,
            self._clock(),
        )
