"""Tests for the live trading engine."""

import logging
from collections.abc import Sequence
from datetime import UTC, datetime, timedelta
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from manifold_tools.apps.manifold_bot.cache import SnapshotCache
from manifold_tools.apps.manifold_bot.config import RiskConfig, ScheduleConfig
from manifold_tools.apps.manifold_bot.engine import TradingEngine
from manifold_tools.apps.manifold_bot.models import (
    ExecutionResult,
    MarketSnapshot,
    PerformanceReport,
    Signal,
    SizedSignal,
)
from manifold_tools.apps.manifold_bot.portfolio import LivePortfolio
from manifold_tools.apps.manifold_bot.risk import RiskManager
from manifold_tools.clients.manifold.exceptions import ManifoldAPIError
from manifold_tools.clients.manifold.models import User, UserPortfolio
from manifold_tools.core.models import BINARY, Outcome

_NOW = datetime(2024, 3, 1, 12, tzinfo=UTC)
_BALANCE = Decimal(1000)
_AMOUNT = 50
_STATUS_SERVER_ERROR = 500
_COLLECTIONS_BEFORE_SHUTDOWN = 3


def _make_market(market_id: str = "m1") -> MarketSnapshot:
    """Create a binary snapshot."""
    return MarketSnapshot(
        id=market_id,
        question="Will it rain?",
        outcome_type=BINARY,
        probability=Decimal("0.5"),
        created_time=_NOW - timedelta(days=10),
        close_time=_NOW + timedelta(days=10),
    )


class _StubStrategy:
    """Strategy emitting one YES signal per market."""

    name = "stub"
    enabled = True

    def evaluate(self, markets: Sequence[MarketSnapshot], now: datetime) -> list[Signal]:
        """Return a strong YES signal for every market."""
        del now
        return [
            Signal(
                market_id=m.id,
                outcome=Outcome.YES,
                confidence=Decimal("0.7"),
                market_prob=m.probability,
                edge=Decimal("0.2"),
                strategy=self.name,
                reason="stub",
            )
            for m in markets
        ]


def _make_client() -> AsyncMock:
    """Create a client mock backing the live portfolio."""
    client = AsyncMock()
    client.get_me.return_value = User(id="u1", username="bot", balance=_BALANCE)
    client.get_user_portfolio.return_value = UserPortfolio(
        investment_value=Decimal(0), balance=_BALANCE
    )
    return client


def _succeed(signals: Sequence[SizedSignal]) -> list[ExecutionResult]:
    """Report every sized signal as placed."""
    return [
        ExecutionResult(sized=s, success=True, bet_id=f"b-{s.signal.market_id}") for s in signals
    ]


class _Harness:
    """Engine wired to mocks, exposing each collaborator for assertions."""

    def __init__(self, schedule: ScheduleConfig | None = None) -> None:
        """Build the engine and its mocked collaborators."""
        self.client = _make_client()
        self.portfolio = LivePortfolio(self.client)
        self.risk = RiskManager(RiskConfig(), self.portfolio)
        self.scanner = AsyncMock()
        self.scanner.scan_binary.return_value = [_make_market("m1")]
        self.scanner.scan_multiple_choice.return_value = []
        self.cache = SnapshotCache(timedelta(minutes=10), clock=lambda: _NOW)
        self.executor = AsyncMock()
        self.executor.execute.side_effect = _succeed
        self.repo = AsyncMock()
        self.repo.unresolved_exposure_by_market.return_value = {}
        self.collector = AsyncMock()
        self.collector.collect.return_value = 0
        self.tracker = AsyncMock()
        self.tracker.generate.return_value = PerformanceReport(
            total_bets=0,
            resolved_bets=0,
            total_wagered=Decimal(0),
            total_pnl=Decimal(0),
            roi=Decimal(0),
            win_rate=Decimal(0),
            peak_balance=Decimal(0),
            max_drawdown=Decimal(0),
        )
        self.engine = TradingEngine(
            portfolio=self.portfolio,
            risk=self.risk,
            scanner=self.scanner,
            cache=self.cache,
            strategies=[_StubStrategy()],
            executor=self.executor,
            repository=self.repo,
            collector=self.collector,
            tracker=self.tracker,
            schedule=schedule or ScheduleConfig(),
            clock=lambda: _NOW,
        )


class TestTradingCycle:
    """Tests for run_trading_cycle."""

    @pytest.mark.asyncio
    async def test_executes_and_records_exposure(self) -> None:
        """Place sized signals and count successes against market exposure."""
        harness = _Harness()
        results = await harness.engine.run_trading_cycle()

        assert [r.bet_id for r in results] == ["b-m1"]
        assert harness.risk.market_exposure("m1") == _AMOUNT
        harness.repo.ensure_market_exists.assert_awaited_once_with(_make_market("m1"), _NOW)
        harness.repo.save_bankroll.assert_awaited_once_with(
            _BALANCE, Decimal(0), _BALANCE, _NOW
        )
        assert harness.cache.get("m1") == (_make_market("m1"), True)

    @pytest.mark.asyncio
    async def test_failed_bet_not_recorded(self) -> None:
        """Leave exposure untouched for failed executions."""
        harness = _Harness()
        harness.executor.execute.side_effect = lambda signals: [
            ExecutionResult(sized=s, success=False, error="boom") for s in signals
        ]
        await harness.engine.run_trading_cycle()
        assert harness.risk.market_exposure("m1") == 0

    @pytest.mark.asyncio
    async def test_no_signals_skips_execution(self) -> None:
        """Skip execution when no market was scanned."""
        harness = _Harness()
        harness.scanner.scan_binary.return_value = []
        assert await harness.engine.run_trading_cycle() == []
        harness.executor.execute.assert_not_awaited()
        harness.repo.save_bankroll.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_reconciles_exposure_from_ledger(self) -> None:
        """Cap new bets by the unresolved exposure stored in the ledger."""
        harness = _Harness()
        harness.repo.unresolved_exposure_by_market.return_value = {"m1": Decimal(80)}
        results = await harness.engine.run_trading_cycle()
        assert [r.sized.amount for r in results] == [20]


class TestEngineRun:
    """Tests for the dispatch loop."""

    @pytest.mark.asyncio
    async def test_startup_refresh_failure_raises(self) -> None:
        """Abort start-up when the portfolio cannot be fetched."""
        harness = _Harness()
        harness.client.get_me.side_effect = ManifoldAPIError("down", _STATUS_SERVER_ERROR)
        with pytest.raises(ManifoldAPIError):
            await harness.engine.run()

    @pytest.mark.asyncio
    async def test_runs_cycles_until_shutdown(self) -> None:
        """Dispatch due cycles until shutdown is requested."""
        schedule = ScheduleConfig(
            scan_interval=timedelta(milliseconds=10),
            snapshot_interval=timedelta(milliseconds=10),
            performance_interval=timedelta(hours=1),
        )
        harness = _Harness(schedule)
        collections = 0

        async def collect() -> int:
            nonlocal collections
            collections += 1
            if collections == _COLLECTIONS_BEFORE_SHUTDOWN:
                harness.engine.request_shutdown()
            return 0

        harness.collector.collect.side_effect = collect
        await harness.engine.run()

        cycles = harness.engine.cycles_run
        assert cycles["collection"] == _COLLECTIONS_BEFORE_SHUTDOWN
        assert cycles["trading"] >= _COLLECTIONS_BEFORE_SHUTDOWN
        assert cycles["performance"] == 0

    @pytest.mark.asyncio
    async def test_shutdown_before_start(self) -> None:
        """Run only the immediate trading cycle when shutdown is already set."""
        harness = _Harness()
        harness.engine.request_shutdown()
        await harness.engine.run()
        assert harness.engine.cycles_run == {"trading": 1, "collection": 0, "performance": 0}

    @pytest.mark.asyncio
    async def test_cycle_failure_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        """Log a failing cycle instead of raising."""
        harness = _Harness()
        harness.scanner.scan_binary.side_effect = ManifoldAPIError("down", _STATUS_SERVER_ERROR)
        await harness.engine._run_guarded("trading", harness.engine.run_trading_cycle)
        assert harness.engine.cycles_run["trading"] == 1
        assert "Trading cycle failed" in caplog.text

    @pytest.mark.asyncio
    async def test_performance_cycle(self, caplog: pytest.LogCaptureFixture) -> None:
        """Generate a report and log it with the current portfolio value."""
        harness = _Harness()
        await harness.portfolio.refresh()
        with caplog.at_level(logging.INFO):
            await harness.engine.run_performance_cycle()
        harness.tracker.generate.assert_awaited_once()
        assert "Current balance: 1000.00" in caplog.text
