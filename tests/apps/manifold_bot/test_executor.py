"""Tests for the bet executor."""

from datetime import UTC, datetime
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest
from sqlalchemy.exc import OperationalError

from manifold_tools.apps.manifold_bot.executor import (
    MAX_TRANSIENT_FAILURES,
    BetExecutor,
    round_limit,
)
from manifold_tools.apps.manifold_bot.models import Signal, SizedSignal
from manifold_tools.clients.manifold.exceptions import ManifoldAPIError
from manifold_tools.clients.manifold.models import BetRequest, BetResponse
from manifold_tools.core.models import Outcome

_NOW = datetime(2024, 3, 1, 12, tzinfo=UTC)
_KELLY = Decimal("0.25")
_AMOUNT = 25
_STATUS_BAD_REQUEST = 400
_STATUS_SERVER_ERROR = 500
_STATUS_NOT_FOUND = 404


def _make_sized(
    market_id: str = "m1",
    answer_id: str = "",
    *,
    is_limit: bool = False,
    limit_prob: str | None = None,
) -> SizedSignal:
    """Create a sized signal for execution tests.

    Args:
        market_id: Market identifier.
        answer_id: Answer identifier for multiple-choice markets.
        is_limit: Whether to place a limit order.
        limit_prob: Limit probability as a string.

    Returns:
        A new SizedSignal.

    """
    signal = Signal(
        market_id=market_id,
        outcome=Outcome.YES,
        confidence=Decimal("0.7"),
        market_prob=Decimal("0.5"),
        edge=Decimal("0.2"),
        strategy="mispricing",
        reason="test",
        answer_id=answer_id,
        is_limit=is_limit,
        limit_prob=None if limit_prob is None else Decimal(limit_prob),
    )
    return SizedSignal(signal=signal, amount=_AMOUNT)


def _make_response(bet_id: str = "bet-1") -> BetResponse:
    """Create a filled bet response."""
    return BetResponse(
        bet_id=bet_id, amount=Decimal(_AMOUNT), shares=Decimal(40), is_filled=True
    )


def _make_executor(client: AsyncMock, repo: AsyncMock) -> BetExecutor:
    """Create an executor with a fixed clock."""
    return BetExecutor(client, repo, _KELLY, clock=lambda: _NOW)


class TestRoundLimit:
    """Tests for round_limit."""

    def test_none(self) -> None:
        """Pass None through."""
        assert round_limit(None) is None

    def test_rounds_half_up(self) -> None:
        """Round to two decimals, halves away from zero."""
        assert round_limit(Decimal("0.2325")) == Decimal("0.23")
        assert round_limit(Decimal("0.235")) == Decimal("0.24")

    def test_bounds(self) -> None:
        """Keep the boundaries and drop values rounding outside them."""
        assert round_limit(Decimal("0.01")) == Decimal("0.01")
        assert round_limit(Decimal("0.99")) == Decimal("0.99")
        assert round_limit(Decimal("0.004")) is None
        assert round_limit(Decimal("0.996")) is None


class TestBetExecutor:
    """Tests for BetExecutor.execute."""

    @pytest.mark.asyncio
    async def test_success_records_bet(self) -> None:
        """Place a market order and record it in the ledger."""
        client = AsyncMock()
        client.place_bet.return_value = _make_response()
        repo = AsyncMock()
        sized = _make_sized()

        results = await _make_executor(client, repo).execute([sized])

        assert results[0].success is True
        assert results[0].bet_id == "bet-1"
        client.place_bet.assert_awaited_once_with(
            BetRequest(contract_id="m1", outcome="YES", amount=_AMOUNT)
        )
        repo.record_bet.assert_awaited_once_with(
            sized,
            bet_id="bet-1",
            kelly_fraction=_KELLY,
            limit_prob=None,
            placed_at=_NOW,
        )

    @pytest.mark.asyncio
    async def test_limit_order_rounded(self) -> None:
        """Send the rounded limit probability for limit signals."""
        client = AsyncMock()
        client.place_bet.return_value = _make_response()
        await _make_executor(client, AsyncMock()).execute(
            [_make_sized("m1", "a1", is_limit=True, limit_prob="0.2325")]
        )
        request: BetRequest = client.place_bet.await_args.args[0]
        assert request.limit_prob == Decimal("0.23")
        assert request.answer_id == "a1"

    @pytest.mark.asyncio
    async def test_out_of_range_limit_becomes_market_order(self) -> None:
        """Drop a limit probability that rounds outside [0.01, 0.99]."""
        client = AsyncMock()
        client.place_bet.return_value = _make_response()
        await _make_executor(client, AsyncMock()).execute(
            [_make_sized(is_limit=True, limit_prob="0.999")]
        )
        assert client.place_bet.await_args.args[0].limit_prob is None

    @pytest.mark.asyncio
    async def test_permanent_failure_blacklists(self) -> None:
        """Never retry a market rejected as resolved."""
        client = AsyncMock()
        client.place_bet.side_effect = ManifoldAPIError(
            "Market is resolved", _STATUS_BAD_REQUEST
        )
        executor = _make_executor(client, AsyncMock())
        sized = _make_sized()

        first = await executor.execute([sized])
        second = await executor.execute([sized])

        assert first[0].success is False
        assert "resolved" in first[0].error
        assert second[0].error.startswith("skipped")
        assert client.place_bet.await_count == 1

    @pytest.mark.asyncio
    async def test_not_found_is_permanent(self) -> None:
        """Blacklist a key after a 404."""
        client = AsyncMock()
        client.place_bet.side_effect = ManifoldAPIError("missing", _STATUS_NOT_FOUND)
        executor = _make_executor(client, AsyncMock())
        sized = _make_sized()
        await executor.execute([sized])
        assert executor.is_blocked(BetExecutor.failure_key(sized))

    @pytest.mark.asyncio
    async def test_transient_failures_skip_after_limit(self) -> None:
        """Stop attempting after three consecutive transient failures."""
        client = AsyncMock()
        client.place_bet.side_effect = ManifoldAPIError("timeout", _STATUS_SERVER_ERROR)
        executor = _make_executor(client, AsyncMock())
        sized = _make_sized()

        for _ in range(MAX_TRANSIENT_FAILURES + 2):
            await executor.execute([sized])

        assert client.place_bet.await_count == MAX_TRANSIENT_FAILURES

    @pytest.mark.asyncio
    async def test_success_resets_transient_count(self) -> None:
        """Clear the failure count after a successful bet."""
        client = AsyncMock()
        error = ManifoldAPIError("timeout", _STATUS_SERVER_ERROR)
        client.place_bet.side_effect = [error, error, _make_response(), error, error, error]
        executor = _make_executor(client, AsyncMock())
        sized = _make_sized()

        for _ in range(6):
            await executor.execute([sized])

        assert client.place_bet.await_count == 6  # noqa: PLR2004
        assert executor.is_blocked(BetExecutor.failure_key(sized))

    @pytest.mark.asyncio
    async def test_keys_tracked_per_answer(self) -> None:
        """Track failures separately for each answer of a market."""
        client = AsyncMock()
        client.place_bet.side_effect = ManifoldAPIError("closed", _STATUS_BAD_REQUEST)
        executor = _make_executor(client, AsyncMock())
        await executor.execute([_make_sized("m1", "a1")])
        assert executor.is_blocked(("m1", "YES", "a1"))
        assert not executor.is_blocked(("m1", "YES", "a2"))

    @pytest.mark.asyncio
    async def test_ledger_failure_still_succeeds(self) -> None:
        """Report success when the bet was placed but could not be recorded."""
        client = AsyncMock()
        client.place_bet.return_value = _make_response()
        repo = AsyncMock()
        repo.record_bet.side_effect = OperationalError("INSERT", {}, Exception("locked"))

        results = await _make_executor(client, repo).execute([_make_sized()])

        assert results[0].success is True
        assert results[0].bet_id == "bet-1"
