"""Place sized signals as Manifold bets and record them in the ledger.

Failures are classified per (market, outcome, answer) key.  Permanent
rejections (resolved or closed markets, 403, 404) blacklist the key for
the lifetime of the executor; after three consecutive transient failures
the key is skipped without another attempt.  A success clears the count.
"""

import logging
from collections.abc import Callable, Sequence
from datetime import UTC, datetime
from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy.exc import SQLAlchemyError

from manifold_tools.apps.manifold_bot.models import ExecutionResult, SizedSignal
from manifold_tools.apps.market_store.repository import MarketRepository
from manifold_tools.clients.manifold.client import ManifoldClient
from manifold_tools.clients.manifold.exceptions import ManifoldAPIError
from manifold_tools.clients.manifold.models import BetRequest

logger = logging.getLogger(__name__)

MAX_TRANSIENT_FAILURES = 3
_CENT = Decimal("0.01")
_MIN_LIMIT = Decimal("0.01")
_MAX_LIMIT = Decimal("0.99")

FailureKey = tuple[str, str, str]


def _utc_now() -> datetime:
    return datetime.now(UTC)


def round_limit(limit_prob: Decimal | None) -> Decimal | None:
    """Round a limit probability to two decimals, or drop it when out of range.

    Args:
        limit_prob: Target probability of the limit order.

    Returns:
        The rounded probability within [0.01, 0.99], or ``None`` to place a
        market order.

    """
    if limit_prob is None:
        return None
    rounded = limit_prob.quantize(_CENT, rounding=ROUND_HALF_UP)
    if _MIN_LIMIT <= rounded <= _MAX_LIMIT:
        return rounded
    return None


class BetExecutor:
    """Execution sink that places bets through the Manifold API.

    Args:
        client: Authenticated Manifold client.
        repository: Ledger for placed bets.
        kelly_fraction: Fractional Kelly multiplier recorded with each bet.
        clock: Source of the placement timestamp.

    """

    def __init__(
        self,
        client: ManifoldClient,
        repository: MarketRepository,
        kelly_fraction: Decimal,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        """Initialize the executor with empty failure tracking.

        Args:
            client: Authenticated Manifold client.
            repository: Ledger for placed bets.
            kelly_fraction: Fractional Kelly multiplier recorded with each bet.
            clock: Source of the placement timestamp.

        """
        self._client = client
        self._repo = repository
        self._kelly_fraction = kelly_fraction
        self._clock = clock
        self._failures: dict[FailureKey, int] = {}
        self._blacklist: set[FailureKey] = set()

    @staticmethod
    def failure_key(sized: SizedSignal) -> FailureKey:
        """Return the key under which failures of this bet are tracked."""
        signal = sized.signal
        return signal.market_id, signal.outcome.value, signal.answer_id

    def is_blocked(self, key: FailureKey) -> bool:
        """Return True when a key is blacklisted or has failed too often."""
        return key in self._blacklist or self._failures.get(key, 0) >= MAX_TRANSIENT_FAILURES

    async def execute(self, signals: Sequence[SizedSignal]) -> list[ExecutionResult]:
        """Execute sized signals one after another.

        Args:
            signals: Sized signals in the order they should be placed.

        Returns:
            One result per signal, in the same order.

        """
        return [await self.execute_one(sized) for sized in signals]

    async def execute_one(self, sized: SizedSignal) -> ExecutionResult:
        """Place one bet, classify any failure and record a success.

        Args:
            sized: Sized signal to place.

        Returns:
            The execution result.

        """
        signal = sized.signal
        key = self.failure_key(sized)
        if self.is_blocked(key):
            logger.info(
                "Skipping blocked bet on %s answer=%r %s",
                signal.market_id,
                signal.answer_id,
                signal.outcome.value,
            )
            return ExecutionResult(sized=sized, success=False, error="skipped: blocked after failures")

        limit_prob = round_limit(signal.limit_prob) if signal.is_limit else None
        request = BetRequest(
            contract_id=signal.market_id,
            outcome=signal.outcome.value,
            amount=sized.amount,
            answer_id=signal.answer_id,
            limit_prob=limit_prob,
        )
        logger.info(
            "Placing bet: %s %s M%d on %s answer=%r edge=%.3f (%s)",
            signal.strategy,
            signal.outcome.value,
            sized.amount,
            signal.market_id,
            signal.answer_id,
            signal.edge,
            signal.reason,
        )
        try:
            response = await self._client.place_bet(request)
        except ManifoldAPIError as exc:
            if exc.is_permanent:
                self._blacklist.add(key)
                logger.warning("Bet permanently blacklisted for %s: %s", signal.market_id, exc)
            else:
                self._failures[key] = self._failures.get(key, 0) + 1
                logger.error(
                    "Bet failed on %s (%d consecutive): %s",
                    signal.market_id,
                    self._failures[key],
                    exc,
                )
            return ExecutionResult(sized=sized, success=False, error=str(exc))

        self._failures.pop(key, None)
        try:
            await self._repo.record_bet(
                sized,
                bet_id=response.bet_id,
                kelly_fraction=self._kelly_fraction,
                limit_prob=limit_prob,
                placed_at=self._clock(),
            )
        except SQLAlchemyError:
            logger.exception("Bet %s placed but could not be recorded", response.bet_id)
        logger.info("Bet placed: %s M%d on %s", response.bet_id, sized.amount, signal.market_id)
        return ExecutionResult(sized=sized, success=True, bet_id=response.bet_id)
