"""Probability-sum arbitrage for multiple-choice markets.

The probabilities of the open answers of a multiple-choice market should
sum to one.  When they drift apart, every answer is re-priced to its fair
share ``p / sum`` and the answers with enough mispricing are bet back
towards that fair value with limit orders.
"""

import logging
from collections.abc import Sequence
from datetime import datetime, timedelta
from decimal import Decimal

from manifold_tools.apps.manifold_bot.config import ArbitrageConfig
from manifold_tools.apps.manifold_bot.models import MarketSnapshot, Signal
from manifold_tools.core.models import MULTIPLE_CHOICE, ONE, Outcome

logger = logging.getLogger(__name__)

_TWO = Decimal(2)
_MIN_ANSWER_EDGE = Decimal("0.03")
_MIN_ACTIVE_ANSWERS = 2


class ArbitrageStrategy:
    """Bet multiple-choice answers back towards a probability sum of one."""

    def __init__(self, config: ArbitrageConfig) -> None:
        """Initialize the strategy.

        Args:
            config: Arbitrage thresholds and enable flag.

        """
        self._config = config

    @property
    def name(self) -> str:
        """Return the strategy name."""
        return "arbitrage"

    @property
    def enabled(self) -> bool:
        """Return whether the strategy is enabled."""
        return self._config.enabled

    def evaluate(self, markets: Sequence[MarketSnapshot], now: datetime) -> list[Signal]:
        """Scan multiple-choice markets for probability sums away from one.

        At most ``max_markets_per_cycle`` eligible markets are examined, in
        input order.

        Args:
            markets: Market snapshots of this cycle.
            now: Evaluation instant, used for the close-date filter.

        Returns:
            One limit-order signal per sufficiently mispriced answer.

        """
        signals: list[Signal] = []
        evaluated = 0
        for market in markets:
            if not self._is_eligible(market, now):
                continue
            evaluated += 1
            if evaluated > self._config.max_markets_per_cycle:
                break
            signals.extend(self._evaluate_market(market))

        logger.info(
            "arbitrage scan: %d markets, %d evaluated, %d signals",
            len(markets),
            min(evaluated, self._config.max_markets_per_cycle),
            len(signals),
        )
        return signals

    def _is_eligible(self, market: MarketSnapshot, now: datetime) -> bool:
        """Return True for an open multiple-choice market worth evaluating."""
        if market.outcome_type != MULTIPLE_CHOICE or market.is_resolved:
            return False
        if market.total_liquidity < self._config.min_liquidity:
            return False
        if len(market.answers) < _MIN_ACTIVE_ANSWERS:
            return False
        if self._config.max_close_days > 0:
            horizon = now + timedelta(days=self._config.max_close_days)
            if market.close_time > horizon:
                return False
        return True

    def _evaluate_market(self, market: MarketSnapshot) -> list[Signal]:
        """Return the signals for one eligible market."""
        active = market.active_answers
        if len(active) < _MIN_ACTIVE_ANSWERS:
            return []

        prob_sum = sum((a.probability for a in active), start=Decimal(0))
        deviation = prob_sum - ONE
        if abs(deviation) < self._config.min_prob_sum_deviation:
            return []

        overpriced = prob_sum > ONE
        signals: list[Signal] = []
        for answer in active:
            p = answer.probability
            fair = p / prob_sum
            edge = p - fair if overpriced else fair - p
            if edge < _MIN_ANSWER_EDGE:
                continue
            limit = (p + fair) / _TWO
            if overpriced:
                outcome, confidence = Outcome.NO, ONE - fair
            else:
                outcome, confidence = Outcome.YES, fair
            logger.debug(
                "arbitrage opportunity in %s: answer %r %s edge %.3f",
                market.id,
                answer.text,
                outcome.value,
                edge,
            )
            signals.append(
                Signal(
                    market_id=market.id,
                    answer_id=answer.id,
                    outcome=outcome,
                    confidence=confidence,
                    market_prob=p,
                    edge=edge,
                    strategy=self.name,
                    reason=(
                        f"probs sum to {prob_sum:.2f}, answer '{answer.text}' "
                        f"at {p:.2f} vs fair {fair:.2f}"
                    ),
                    is_limit=True,
                    limit_prob=limit,
                )
            )
        return signals
