"""Extreme-probability confirmation for binary markets.

A market that has traded near 0 or 1 for a long time with real volume is
usually right.  The strategy bets with the extreme at a fixed confidence
of 0.97 while enough time remains before close for the position to pay.

Mean reversion after sudden moves would need per-market probability
history inside the strategy and is not implemented.
"""

import logging
from collections.abc import Sequence
from datetime import datetime, timedelta
from decimal import Decimal

from manifold_tools.apps.manifold_bot.config import MispricingConfig
from manifold_tools.apps.manifold_bot.models import MarketSnapshot, Signal
from manifold_tools.core.models import BINARY, ONE, ZERO, Outcome

logger = logging.getLogger(__name__)

_CONFIDENCE = Decimal("0.97")
_MIN_TIME_TO_CLOSE = timedelta(days=14)


class MispricingStrategy:
    """Bet with long-standing extreme probabilities."""

    def __init__(self, config: MispricingConfig) -> None:
        """Initialize the strategy.

        Args:
            config: Extreme thresholds, age and volume filters.

        """
        self._config = config

    @property
    def name(self) -> str:
        """Return the strategy name."""
        return "mispricing"

    @property
    def enabled(self) -> bool:
        """Return whether the strategy is enabled."""
        return self._config.enabled

    def evaluate(self, markets: Sequence[MarketSnapshot], now: datetime) -> list[Signal]:
        """Emit market-order signals confirming extreme binary probabilities.

        Args:
            markets: Market snapshots of this cycle.
            now: Evaluation instant for the age and time-to-close filters.

        Returns:
            At most one signal per market.

        """
        signals: list[Signal] = []
        for market in markets:
            if market.outcome_type != BINARY or market.is_resolved:
                continue
            signal = self._evaluate_extreme(market, now)
            if signal is not None:
                signals.append(signal)
        logger.info("mispricing scan: %d markets, %d signals", len(markets), len(signals))
        return signals

    def _evaluate_extreme(self, market: MarketSnapshot, now: datetime) -> Signal | None:
        p = market.probability
        is_high = p > self._config.extreme_threshold_high
        is_low = p < self._config.extreme_threshold_low
        if not (is_high or is_low):
            return None
        if now - market.created_time < timedelta(days=self._config.min_market_age_days):
            return None
        if market.volume < self._config.min_volume:
            return None
        if market.close_time - now < _MIN_TIME_TO_CLOSE:
            return None

        if is_high:
            outcome, edge = Outcome.YES, _CONFIDENCE - p
        else:
            outcome, edge = Outcome.NO, p - (ONE - _CONFIDENCE)
        if edge <= ZERO:
            return None

        logger.debug(
            "extreme probability confirmed in %s: %.3f, betting %s edge %.3f",
            market.id,
            p,
            outcome.value,
            edge,
        )
        return Signal(
            market_id=market.id,
            outcome=outcome,
            confidence=_CONFIDENCE,
            market_prob=p,
            edge=edge,
            strategy=self.name,
            reason=(
                f"extreme probability confirmation: market at {p:.2f}, "
                f"betting {outcome.value} with confidence {_CONFIDENCE:.2f}"
            ),
        )
