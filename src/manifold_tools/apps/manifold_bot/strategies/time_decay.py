"""Time decay for deadline questions.

Questions of the form "Will X happen by <date>?" should lose probability
as the deadline approaches without the event happening.  Markets tend to
lag that decay, so once most of a market's lifetime has elapsed the
strategy bets NO with a limit order halfway to a decayed estimate.
"""

import logging
import re
from collections.abc import Sequence
from datetime import datetime
from decimal import Decimal

from manifold_tools.apps.manifold_bot.config import TimeDecayConfig
from manifold_tools.apps.manifold_bot.models import MarketSnapshot, Signal
from manifold_tools.core.models import BINARY, ONE, ZERO, Outcome

logger = logging.getLogger(__name__)

_TWO = Decimal(2)
_HALF = Decimal("0.5")
_DECAY_RATE = Decimal("0.5")

_MONTHS = "January|February|March|April|May|June|July|August|September|October|November|December"

DEADLINE_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(rf"by ({_MONTHS}) (\d{{4}})", re.IGNORECASE),
    re.compile(rf"before ({_MONTHS}) \d{{1,2}}", re.IGNORECASE),
    re.compile(r"in (\d{4})", re.IGNORECASE),
    re.compile(r"by end of (\d{4})", re.IGNORECASE),
    re.compile(r"by Q[1-4] (\d{4})", re.IGNORECASE),
)


def has_deadline(question: str) -> bool:
    """Return True when the question names a deadline."""
    return any(pattern.search(question) for pattern in DEADLINE_PATTERNS)


class TimeDecayStrategy:
    """Bet NO on low-probability deadline questions late in their lifetime."""

    def __init__(self, config: TimeDecayConfig) -> None:
        """Initialize the strategy.

        Args:
            config: Time-decay thresholds and enable flag.

        """
        self._config = config

    @property
    def name(self) -> str:
        """Return the strategy name."""
        return "timedecay"

    @property
    def enabled(self) -> bool:
        """Return whether the strategy is enabled."""
        return self._config.enabled

    def evaluate(self, markets: Sequence[MarketSnapshot], now: datetime) -> list[Signal]:
        """Emit NO signals for deadline questions whose decay the market lags.

        Args:
            markets: Market snapshots of this cycle.
            now: Evaluation instant used to measure elapsed lifetime.

        Returns:
            At most one signal per market.

        """
        signals: list[Signal] = []
        for market in markets:
            signal = self._evaluate_market(market, now)
            if signal is not None:
                signals.append(signal)
        logger.info("timedecay scan: %d markets, %d signals", len(markets), len(signals))
        return signals

    def _evaluate_market(self, market: MarketSnapshot, now: datetime) -> Signal | None:
        """Return the signal for one market, or None when it does not qualify."""
        if market.outcome_type != BINARY or market.is_resolved:
            return None
        p = market.probability
        if p >= _HALF or market.volume <= self._config.min_volume:
            return None
        if not has_deadline(market.question):
            return None

        duration = (market.close_time - market.created_time).total_seconds()
        if duration <= 0:
            return None
        elapsed = (now - market.created_time).total_seconds()
        fraction = Decimal(str(elapsed / duration))
        if fraction <= self._config.min_time_elapsed_fraction:
            return None
        fraction = min(fraction, ONE)

        estimated = p * (ONE - fraction * _DECAY_RATE)
        edge = p - estimated
        if edge <= self._config.min_edge or edge <= ZERO:
            return None

        logger.debug(
            "timedecay opportunity in %s: %.0f%% elapsed, market %.3f est %.3f",
            market.id,
            fraction * 100,
            p,
            estimated,
        )
        return Signal(
            market_id=market.id,
            outcome=Outcome.NO,
            confidence=ONE - estimated,
            market_prob=p,
            edge=edge,
            strategy=self.name,
            reason=(
                f"{fraction:.0%} of time elapsed, market at {p:.2f}, "
                f"estimated true prob {estimated:.2f}"
            ),
            is_limit=True,
            limit_prob=(p + estimated) / _TWO,
        )
