"""Two-sided limit orders around the market probability.

For liquid, balanced binary markets with time left to run, place a YES bid
half a spread below the market and a NO bid half a spread above it.  Deeper
pools get tighter spreads.
"""

import logging
from collections.abc import Sequence
from datetime import datetime, timedelta
from decimal import Decimal

from manifold_tools.apps.manifold_bot.config import MarketMakingConfig
from manifold_tools.apps.manifold_bot.models import MarketSnapshot, Signal
from manifold_tools.core.models import BINARY, ONE, Outcome

logger = logging.getLogger(__name__)

_TWO = Decimal(2)
_MIN_PROB = Decimal("0.20")
_MAX_PROB = Decimal("0.80")
_MIN_TIME_TO_CLOSE = timedelta(days=30)
_DEEP_LIQUIDITY = Decimal(2000)
_MEDIUM_LIQUIDITY = Decimal(1000)
_DEEP_SPREAD = Decimal("0.02")
_MEDIUM_SPREAD = Decimal("0.03")


class MarketMakingStrategy:
    """Quote both sides of balanced binary markets with limit orders."""

    def __init__(self, config: MarketMakingConfig) -> None:
        """Initialize the strategy.

        Args:
            config: Spread, liquidity and volume settings.

        """
        self._config = config

    @property
    def name(self) -> str:
        """Return the strategy name."""
        return "marketmaking"

    @property
    def enabled(self) -> bool:
        """Return whether the strategy is enabled."""
        return self._config.enabled

    def evaluate(self, markets: Sequence[MarketSnapshot], now: datetime) -> list[Signal]:
        """Emit a YES and a NO limit order for every eligible market.

        Args:
            markets: Market snapshots of this cycle.
            now: Evaluation instant for the time-to-close filter.

        Returns:
            Signals in pairs, YES before NO.

        """
        signals: list[Signal] = []
        for market in markets:
            if self._is_eligible(market, now):
                signals.extend(self._quote(market, self.spread_for(market)))
        logger.info("marketmaking scan: %d markets, %d signals", len(markets), len(signals))
        return signals

    def spread_for(self, market: MarketSnapshot) -> Decimal:
        """Return the full spread to quote for a market."""
        if market.total_liquidity > _DEEP_LIQUIDITY:
            return _DEEP_SPREAD
        if market.total_liquidity > _MEDIUM_LIQUIDITY:
            return _MEDIUM_SPREAD
        return self._config.base_spread

    def _is_eligible(self, market: MarketSnapshot, now: datetime) -> bool:
        if market.outcome_type != BINARY or market.is_resolved:
            return False
        if market.total_liquidity < self._config.min_liquidity:
            return False
        if market.volume_24h < self._config.min_volume_24h:
            return False
        if not (_MIN_PROB <= market.probability <= _MAX_PROB):
            return False
        return market.close_time - now >= _MIN_TIME_TO_CLOSE

    def _quote(self, market: MarketSnapshot, spread: Decimal) -> list[Signal]:
        p = market.probability
        half_spread = spread / _TWO
        bid = p - half_spread
        ask = p + half_spread
        logger.debug(
            "marketmaking opportunity in %s: prob %.3f spread %.3f liquidity %s",
            market.id,
            p,
            spread,
            market.total_liquidity,
        )
        return [
            Signal(
                market_id=market.id,
                outcome=Outcome.YES,
                confidence=p,
                market_prob=p,
                edge=half_spread,
                strategy=self.name,
                reason=f"bid YES at {bid:.3f} (market {p:.3f}, spread {spread:.3f})",
                is_limit=True,
                limit_prob=bid,
            ),
            Signal(
                market_id=market.id,
                outcome=Outcome.NO,
                confidence=ONE - p,
                market_prob=p,
                edge=half_spread,
                strategy=self.name,
                reason=f"ask NO at {ask:.3f} (market {p:.3f}, spread {spread:.3f})",
                is_limit=True,
                limit_prob=ask,
            ),
        ]
