"""Risk manager: gate trading and size signals under portfolio limits.

Sizing is fractional Kelly, capped in turn by the maximum position size,
the remaining total-exposure budget and the cash balance, then floored to
whole mana.  ``size_signals`` additionally enforces a per-market exposure
cap across persisted exposure and earlier signals of the same batch.

Degenerate inputs (zero prices, empty bankroll, negative budgets) never
raise; they size to zero and the signal is dropped.
"""

import logging
from collections.abc import Iterable, Mapping
from decimal import ROUND_FLOOR, Decimal

from manifold_tools.apps.manifold_bot.config import RiskConfig
from manifold_tools.apps.manifold_bot.kelly import kelly_fraction, net_odds
from manifold_tools.apps.manifold_bot.models import Signal, SizedSignal
from manifold_tools.apps.manifold_bot.portfolio import Portfolio
from manifold_tools.core.models import ZERO

logger = logging.getLogger(__name__)


def _floor(value: Decimal) -> int:
    return int(value.to_integral_value(rounding=ROUND_FLOOR))


class RiskManager:
    """Track exposure and turn signals into bounded bet amounts.

    Args:
        config: Risk limits.
        portfolio: Bankroll to size against; read on every call.

    """

    def __init__(self, config: RiskConfig, portfolio: Portfolio) -> None:
        """Initialize with no exposure and no high-water mark.

        Args:
            config: Risk limits.
            portfolio: Bankroll to size against.

        """
        self._config = config
        self._portfolio = portfolio
        self._total_exposure = ZERO
        self._market_exposure: dict[str, Decimal] = {}
        self._peak_value = ZERO

    @property
    def total_exposure(self) -> Decimal:
        """Return the mana currently at risk across all markets."""
        return self._total_exposure

    @property
    def peak_value(self) -> Decimal:
        """Return the high-water mark of the portfolio total value."""
        return self._peak_value

    def market_exposure(self, market_id: str) -> Decimal:
        """Return the recorded exposure to one market."""
        return self._market_exposure.get(market_id, ZERO)

    def can_trade(self) -> bool:
        """Return whether drawdown and total exposure still allow trading.

        Raises the high-water mark to the current total value as a side
        effect.
        """
        total = self._portfolio.total_value
        if total <= ZERO:
            logger.warning("Cannot trade: portfolio total value is %s", total)
            return False

        self._peak_value = max(self._peak_value, total)
        drawdown = (self._peak_value - total) / self._peak_value
        if drawdown >= self._config.max_drawdown_pct:
            logger.warning(
                "Trading halted: drawdown %.2f%% >= limit %.2f%%",
                drawdown * 100,
                self._config.max_drawdown_pct * 100,
            )
            return False

        exposure_pct = self._total_exposure / total
        if exposure_pct >= self._config.max_total_exposure:
            logger.warning(
                "Trading halted: exposure %.2f%% >= limit %.2f%%",
                exposure_pct * 100,
                self._config.max_total_exposure * 100,
            )
            return False
        return True

    def size_position(self, signal: Signal) -> int:
        """Return the whole-mana amount to bet on one signal, or 0.

        Args:
            signal: Signal to size.

        Returns:
            Amount in mana; 0 when the signal should not be traded.

        """
        if signal.edge < self._config.min_edge:
            return 0
        odds = net_odds(signal.outcome, signal.market_prob)
        fraction = kelly_fraction(signal.confidence, odds)
        if fraction <= ZERO:
            return 0

        balance = self._portfolio.balance
        total = self._portfolio.total_value
        amount = fraction * self._config.kelly_fraction * balance
        amount = min(amount, self._config.max_position_pct * total)
        amount = min(amount, self._config.max_total_exposure * total - self._total_exposure)
        amount = min(amount, balance)

        whole = _floor(amount)
        if whole < self._config.min_bet_amount:
            return 0
        return whole

    def size_signals(self, signals: Iterable[Signal]) -> list[SizedSignal]:
        """Size a batch of signals, enforcing the per-market exposure cap.

        Signals are considered in order; an accepted amount counts against
        its market's cap for later signals in the same batch.

        Args:
            signals: Signals of one cycle in generator order.

        Returns:
            Accepted signals with their amounts; empty when trading is halted.

        """
        if not self.can_trade():
            return []

        market_cap_pct = self._config.max_market_exposure_pct
        batch_exposure: dict[str, Decimal] = {}
        sized: list[SizedSignal] = []
        for signal in signals:
            amount = self.size_position(signal)

            if market_cap_pct > ZERO:
                cap = market_cap_pct * self._portfolio.total_value
                existing = self.market_exposure(signal.market_id) + batch_exposure.get(
                    signal.market_id, ZERO
                )
                remaining = cap - existing
                if remaining <= ZERO:
                    logger.info(
                        "Signal rejected: market %s exposure %s reached cap %s",
                        signal.market_id,
                        existing,
                        cap,
                    )
                    continue
                if amount > remaining:
                    amount = _floor(remaining)

            if amount > 0 and amount >= self._config.min_bet_amount:
                batch_exposure[signal.market_id] = (
                    batch_exposure.get(signal.market_id, ZERO) + amount
                )
                sized.append(SizedSignal(signal=signal, amount=amount))
            else:
                logger.info(
                    "Signal rejected by risk: %s %s %s edge=%.4f confidence=%.4f "
                    "market_prob=%.4f amount=%d",
                    signal.strategy,
                    signal.market_id,
                    signal.outcome.value,
                    signal.edge,
                    signal.confidence,
                    signal.market_prob,
                    amount,
                )
        return sized

    def record_trade(self, market_id: str, amount: Decimal | int) -> None:
        """Add an executed (or replay-accepted) bet to the exposure totals."""
        value = Decimal(amount)
        self._total_exposure += value
        self._market_exposure[market_id] = self.market_exposure(market_id) + value

    def refresh(self, exposure: Decimal) -> None:
        """Raise the high-water mark and overwrite total exposure.

        Args:
            exposure: Authoritative mana at risk (invested value live,
                simulated figure in replay).

        """
        self._peak_value = max(self._peak_value, self._portfolio.total_value)
        self._total_exposure = exposure

    def set_market_exposure(self, exposure: Mapping[str, Decimal]) -> None:
        """Replace the per-market exposure map, e.g. from the bet ledger."""
        self._market_exposure = dict(exposure)
