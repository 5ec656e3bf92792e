"""Protocol for Manifold signal generators.

Define the ``SignalGenerator`` interface that decouples the trading
pipeline from concrete strategy implementations.  A generator sees the
whole market set of one cycle at once and returns zero or more signals.
"""

from collections.abc import Sequence
from datetime import datetime
from typing import Protocol, runtime_checkable

from manifold_tools.apps.manifold_bot.models import MarketSnapshot, Signal


@runtime_checkable
class SignalGenerator(Protocol):
    """Strategy interface for Manifold trading.

    Implementations are pure with respect to their inputs: the same
    markets and ``now`` always produce the same signals, which is what
    lets replay reproduce live decisions.
    """

    @property
    def name(self) -> str:
        """Return the strategy name used to tag signals."""
        ...

    @property
    def enabled(self) -> bool:
        """Return whether the strategy should run."""
        ...

    def evaluate(self, markets: Sequence[MarketSnapshot], now: datetime) -> list[Signal]:
        """Evaluate the market set and return trading signals.

        Args:
            markets: Snapshots of every market seen in this cycle.
            now: Evaluation instant (wall clock live, snapshot time in replay).

        Returns:
            Signals in a deterministic order; empty when nothing qualifies.

        """
        ...
