"""Signal generators for Manifold markets.

Each strategy implements the ``SignalGenerator`` protocol and holds only its
own configuration.  ``build_strategies`` returns them in the fixed order the
pipeline runs them.
"""

from manifold_tools.apps.manifold_bot.config import BotConfig
from manifold_tools.apps.manifold_bot.protocols import SignalGenerator
from manifold_tools.apps.manifold_bot.strategies.arbitrage import ArbitrageStrategy
from manifold_tools.apps.manifold_bot.strategies.market_making import MarketMakingStrategy
from manifold_tools.apps.manifold_bot.strategies.mispricing import MispricingStrategy
from manifold_tools.apps.manifold_bot.strategies.time_decay import TimeDecayStrategy


def build_strategies(config: BotConfig) -> list[SignalGenerator]:
    """Create every strategy in evaluation order.

    Disabled strategies are included; the pipeline skips them.

    Args:
        config: Bot configuration holding each strategy's settings.

    Returns:
        Arbitrage, mispricing, time decay and market making, in that order.

    """
    return [
        ArbitrageStrategy(config.arbitrage),
        MispricingStrategy(config.mispricing),
        TimeDecayStrategy(config.timedecay),
        MarketMakingStrategy(config.marketmaking),
    ]


__all__ = [
    "ArbitrageStrategy",
    "MarketMakingStrategy",
    "MispricingStrategy",
    "TimeDecayStrategy",
    "build_strategies",
]
