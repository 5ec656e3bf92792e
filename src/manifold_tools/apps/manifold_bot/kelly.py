"""Kelly criterion for Manifold bets.

Express the bet through its net odds ``b``: buying YES at probability
``p_m`` pays ``1/p_m - 1`` per mana staked, buying NO pays
``1/(1 - p_m) - 1``.  The Kelly fraction for a win probability ``p`` is
then ``(b*p - (1 - p)) / b``.
"""

from decimal import Decimal

from manifold_tools.core.models import ONE, ZERO, Outcome


def net_odds(outcome: Outcome, market_prob: Decimal) -> Decimal:
    """Return the net odds of a winning bet on ``outcome``.

    Args:
        outcome: Side of the bet.
        market_prob: Current market probability of YES.

    Returns:
        Profit per mana staked if the bet wins, or ``ZERO`` when the price
        is degenerate (at or beyond 0 or 1).

    """
    if market_prob <= ZERO or market_prob >= ONE:
        return ZERO
    price = market_prob if outcome is Outcome.YES else ONE - market_prob
    return ONE / price - ONE


def kelly_fraction(confidence: Decimal, odds: Decimal) -> Decimal:
    """Return the full-Kelly fraction of bankroll to wager.

    Args:
        confidence: Estimated probability that the bet wins.
        odds: Net odds ``b`` of the bet.

    Returns:
        The Kelly fraction, or ``ZERO`` when the odds are non-positive or
        the bet has no positive expectation.

    """
    if odds <= ZERO:
        return ZERO
    fraction = (odds * confidence - (ONE - confidence)) / odds
    return max(fraction, ZERO)
