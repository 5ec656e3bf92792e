"""Typed data models for Manifold API responses.

Provide frozen dataclasses that insulate the rest of the codebase from the
untyped dictionaries returned by the Manifold v0 API.  Probabilities and
mana amounts use ``Decimal``; timestamps stay as the provider's epoch
milliseconds so callers decide how to interpret them.
"""

from dataclasses import dataclass, field
from decimal import Decimal


@dataclass(frozen=True)
class Answer:
    """One answer of a multiple-choice market.

    Args:
        id: Provider answer identifier.
        text: Display text of the answer.
        probability: Current probability between 0 and 1.
        resolution: ``YES``, ``NO``, ``CANCEL`` or empty while unresolved.

    """

    id: str
    text: str
    probability: Decimal
    resolution: str = ""


@dataclass(frozen=True)
class Market:
    """Typed representation of a Manifold market (``LiteMarket`` / ``FullMarket``).

    Args:
        id: Provider market identifier.
        question: The market question.
        outcome_type: ``BINARY``, ``MULTIPLE_CHOICE`` or another provider type.
        probability: Probability of YES for binary markets.
        answers: Answers of a multiple-choice market.
        volume: All-time traded volume in mana.
        volume_24h: Volume traded in the last 24 hours.
        total_liquidity: Liquidity subsidy currently in the pool.
        pool_yes: YES shares in the AMM pool.
        pool_no: NO shares in the AMM pool.
        created_time: Creation time in epoch milliseconds.
        close_time: Close time in epoch milliseconds, if the market has one.
        is_resolved: Whether the market has resolved.
        resolution: Resolution string once resolved.
        creator_id: Identifier of the market creator.
        url: Public URL of the market.
        mechanism: Market mechanism tag (e.g. ``cpmm-1``).

    """

    id: str
    question: str
    outcome_type: str
    probability: Decimal
    answers: tuple[Answer, ...] = ()
    volume: Decimal = Decimal(0)
    volume_24h: Decimal = Decimal(0)
    total_liquidity: Decimal = Decimal(0)
    pool_yes: Decimal = Decimal(0)
    pool_no: Decimal = Decimal(0)
    created_time: int = 0
    close_time: int | None = None
    is_resolved: bool = False
    resolution: str = ""
    creator_id: str = ""
    url: str = ""
    mechanism: str = ""


def _empty_probs() -> dict[str, Decimal]:
    """Create an empty answer-probability mapping."""
    return {}


@dataclass(frozen=True)
class MarketProbs:
    """Probabilities returned by the batch ``/market-probs`` endpoint.

    Args:
        prob: YES probability for binary markets, ``None`` otherwise.
        answer_probs: Answer identifier to probability for multi-outcome markets.

    """

    prob: Decimal | None = None
    answer_probs: dict[str, Decimal] = field(default_factory=_empty_probs)


@dataclass(frozen=True)
class User:
    """The authenticated user returned by ``/me``.

    Args:
        id: Provider user identifier.
        username: Public username.
        balance: Cash balance in mana.

    """

    id: str
    username: str
    balance: Decimal


@dataclass(frozen=True)
class UserPortfolio:
    """Portfolio metrics for a user.

    Args:
        investment_value: Current value of open positions in mana.
        balance: Cash balance in mana.

    """

    investment_value: Decimal
    balance: Decimal


@dataclass(frozen=True)
class BetRequest:
    """Parameters for placing a bet.

    Args:
        contract_id: Market identifier.
        outcome: ``YES`` or ``NO``.
        amount: Whole mana to wager.
        answer_id: Answer identifier for multiple-choice markets.
        limit_prob: Limit probability; ``None`` places a market order.

    """

    contract_id: str
    outcome: str
    amount: int
    answer_id: str = ""
    limit_prob: Decimal | None = None


@dataclass(frozen=True)
class BetResponse:
    """Result of a placed bet.

    Args:
        bet_id: Provider bet identifier.
        amount: Mana actually spent (limit orders may fill partially).
        shares: Shares received.
        is_filled: Whether the order filled completely.

    """

    bet_id: str
    amount: Decimal
    shares: Decimal
    is_filled: bool
