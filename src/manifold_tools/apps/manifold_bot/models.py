"""Data models for the Manifold trading bot.

Define the immutable value objects that flow through the bot's pipeline:
market snapshots are the unit every strategy evaluates, signals carry a
strategy's view of an opportunity, sized signals carry the amount the risk
manager approved, and result objects summarise executions, replays and
performance reports.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from manifold_tools.core.models import ONE, ZERO, Outcome

_ACTIVE_LOW = Decimal("0.001")
_ACTIVE_HIGH = Decimal("0.999")


def _check_probability(name: str, value: Decimal) -> None:
    """Raise ``ValueError`` when a probability lies outside [0, 1]."""
    if not (ZERO <= value <= ONE):
        msg = f"{name} must be between 0 and 1, got {value}"
        raise ValueError(msg)


@dataclass(frozen=True)
class AnswerState:
    """State of one answer in a multiple-choice market.

    Args:
        id: Provider answer identifier.
        text: Display text.
        probability: Current probability between 0 and 1.
        resolution: ``YES``, ``NO``, ``CANCEL`` or empty while unresolved.

    Raises:
        ValueError: If the probability is outside [0, 1].

    """

    id: str
    text: str
    probability: Decimal
    resolution: str = ""

    def __post_init__(self) -> None:
        """Validate the probability range."""
        _check_probability("answer probability", self.probability)

    @property
    def is_active(self) -> bool:
        """Return True for an unresolved answer priced strictly inside (0.001, 0.999)."""
        return not self.resolution and _ACTIVE_LOW < self.probability < _ACTIVE_HIGH


@dataclass(frozen=True)
class MarketSnapshot:
    """Point-in-time view of one Manifold market.

    The same type is produced by the live scanner and reconstructed from
    the snapshot store during replay, so strategies cannot tell the two
    apart.

    Args:
        id: Provider market identifier.
        question: The market question.
        outcome_type: ``BINARY`` or ``MULTIPLE_CHOICE``.
        probability: YES probability (binary markets).
        answers: Answer states (multiple-choice markets).
        volume: All-time volume in mana.
        volume_24h: Volume traded over the last 24 hours.
        total_liquidity: Liquidity in the market pool.
        pool_yes: YES shares in the AMM pool.
        pool_no: NO shares in the AMM pool.
        created_time: When the market was created (UTC).
        close_time: When the market closes (UTC).
        is_resolved: Whether the market has resolved.
        resolution: Resolution string once resolved.
        creator_id: Identifier of the market creator.
        url: Public URL of the market.
        mechanism: Market mechanism tag.

    Raises:
        ValueError: If a probability is outside [0, 1] or the market
            closes before it was created.

    """

    id: str
    question: str
    outcome_type: str
    probability: Decimal
    created_time: datetime
    close_time: datetime
    answers: tuple[AnswerState, ...] = ()
    volume: Decimal = ZERO
    volume_24h: Decimal = ZERO
    total_liquidity: Decimal = ZERO
    pool_yes: Decimal = ZERO
    pool_no: Decimal = ZERO
    is_resolved: bool = False
    resolution: str = ""
    creator_id: str = ""
    url: str = ""
    mechanism: str = ""

    def __post_init__(self) -> None:
        """Validate probabilities and the market lifetime."""
        _check_probability("probability", self.probability)
        if self.close_time < self.created_time:
            msg = f"close_time {self.close_time} is before created_time {self.created_time}"
            raise ValueError(msg)

    @property
    def active_answers(self) -> list[AnswerState]:
        """Return the answers that are still tradeable."""
        return [a for a in self.answers if a.is_active]


@dataclass(frozen=True)
class Signal:
    """A strategy's recommendation to bet on one market outcome.

    Args:
        market_id: Market to bet on.
        outcome: Side of the bet.
        confidence: Estimated probability that ``outcome`` resolves true.
        market_prob: Market probability observed when the signal was produced.
        edge: Expected advantage over the market price.
        strategy: Name of the producing strategy.
        reason: Human-readable rationale.
        answer_id: Answer to bet on for multiple-choice markets.
        is_limit: Whether to place a limit order.
        limit_prob: Target probability of the limit order.

    Raises:
        ValueError: If confidence or market probability is outside [0, 1].

    """

    market_id: str
    outcome: Outcome
    confidence: Decimal
    market_prob: Decimal
    edge: Decimal
    strategy: str
    reason: str
    answer_id: str = ""
    is_limit: bool = False
    limit_prob: Decimal | None = None

    def __post_init__(self) -> None:
        """Validate the probability fields."""
        _check_probability("confidence", self.confidence)
        _check_probability("market_prob", self.market_prob)


@dataclass(frozen=True)
class SizedSignal:
    """A signal together with the whole-mana amount approved by risk.

    Args:
        signal: The originating signal.
        amount: Approved amount in whole mana, always positive.

    Raises:
        ValueError: If the amount is not positive.

    """

    signal: Signal
    amount: int

    def __post_init__(self) -> None:
        """Reject zero or negative amounts."""
        if self.amount <= 0:
            msg = f"amount must be positive, got {self.amount}"
            raise ValueError(msg)


@dataclass(frozen=True)
class ExecutionResult:
    """Outcome of handing one sized signal to the execution sink.

    Args:
        sized: The sized signal that was executed.
        success: Whether the bet was placed.
        bet_id: Provider bet identifier on success.
        error: Failure or skip reason otherwise.

    """

    sized: SizedSignal
    success: bool
    bet_id: str = ""
    error: str = ""


@dataclass(frozen=True)
class ReplayDecision:
    """One sized signal accepted during a replay, tagged with its snapshot time."""

    timestamp: datetime
    sized: SizedSignal


def _empty_counts() -> dict[str, int]:
    """Create an empty per-strategy counter."""
    return {}


@dataclass(frozen=True)
class ReplayResult:
    """Summary of a replay run over recorded snapshots.

    Args:
        snapshots_processed: Number of distinct snapshot instants replayed.
        decisions: Every accepted sized signal in the order it was produced.
        total_wagered: Sum of all accepted amounts.
        starting_balance: Simulated balance the replay started with.
        bets_by_strategy: Count of accepted signals per strategy.

    """

    snapshots_processed: int
    decisions: tuple[ReplayDecision, ...]
    total_wagered: Decimal
    starting_balance: Decimal
    bets_by_strategy: dict[str, int] = field(default_factory=_empty_counts)

    @property
    def total_bets(self) -> int:
        """Return the number of accepted signals."""
        return len(self.decisions)


@dataclass(frozen=True)
class StrategyStats:
    """Ledger statistics for one strategy.

    Args:
        strategy: Strategy name.
        bet_count: Number of bets placed.
        wagered: Total mana wagered.
        pnl: Realised profit of resolved bets.
        roi: ``pnl / wagered``.
        win_rate: Fraction of resolved bets with positive profit.
        avg_edge: Mean recorded edge of resolved bets.

    """

    strategy: str
    bet_count: int
    wagered: Decimal
    pnl: Decimal
    roi: Decimal
    win_rate: Decimal
    avg_edge: Decimal


@dataclass(frozen=True)
class PerformanceReport:
    """Aggregate performance of the bet ledger and bankroll history.

    Args:
        total_bets: Number of bets in the ledger.
        resolved_bets: Number of resolved bets.
        total_wagered: Total mana wagered.
        total_pnl: Realised profit of resolved bets.
        roi: ``total_pnl / total_wagered``.
        win_rate: Fraction of resolved bets with positive profit.
        peak_balance: Highest recorded total value.
        max_drawdown: Largest peak-to-trough decline as a fraction of the peak.
        strategies: Per-strategy statistics ordered by strategy name.

    """

    total_bets: int
    resolved_bets: int
    total_wagered: Decimal
    total_pnl: Decimal
    roi: Decimal
    win_rate: Decimal
    peak_balance: Decimal
    max_drawdown: Decimal
    strategies: tuple[StrategyStats, ...] = ()
