"""SQLAlchemy ORM models for the market store.

Times are stored as epoch milliseconds, matching the Manifold API.  Every
snapshot written by one collection cycle shares the same ``snapshot_at``
so replay can rebuild the full market set of that instant.
"""

from sqlalchemy import BigInteger, Boolean, Float, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Declarative base class for all market store ORM models."""


class MarketRecord(Base):
    """Catalog entry for a market the bot has seen.

    Attributes:
        id: Provider market identifier.
        question: Market question.
        outcome_type: ``BINARY`` or ``MULTIPLE_CHOICE``.
        mechanism: Market mechanism tag.
        creator_id: Market creator.
        created_time: Creation time in epoch milliseconds.
        close_time: Close time in epoch milliseconds.
        url: Public market URL.
        is_resolved: Whether the market had resolved at the last update.
        resolution: Resolution string, if resolved.
        first_seen_at: When the row was inserted (epoch ms).
        last_updated_at: When the row was last upserted (epoch ms).

    """

    __tablename__ = "markets"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    question: Mapped[str] = mapped_column(Text)
    outcome_type: Mapped[str] = mapped_column(String)
    mechanism: Mapped[str] = mapped_column(String)
    creator_id: Mapped[str] = mapped_column(String)
    created_time: Mapped[int] = mapped_column(BigInteger)
    close_time: Mapped[int] = mapped_column(BigInteger)
    url: Mapped[str] = mapped_column(String)
    is_resolved: Mapped[bool] = mapped_column(Boolean, default=False)
    resolution: Mapped[str | None] = mapped_column(String, nullable=True)
    first_seen_at: Mapped[int] = mapped_column(BigInteger)
    last_updated_at: Mapped[int] = mapped_column(BigInteger)


class MarketSnapshotRecord(Base):
    """Point-in-time market state captured by the collector.

    Attributes:
        id: Auto-incrementing primary key.
        market_id: Market the snapshot belongs to.
        probability: YES probability (binary markets).
        answers: JSON list of ``{id, text, probability, resolution}`` objects.
        volume: All-time volume.
        volume_24h: Volume over the previous 24 hours.
        total_liquidity: Pool liquidity.
        pool_yes: YES shares in the pool.
        pool_no: NO shares in the pool.
        is_resolved: Resolved flag at capture time.
        resolution: Resolution string at capture time.
        snapshot_at: Collection-cycle time in epoch milliseconds.

    """

    __tablename__ = "market_snapshots"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    market_id: Mapped[str] = mapped_column(String, ForeignKey("markets.id"))
    probability: Mapped[float] = mapped_column(Float)
    answers: Mapped[str | None] = mapped_column(Text, nullable=True)
    volume: Mapped[float] = mapped_column(Float)
    volume_24h: Mapped[float] = mapped_column(Float)
    total_liquidity: Mapped[float] = mapped_column(Float)
    pool_yes: Mapped[float] = mapped_column(Float)
    pool_no: Mapped[float] = mapped_column(Float)
    is_resolved: Mapped[bool] = mapped_column(Boolean, default=False)
    resolution: Mapped[str | None] = mapped_column(String, nullable=True)
    snapshot_at: Mapped[int] = mapped_column(BigInteger, index=True)

    __table_args__ = (Index("ix_snapshots_market_time", "market_id", "snapshot_at"),)


class BetRecord(Base):
    """A live bet placed by the bot.

    Attributes:
        id: Auto-incrementing primary key.
        market_id: Market bet on (indexed).
        answer_id: Answer bet on, empty for binary markets.
        bet_id: Provider bet identifier.
        strategy: Strategy that produced the signal (indexed).
        outcome: ``YES`` or ``NO``.
        amount: Mana wagered.
        limit_prob: Limit probability sent with the bet, if any.
        expected_prob: Strategy confidence that the outcome resolves true.
        market_prob_at_bet: Market probability when the signal was produced.
        edge: Strategy edge.
        kelly_fraction: Fractional Kelly multiplier in force.
        placed_at: Placement time in epoch milliseconds.
        resolved: Whether the bet has been settled.
        resolution: Market resolution once settled.
        pnl: Realised profit once settled.
        resolved_at: Settlement time in epoch milliseconds.

    """

    __tablename__ = "bot_bets"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    market_id: Mapped[str] = mapped_column(String, ForeignKey("markets.id"), index=True)
    answer_id: Mapped[str] = mapped_column(String, default="")
    bet_id: Mapped[str] = mapped_column(String, default="")
    strategy: Mapped[str] = mapped_column(String, index=True)
    outcome: Mapped[str] = mapped_column(String)
    amount: Mapped[float] = mapped_column(Float)
    limit_prob: Mapped[float | None] = mapped_column(Float, nullable=True)
    expected_prob: Mapped[float] = mapped_column(Float)
    market_prob_at_bet: Mapped[float] = mapped_column(Float)
    edge: Mapped[float] = mapped_column(Float)
    kelly_fraction: Mapped[float] = mapped_column(Float)
    placed_at: Mapped[int] = mapped_column(BigInteger)
    resolved: Mapped[bool] = mapped_column(Boolean, default=False)
    resolution: Mapped[str | None] = mapped_column(String, nullable=True)
    pnl: Mapped[float | None] = mapped_column(Float, nullable=True)
    resolved_at: Mapped[int | None] = mapped_column(BigInteger, nullable=True)


class BankrollSnapshot(Base):
    """Portfolio value recorded at the end of a trading cycle."""

    __tablename__ = "bankroll_snapshots"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    balance: Mapped[float] = mapped_column(Float)
    investment_value: Mapped[float] = mapped_column(Float)
    total_value: Mapped[float] = mapped_column(Float)
    snapshot_at: Mapped[int] = mapped_column(BigInteger, index=True)


class ReplayBet(Base):
    """A sized signal accepted during a replay run.

    Kept apart from ``bot_bets`` so replays never feed the live exposure
    reconciliation or performance reports.

    Attributes:
        id: Auto-incrementing primary key.
        run_id: Identifier shared by every row of one replay run (indexed).
        snapshot_at: Snapshot instant that produced the signal (epoch ms).
        market_id: Market bet on.
        answer_id: Answer bet on, empty for binary markets.
        strategy: Strategy that produced the signal.
        outcome: ``YES`` or ``NO``.
        amount: Approved mana amount.
        limit_prob: Limit probability, if a limit order.
        expected_prob: Strategy confidence.
        market_prob: Market probability at the snapshot.
        edge: Strategy edge.

    """

    __tablename__ = "replay_bets"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    run_id: Mapped[str] = mapped_column(String, index=True)
    snapshot_at: Mapped[int] = mapped_column(BigInteger)
    market_id: Mapped[str] = mapped_column(String)
    answer_id: Mapped[str] = mapped_column(String, default="")
    strategy: Mapped[str] = mapped_column(String)
    outcome: Mapped[str] = mapped_column(String)
    amount: Mapped[float] = mapped_column(Float)
    limit_prob: Mapped[float | None] = mapped_column(Float, nullable=True)
    expected_prob: Mapped[float] = mapped_column(Float)
    market_prob: Mapped[float] = mapped_column(Float)
    edge: Mapped[float] = mapped_column(Float)
