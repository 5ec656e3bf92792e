"""Async repository for the market store.

Wrap SQLAlchemy async engine and session management.  Provide the market
catalog upsert, append-only snapshot history, the live bet ledger with its
unresolved-exposure aggregate, bankroll history and the replay-bet table.
Snapshots read back for replay are rebuilt into ``MarketSnapshot`` objects
through the same ``Decimal(str(value))`` conversion the API client uses.
"""

import json
import logging
from collections.abc import Iterable, Sequence
from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import Any

from sqlalchemy import case, distinct, func, select
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from manifold_tools.apps.manifold_bot.models import (
    AnswerState,
    MarketSnapshot,
    ReplayDecision,
    SizedSignal,
)
from manifold_tools.apps.market_store.models import (
    BankrollSnapshot,
    Base,
    BetRecord,
    MarketRecord,
    MarketSnapshotRecord,
    ReplayBet,
)
from manifold_tools.core.models import BINARY, to_decimal
from manifold_tools.core.timestamps import from_epoch_ms, to_epoch_ms

logger = logging.getLogger(__name__)

_IN_MEMORY = {"", ":memory:"}


def _float_or_none(value: Decimal | None) -> float | None:
    return None if value is None else float(value)


def _encode_answers(snapshot: MarketSnapshot) -> str | None:
    """Serialise answer states to the JSON stored on a snapshot row."""
    if not snapshot.answers:
        return None
    return json.dumps(
        [
            {
                "id": a.id,
                "text": a.text,
                "probability": float(a.probability),
                "resolution": a.resolution,
            }
            for a in snapshot.answers
        ]
    )


def _decode_answers(raw: str | None) -> tuple[AnswerState, ...]:
    if not raw:
        return ()
    items: list[dict[str, Any]] = json.loads(raw)
    return tuple(
        AnswerState(
            id=str(item["id"]),
            text=str(item.get("text", "")),
            probability=to_decimal(item.get("probability")),
            resolution=str(item.get("resolution") or ""),
        )
        for item in items
    )


def _market_record(snapshot: MarketSnapshot, now_ms: int) -> MarketRecord:
    return MarketRecord(
        id=snapshot.id,
        question=snapshot.question,
        outcome_type=snapshot.outcome_type,
        mechanism=snapshot.mechanism,
        creator_id=snapshot.creator_id,
        created_time=to_epoch_ms(snapshot.created_time),
        close_time=to_epoch_ms(snapshot.close_time),
        url=snapshot.url,
        is_resolved=snapshot.is_resolved,
        resolution=snapshot.resolution or None,
        first_seen_at=now_ms,
        last_updated_at=now_ms,
    )


def _to_snapshot(row: MarketSnapshotRecord, market: MarketRecord) -> MarketSnapshot:
    """Rebuild a ``MarketSnapshot`` from a stored snapshot and its catalog row."""
    return MarketSnapshot(
        id=market.id,
        question=market.question,
        outcome_type=market.outcome_type,
        probability=to_decimal(row.probability),
        created_time=from_epoch_ms(market.created_time),
        close_time=from_epoch_ms(market.close_time),
        answers=_decode_answers(row.answers),
        volume=to_decimal(row.volume),
        volume_24h=to_decimal(row.volume_24h),
        total_liquidity=to_decimal(row.total_liquidity),
        pool_yes=to_decimal(row.pool_yes),
        pool_no=to_decimal(row.pool_no),
        is_resolved=row.is_resolved,
        resolution=row.resolution or "",
        creator_id=market.creator_id,
        url=market.url,
        mechanism=market.mechanism,
    )


class MarketRepository:
    """Async repository for market store persistence and retrieval.

    Args:
        db_url: SQLAlchemy async connection string
            (e.g. ``sqlite+aiosqlite:///data/manifold_bot.db``).

    """

    def __init__(self, db_url: str) -> None:
        """Initialize the repository with an async database engine.

        Args:
            db_url: SQLAlchemy async connection string.

        """
        self._db_url = db_url
        self._engine: AsyncEngine = create_async_engine(db_url, echo=False)
        self._session_factory = async_sessionmaker(
            self._engine, class_=AsyncSession, expire_on_commit=False
        )

    async def init_db(self) -> None:
        """Create the database directory and all tables if missing.

        Idempotent, safe to call on every startup.
        """
        url = make_url(self._db_url)
        if url.get_backend_name() == "sqlite" and (url.database or "") not in _IN_MEMORY:
            Path(url.database or "").parent.mkdir(parents=True, exist_ok=True)
        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables initialised")

    async def upsert_markets(self, snapshots: Sequence[MarketSnapshot], at: datetime) -> None:
        """Insert new catalog rows and refresh resolution state of known ones.

        Args:
            snapshots: Markets to upsert.
            at: Time of the update.

        """
        if not snapshots:
            return
        now_ms = to_epoch_ms(at)
        async with self._session_factory() as session, session.begin():
            ids = [s.id for s in snapshots]
            existing = {
                m.id: m
                for m in (
                    await session.execute(select(MarketRecord).where(MarketRecord.id.in_(ids)))
                ).scalars()
            }
            for snapshot in snapshots:
                record = existing.get(snapshot.id)
                if record is None:
                    record = _market_record(snapshot, now_ms)
                    session.add(record)
                    existing[snapshot.id] = record
                else:
                    record.is_resolved = snapshot.is_resolved
                    record.resolution = snapshot.resolution or None
                    record.last_updated_at = now_ms
        logger.debug("Upserted %d markets", len(snapshots))

    async def ensure_market_exists(self, snapshot: MarketSnapshot, at: datetime) -> None:
        """Insert the catalog row for a market unless it is already present.

        Args:
            snapshot: Market to register.
            at: Time of the insert.

        """
        async with self._session_factory() as session, session.begin():
            if await session.get(MarketRecord, snapshot.id) is None:
                session.add(_market_record(snapshot, to_epoch_ms(at)))

    async def save_snapshots(self, snapshots: Iterable[MarketSnapshot], at: datetime) -> int:
        """Append one snapshot row per market, all stamped with ``at``.

        The markets must already exist in the catalog.

        Args:
            snapshots: Markets to record.
            at: Collection-cycle time shared by every row.

        Returns:
            Number of rows written.

        """
        at_ms = to_epoch_ms(at)
        rows = [
            MarketSnapshotRecord(
                market_id=s.id,
                probability=float(s.probability),
                answers=_encode_answers(s),
                volume=float(s.volume),
                volume_24h=float(s.volume_24h),
                total_liquidity=float(s.total_liquidity),
                pool_yes=float(s.pool_yes),
                pool_no=float(s.pool_no),
                is_resolved=s.is_resolved,
                resolution=s.resolution or None,
                snapshot_at=at_ms,
            )
            for s in snapshots
        ]
        if not rows:
            return 0
        async with self._session_factory() as session, session.begin():
            session.add_all(rows)
        logger.debug("Saved %d snapshots", len(rows))
        return len(rows)

    async def record_bet(
        self,
        sized: SizedSignal,
        *,
        bet_id: str,
        kelly_fraction: Decimal,
        limit_prob: Decimal | None,
        placed_at: datetime,
    ) -> None:
        """Append a placed bet to the ledger.

        Args:
            sized: The executed sized signal.
            bet_id: Provider bet identifier.
            kelly_fraction: Fractional Kelly multiplier in force.
            limit_prob: Limit probability actually sent, if any.
            placed_at: Placement time.

        """
        signal = sized.signal
        record = BetRecord(
            market_id=signal.market_id,
            answer_id=signal.answer_id,
            bet_id=bet_id,
            strategy=signal.strategy,
            outcome=signal.outcome.value,
            amount=float(sized.amount),
            limit_prob=_float_or_none(limit_prob),
            expected_prob=float(signal.confidence),
            market_prob_at_bet=float(signal.market_prob),
            edge=float(signal.edge),
            kelly_fraction=float(kelly_fraction),
            placed_at=to_epoch_ms(placed_at),
        )
        async with self._session_factory() as session, session.begin():
            session.add(record)

    async def record_replay_bets(self, run_id: str, decisions: Sequence[ReplayDecision]) -> None:
        """Append the accepted signals of one replay step.

        Args:
            run_id: Identifier of the replay run.
            decisions: Accepted signals with their snapshot time.

        """
        if not decisions:
            return
        rows = [
            ReplayBet(
                run_id=run_id,
                snapshot_at=to_epoch_ms(d.timestamp),
                market_id=d.sized.signal.market_id,
                answer_id=d.sized.signal.answer_id,
                strategy=d.sized.signal.strategy,
                outcome=d.sized.signal.outcome.value,
                amount=float(d.sized.amount),
                limit_prob=_float_or_none(d.sized.signal.limit_prob),
                expected_prob=float(d.sized.signal.confidence),
                market_prob=float(d.sized.signal.market_prob),
                edge=float(d.sized.signal.edge),
            )
            for d in decisions
        ]
        async with self._session_factory() as session, session.begin():
            session.add_all(rows)

    async def save_bankroll(
        self,
        balance: Decimal,
        investment_value: Decimal,
        total_value: Decimal,
        at: datetime,
    ) -> None:
        """Append a bankroll snapshot."""
        async with self._session_factory() as session, session.begin():
            session.add(
                BankrollSnapshot(
                    balance=float(balance),
                    investment_value=float(investment_value),
                    total_value=float(total_value),
                    snapshot_at=to_epoch_ms(at),
                )
            )

    async def unresolved_exposure_by_market(self) -> dict[str, Decimal]:
        """Return the sum of unresolved bet amounts grouped by market."""
        stmt = (
            select(BetRecord.market_id, func.sum(BetRecord.amount))
            .where(BetRecord.resolved.is_(False))
            .group_by(BetRecord.market_id)
        )
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return {market_id: to_decimal(total) for market_id, total in result.all()}

    async def distinct_snapshot_times(self, start: datetime, end: datetime) -> list[datetime]:
        """Return the distinct snapshot instants within ``[start, end]``, ascending."""
        stmt = (
            select(distinct(MarketSnapshotRecord.snapshot_at))
            .where(
                MarketSnapshotRecord.snapshot_at >= to_epoch_ms(start),
                MarketSnapshotRecord.snapshot_at <= to_epoch_ms(end),
            )
            .order_by(MarketSnapshotRecord.snapshot_at)
        )
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return [from_epoch_ms(ms) for ms in result.scalars().all()]

    async def snapshots_at(self, at: datetime) -> list[MarketSnapshot]:
        """Rebuild every market snapshot recorded at one instant.

        Rows that fail snapshot validation are logged and skipped.

        Args:
            at: Snapshot instant as returned by ``distinct_snapshot_times``.

        Returns:
            Snapshots in scan order: binary markets before other types, each
            group by liquidity (highest first), ties broken by market id.

        """
        stmt = (
            select(MarketSnapshotRecord, MarketRecord)
            .join(MarketRecord, MarketRecord.id == MarketSnapshotRecord.market_id)
            .where(MarketSnapshotRecord.snapshot_at == to_epoch_ms(at))
            .order_by(
                case((MarketRecord.outcome_type == BINARY, 0), else_=1),
                MarketSnapshotRecord.total_liquidity.desc(),
                MarketRecord.id,
            )
        )
        async with self._session_factory() as session:
            rows = (await session.execute(stmt)).all()
        snapshots: list[MarketSnapshot] = []
        for row, market in rows:
            try:
                snapshots.append(_to_snapshot(row, market))
            except ValueError:
                logger.warning("Skipping invalid snapshot row %d", row.id, exc_info=True)
        return snapshots

    async def get_bets(self) -> list[BetRecord]:
        """Return every ledger bet ordered by placement time."""
        stmt = select(BetRecord).order_by(BetRecord.placed_at, BetRecord.id)
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return list(result.scalars().all())

    async def get_bankroll_history(self) -> list[BankrollSnapshot]:
        """Return every bankroll snapshot ordered by time."""
        stmt = select(BankrollSnapshot).order_by(BankrollSnapshot.snapshot_at, BankrollSnapshot.id)
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return list(result.scalars().all())

    async def get_snapshot_count(self) -> int:
        """Return the total number of stored snapshot rows."""
        stmt = select(func.count()).select_from(MarketSnapshotRecord)
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return result.scalar_one()

    async def close(self) -> None:
        """Dispose the async engine and release all connections."""
        await self._engine.dispose()
        logger.info("Database engine disposed")
