"""Fetch open markets from the Manifold API as ``MarketSnapshot`` objects.

Search results for multiple-choice markets carry no answer probabilities
and no per-answer resolutions, so those markets are enriched in two
passes: one batch call per 100 markets for probabilities, then a detail
fetch for each likely arbitrage candidate with at most ten requests in
flight.
"""

import asyncio
import dataclasses
import logging
from collections.abc import Sequence
from decimal import Decimal

from manifold_tools.apps.manifold_bot.models import AnswerState, MarketSnapshot
from manifold_tools.clients.manifold.client import ManifoldClient
from manifold_tools.clients.manifold.exceptions import ManifoldAPIError
from manifold_tools.clients.manifold.models import Market
from manifold_tools.core.models import BINARY, MULTIPLE_CHOICE, ZERO
from manifold_tools.core.timestamps import from_epoch_ms

logger = logging.getLogger(__name__)

PROBS_BATCH_SIZE = 100
MAX_CONCURRENT_FETCHES = 10
_CANDIDATE_MIN_LIQUIDITY = Decimal(50)
_CANDIDATE_MIN_ANSWERS = 2
_ACTIVE_LOW = Decimal("0.001")
_ACTIVE_HIGH = Decimal("0.999")


def snapshot_from_market(market: Market) -> MarketSnapshot | None:
    """Convert an API market into a snapshot.

    Args:
        market: Typed market from the client.

    Returns:
        The snapshot, or ``None`` when the market has no close time or
        carries values that fail snapshot validation.

    """
    if market.close_time is None:
        return None
    try:
        return MarketSnapshot(
            id=market.id,
            question=market.question,
            outcome_type=market.outcome_type,
            probability=market.probability,
            created_time=from_epoch_ms(market.created_time),
            close_time=from_epoch_ms(market.close_time),
            answers=tuple(
                AnswerState(id=a.id, text=a.text, probability=a.probability, resolution=a.resolution)
                for a in market.answers
            ),
            volume=market.volume,
            volume_24h=market.volume_24h,
            total_liquidity=market.total_liquidity,
            pool_yes=market.pool_yes,
            pool_no=market.pool_no,
            is_resolved=market.is_resolved,
            resolution=market.resolution,
            creator_id=market.creator_id,
            url=market.url,
            mechanism=market.mechanism,
        )
    except ValueError:
        logger.warning("Skipping malformed market %s", market.id, exc_info=True)
        return None


def _to_snapshots(markets: Sequence[Market]) -> list[MarketSnapshot]:
    snapshots: list[MarketSnapshot] = []
    for market in markets:
        snapshot = snapshot_from_market(market)
        if snapshot is not None:
            snapshots.append(snapshot)
    return snapshots


def _is_resolution_candidate(snapshot: MarketSnapshot) -> bool:
    """Return True for markets worth a detail fetch for answer resolutions."""
    if snapshot.total_liquidity < _CANDIDATE_MIN_LIQUIDITY:
        return False
    priced = sum(1 for a in snapshot.answers if _ACTIVE_LOW < a.probability < _ACTIVE_HIGH)
    return priced >= _CANDIDATE_MIN_ANSWERS


class MarketScanner:
    """Scan open markets sorted by liquidity.

    Args:
        client: Manifold API client.

    """

    def __init__(self, client: ManifoldClient) -> None:
        """Initialize the scanner.

        Args:
            client: Manifold API client.

        """
        self._client = client

    async def scan_binary(self, limit: int) -> list[MarketSnapshot]:
        """Return up to ``limit`` open binary markets."""
        markets = await self._client.search_markets(contract_type=BINARY, limit=limit)
        snapshots = _to_snapshots(markets)
        logger.info("Scanned %d binary markets", len(snapshots))
        return snapshots

    async def scan_multiple_choice(self, limit: int) -> list[MarketSnapshot]:
        """Return up to ``limit`` open multiple-choice markets with enriched answers."""
        markets = await self._client.search_markets(contract_type=MULTIPLE_CHOICE, limit=limit)
        snapshots = _to_snapshots(markets)
        snapshots = await self.enrich_with_probs(snapshots)
        snapshots = await self.enrich_with_resolution(snapshots)
        logger.info("Scanned %d multiple-choice markets", len(snapshots))
        return snapshots

    async def scan_all(self, limit: int) -> list[MarketSnapshot]:
        """Return up to ``limit`` open markets of every type, without enrichment."""
        markets = await self._client.search_markets(limit=limit)
        snapshots = _to_snapshots(markets)
        logger.info("Scanned %d markets", len(snapshots))
        return snapshots

    async def get_full_market(self, market_id: str) -> MarketSnapshot | None:
        """Fetch one market with full answer detail."""
        return snapshot_from_market(await self._client.get_market(market_id))

    async def enrich_with_probs(self, snapshots: list[MarketSnapshot]) -> list[MarketSnapshot]:
        """Fill in answer probabilities with batched ``/market-probs`` calls.

        Existing answers are updated by id; markets without answers get
        answers created from the probability map.  A failed batch is logged
        and its markets are returned unchanged.

        Args:
            snapshots: Markets to enrich.

        Returns:
            A new list with enriched snapshots in the original order.

        """
        enriched = list(snapshots)
        for start in range(0, len(enriched), PROBS_BATCH_SIZE):
            batch_ids = [s.id for s in enriched[start : start + PROBS_BATCH_SIZE]]
            try:
                probs = await self._client.get_market_probs(batch_ids)
            except ManifoldAPIError:
                logger.warning("Batch probability lookup failed", exc_info=True)
                continue
            for offset, market_id in enumerate(batch_ids):
                entry = probs.get(market_id)
                if entry is None:
                    continue
                snapshot = enriched[start + offset]
                answers = snapshot.answers
                if entry.answer_probs:
                    if answers:
                        answers = tuple(
                            dataclasses.replace(
                                a, probability=entry.answer_probs.get(a.id, a.probability)
                            )
                            for a in answers
                        )
                    else:
                        answers = tuple(
                            AnswerState(id=aid, text="", probability=p)
                            for aid, p in sorted(entry.answer_probs.items())
                        )
                probability = snapshot.probability
                if entry.prob is not None and entry.prob > ZERO:
                    probability = entry.prob
                enriched[start + offset] = dataclasses.replace(
                    snapshot, answers=answers, probability=probability
                )
        return enriched

    async def enrich_with_resolution(
        self, snapshots: list[MarketSnapshot]
    ) -> list[MarketSnapshot]:
        """Merge per-answer resolution and text from detail fetches.

        Only candidates (liquidity of at least 50 and two or more answers
        priced strictly inside (0.001, 0.999)) are fetched, with at most
        ``MAX_CONCURRENT_FETCHES`` requests in flight.  A failed fetch is
        logged and that market is left as it was.

        Args:
            snapshots: Markets to enrich.

        Returns:
            A new list with enriched snapshots in the original order.

        """
        candidates = [i for i, s in enumerate(snapshots) if _is_resolution_candidate(s)]
        if not candidates:
            return list(snapshots)

        semaphore = asyncio.Semaphore(MAX_CONCURRENT_FETCHES)

        async def fetch(index: int) -> tuple[int, Market | None]:
            market_id = snapshots[index].id
            async with semaphore:
                try:
                    return index, await self._client.get_market(market_id)
                except ManifoldAPIError:
                    logger.warning(
                        "Failed to fetch answer resolutions for %s", market_id, exc_info=True
                    )
                    return index, None

        results = await asyncio.gather(*(fetch(i) for i in candidates))

        enriched = list(snapshots)
        fetched = 0
        for index, market in results:
            if market is None:
                continue
            fetched += 1
            details = {a.id: a for a in market.answers}
            snapshot = enriched[index]
            answers = tuple(
                dataclasses.replace(
                    a,
                    resolution=details[a.id].resolution,
                    text=a.text or details[a.id].text,
                )
                if a.id in details
                else a
                for a in snapshot.answers
            )
            enriched[index] = dataclasses.replace(snapshot, answers=answers)
        if fetched:
            logger.info("Enriched %d markets with answer resolutions", fetched)
        return enriched
