"""Periodic market snapshot collection for replay.

Scan open markets sorted by liquidity, skip thin ones, upsert the catalog
and append one snapshot per market.  Every row of one collection shares a
single timestamp, which is what replay groups on.
"""

import logging
from collections.abc import Callable
from datetime import UTC, datetime

from manifold_tools.apps.manifold_bot.config import CollectorConfig
from manifold_tools.apps.manifold_bot.scanner import MarketScanner
from manifold_tools.apps.market_store.repository import MarketRepository

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(UTC)


class MarketCollector:
    """Capture market snapshots into the market store.

    Args:
        scanner: Market scanner backed by the Manifold client.
        repository: Market store repository.
        config: Scan size and liquidity filter.
        clock: Source of the collection timestamp.

    """

    def __init__(
        self,
        scanner: MarketScanner,
        repository: MarketRepository,
        config: CollectorConfig,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        """Initialize the collector.

        Args:
            scanner: Market scanner backed by the Manifold client.
            repository: Market store repository.
            config: Scan size and liquidity filter.
            clock: Source of the collection timestamp.

        """
        self._scanner = scanner
        self._repo = repository
        self._config = config
        self._clock = clock

    async def collect(self) -> int:
        """Run one collection cycle.

        Returns:
            Number of snapshots written.

        """
        at = self._clock()
        markets = await self._scanner.scan_all(self._config.max_markets_per_scan)
        liquid = [m for m in markets if m.total_liquidity >= self._config.min_liquidity]
        await self._repo.upsert_markets(liquid, at)
        written = await self._repo.save_snapshots(liquid, at)
        logger.info(
            "Collection complete: %d scanned, %d upserted, %d snapshots",
            len(markets),
            len(liquid),
            written,
        )
        return written
