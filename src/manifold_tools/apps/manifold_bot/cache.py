"""TTL cache of the latest market snapshots.

Writers build a new dictionary and swap it in under a lock, so readers see
either the state before or after a bulk update, never a mix of the two.
"""

import threading
from collections.abc import Callable, Iterable
from datetime import UTC, datetime, timedelta

from manifold_tools.apps.manifold_bot.models import MarketSnapshot


def _utc_now() -> datetime:
    return datetime.now(UTC)


class SnapshotCache:
    """Map market ids to their latest snapshot, expiring entries after ``ttl``.

    Args:
        ttl: How long an entry stays fresh after it was stored.
        clock: Source of the current time; defaults to the UTC wall clock.

    """

    def __init__(
        self,
        ttl: timedelta,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        """Initialize an empty cache.

        Args:
            ttl: How long an entry stays fresh after it was stored.
            clock: Source of the current time.

        """
        self._ttl = ttl
        self._clock = clock
        self._write_lock = threading.Lock()
        self._entries: dict[str, tuple[MarketSnapshot, datetime]] = {}

    def get(self, market_id: str) -> tuple[MarketSnapshot | None, bool]:
        """Look up one market.

        Args:
            market_id: Market identifier.

        Returns:
            ``(snapshot, True)`` for a fresh entry, ``(None, False)`` when the
            entry is missing or expired.

        """
        entry = self._entries.get(market_id)
        if entry is None:
            return None, False
        snapshot, fetched_at = entry
        if self._clock() - fetched_at > self._ttl:
            return None, False
        return snapshot, True

    def set_all(self, snapshots: Iterable[MarketSnapshot]) -> None:
        """Insert or replace several snapshots with one fetch timestamp.

        Fresh entries for markets not in ``snapshots`` are kept; expired
        entries are dropped.

        Args:
            snapshots: Snapshots to store.

        """
        fetched_at = self._clock()
        with self._write_lock:
            entries = {
                market_id: entry
                for market_id, entry in self._entries.items()
                if fetched_at - entry[1] <= self._ttl
            }
            for snapshot in snapshots:
                entries[snapshot.id] = (snapshot, fetched_at)
            self._entries = entries

    def all(self) -> list[MarketSnapshot]:
        """Return every non-expired snapshot."""
        now = self._clock()
        return [
            snapshot
            for snapshot, fetched_at in self._entries.values()
            if now - fetched_at <= self._ttl
        ]

    def __len__(self) -> int:
        """Return the number of stored entries, fresh or not."""
        return len(self._entries)
