"""
Deduplication cache for (title, date) snapshot pairs.
"""

from datetime import date
from typing import Dict, Set, Tuple
import structlog

logger = structlog.get_logger(__name__)


class SnapshotCache:
    """Two-tier record of resolved (title, date) pairs.

    The memory tier lives for one sync run and stops titles shared between
    agencies from being fetched twice in the same pass. The persistent tier
    is the snapshots table itself: a stored row means the pair was resolved
    by an earlier run. Snapshots are immutable, so neither tier evicts.
    """

    def __init__(self, db):
        self.db = db
        self._resolved: Set[Tuple[int, date]] = set()
        self.memory_hits = 0
        self.persistent_hits = 0

    def has(self, title: int, snapshot_date: date) -> bool:
        """Check whether a pair is already resolved, memory tier first."""
        key = (title, snapshot_date)
        if key in self._resolved:
            self.memory_hits += 1
            return True

        if self.db.snapshot_exists(title, snapshot_date):
            self.persistent_hits += 1
            logger.debug("Snapshot already stored", title=title, date=snapshot_date.isoformat())
            return True

        return False

    def mark(self, title: int, snapshot_date: date) -> None:
        """Record a pair as resolved for the rest of this run."""
        self._resolved.add((title, snapshot_date))

    def __len__(self) -> int:
        return len(self._resolved)

    def get_cache_stats(self) -> Dict[str, int]:
        """Get cache statistics."""
        return {
            "resolved_pairs": len(self._resolved),
            "memory_hits": self.memory_hits,
            "persistent_hits": self.persistent_hits,
        }
