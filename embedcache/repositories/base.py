"""
Cache store interface.

Sandi Metz Principles:
- Interface Segregation: Only what the embedding service needs
- Dependency Inversion: Service depends on this abstraction
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from embedcache.models.cache_entry import CacheEntry
from embedcache.models.statistics import MetricEvent, MetricsSnapshot


class CacheStore(ABC):
    """
    Abstract key-value store for embedding cache entries.

    Besides the entries themselves, the store holds the durable metrics
    snapshot and the append-only metric event log.

    Error contract: ``lookup`` never raises for backend failures (it logs
    and reports a miss). Every other operation raises
    ``CacheUnavailableError`` when the backend cannot be reached.
    """

    @abstractmethod
    async def lookup(self, key: str, now_ms: int) -> Optional[CacheEntry]:
        """
        Read an entry and record the access in one atomic step.

        On hit, ``access_count`` is incremented and ``last_accessed`` set to
        ``max(now_ms, created_at)``. The returned entry reflects the update.

        Args:
            key: Cache key
            now_ms: Current time (epoch ms)

        Returns:
            Updated entry, or None on miss or backend failure
        """
        pass

    @abstractmethod
    async def insert(self, entry: CacheEntry) -> None:
        """
        Replace-or-create an entry.

        Args:
            entry: Entry to store
        """
        pass

    @abstractmethod
    async def evict_if_needed(self, max_entries: int, headroom: int) -> int:
        """
        Delete least recently used entries when at capacity.

        When ``count >= max_entries``, deletes
        ``count - max_entries + max(headroom, 1)`` entries ordered by
        ``last_accessed`` ascending.

        Args:
            max_entries: Capacity
            headroom: Extra entries to delete in the same pass

        Returns:
            Number of entries deleted
        """
        pass

    @abstractmethod
    async def expire_older_than(self, threshold_ms: int) -> int:
        """
        Delete entries created before a threshold.

        Args:
            threshold_ms: Entries with ``created_at < threshold_ms`` are deleted

        Returns:
            Number of entries deleted
        """
        pass

    @abstractmethod
    async def clear(self) -> int:
        """Delete all entries. Returns number deleted."""
        pass

    @abstractmethod
    async def count(self) -> int:
        """Get number of entries."""
        pass

    @abstractmethod
    async def total_size_bytes(self) -> int:
        """Get total serialized vector size."""
        pass

    @abstractmethod
    async def export_entries(self) -> List[CacheEntry]:
        """Read every entry without touching access metadata."""
        pass

    @abstractmethod
    async def save_metrics_snapshot(self, snapshot: MetricsSnapshot) -> None:
        """Overwrite the durable metrics snapshot."""
        pass

    @abstractmethod
    async def load_metrics_snapshot(self) -> Optional[MetricsSnapshot]:
        """Read the durable metrics snapshot, if one was saved."""
        pass

    @abstractmethod
    async def append_metric_event(self, event: MetricEvent) -> int:
        """
        Append a metric event to the log.

        Args:
            event: Event to append (its id is ignored)

        Returns:
            Sequence id assigned to the event
        """
        pass

    @abstractmethod
    async def get_metric_events(self, limit: int = 100) -> List[MetricEvent]:
        """Get the most recent metric events, oldest first."""
        pass

    @abstractmethod
    async def ping(self) -> bool:
        """Check backend health."""
        pass

    async def close(self) -> None:
        """Release backend resources."""
        return None
