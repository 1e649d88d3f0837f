"""
In-process cache store.

Keeps entries in a dict for single-process use and tests. Vectors are kept
serialized so reads return exactly what a persistent backend would.

Sandi Metz Principles:
- Single Responsibility: In-memory data access
- Small methods: Each operation isolated
"""

from collections import deque
from dataclasses import dataclass
from typing import Deque, Dict, List, Optional

from embedcache.cache.serialization import deserialize_vector, serialize_vector
from embedcache.models.cache_entry import CacheEntry
from embedcache.models.statistics import MetricEvent, MetricsSnapshot
from embedcache.repositories.base import CacheStore
from embedcache.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class _StoredEntry:
    """Row layout mirroring the embedding_cache table."""

    vector: bytes
    model: str
    created_at: int
    last_accessed: int
    access_count: int


class InMemoryCacheStore(CacheStore):
    """
    Dict-backed cache store.

    Operations contain no suspension points, so each one is atomic with
    respect to other coroutines on the same event loop.
    """

    def __init__(self, max_events: int = 10000):
        """
        Initialize store.

        Args:
            max_events: Number of metric events retained
        """
        self._entries: Dict[str, _StoredEntry] = {}
        self._snapshot: Optional[MetricsSnapshot] = None
        self._events: Deque[MetricEvent] = deque(maxlen=max_events)
        self._event_seq = 0

    async def lookup(self, key: str, now_ms: int) -> Optional[CacheEntry]:
        row = self._entries.get(key)
        if row is None:
            return None

        row.last_accessed = max(now_ms, row.created_at)
        row.access_count += 1
        return self._to_entry(key, row)

    async def insert(self, entry: CacheEntry) -> None:
        self._entries[entry.key] = _StoredEntry(
            vector=serialize_vector(entry.vector),
            model=entry.model,
            created_at=entry.created_at,
            last_accessed=entry.last_accessed,
            access_count=entry.access_count,
        )

    async def evict_if_needed(self, max_entries: int, headroom: int) -> int:
        count = len(self._entries)
        if count < max_entries:
            return 0

        to_delete = count - max_entries + max(headroom, 1)
        by_recency = sorted(
            self._entries.items(), key=lambda item: item[1].last_accessed
        )
        for key, _ in by_recency[:to_delete]:
            del self._entries[key]

        deleted = min(to_delete, count)
        logger.debug("Evicted LRU embeddings", deleted=deleted, cache_size=len(self._entries))
        return deleted

    async def expire_older_than(self, threshold_ms: int) -> int:
        expired = [
            key for key, row in self._entries.items() if row.created_at < threshold_ms
        ]
        for key in expired:
            del self._entries[key]
        return len(expired)

    async def clear(self) -> int:
        count = len(self._entries)
        self._entries.clear()
        return count

    async def count(self) -> int:
        return len(self._entries)

    async def total_size_bytes(self) -> int:
        return sum(len(row.vector) for row in self._entries.values())

    async def export_entries(self) -> List[CacheEntry]:
        return [self._to_entry(key, row) for key, row in self._entries.items()]

    async def save_metrics_snapshot(self, snapshot: MetricsSnapshot) -> None:
        self._snapshot = snapshot.model_copy(deep=True)

    async def load_metrics_snapshot(self) -> Optional[MetricsSnapshot]:
        if self._snapshot is None:
            return None
        return self._snapshot.model_copy(deep=True)

    async def append_metric_event(self, event: MetricEvent) -> int:
        self._event_seq += 1
        self._events.append(event.model_copy(update={"id": self._event_seq}))
        return self._event_seq

    async def get_metric_events(self, limit: int = 100) -> List[MetricEvent]:
        if limit <= 0:
            return []
        return list(self._events)[-limit:]

    async def ping(self) -> bool:
        return True

    @staticmethod
    def _to_entry(key: str, row: _StoredEntry) -> CacheEntry:
        return CacheEntry(
            key=key,
            vector=deserialize_vector(row.vector),
            model=row.model,
            created_at=row.created_at,
            last_accessed=row.last_accessed,
            access_count=row.access_count,
        )
