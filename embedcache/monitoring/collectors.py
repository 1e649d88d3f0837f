"""
Metrics collector for embedding generation.

Sandi Metz Principles:
- Single Responsibility: Count embedding events
- Small class: Focused collection logic
- Clear naming: Descriptive metric names
"""

import threading
import time
from dataclasses import dataclass, field
from typing import Dict, Optional

from embedcache.models.statistics import MetricsSnapshot
from embedcache.utils.logger import get_logger

logger = get_logger(__name__)

TIMEOUT_ERRORS = "timeout"
NETWORK_ERRORS = "network"


@dataclass
class EmbeddingMetrics:
    """
    Collects embedding cache and generation metrics.

    Owned by one service instance. Every recording method holds the lock
    for its own update, so concurrent callers never lose increments.
    """

    enabled: bool = True
    total_generated: int = 0
    total_hits: int = 0
    total_misses: int = 0
    average_generation_time: float = 0.0
    provider_usage: Dict[str, int] = field(default_factory=dict)
    error_counts: Dict[str, int] = field(default_factory=dict)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def record_hit(self) -> None:
        """Record a cache hit."""
        if not self.enabled:
            return
        with self._lock:
            self.total_hits += 1

    def record_miss(self) -> None:
        """Record a cache miss."""
        if not self.enabled:
            return
        with self._lock:
            self.total_misses += 1

    def record_generation(self, provider: str, generation_time_ms: float) -> None:
        """
        Record a freshly generated embedding.

        Args:
            provider: Provider that produced the vector
            generation_time_ms: End-to-end generation time
        """
        if not self.enabled:
            return
        with self._lock:
            self.total_generated += 1
            self.provider_usage[provider] = self.provider_usage.get(provider, 0) + 1
            self.average_generation_time += (
                generation_time_ms - self.average_generation_time
            ) / self.total_generated

    def record_error(self, source: str) -> None:
        """
        Record an error.

        Args:
            source: Provider name, or an error category
                ("timeout", "network")
        """
        if not self.enabled:
            return
        with self._lock:
            self.error_counts[source] = self.error_counts.get(source, 0) + 1

    @property
    def hit_rate(self) -> float:
        """Get cache hit rate."""
        lookups = self.total_hits + self.total_misses
        if lookups == 0:
            return 0.0
        return self.total_hits / lookups

    def snapshot(self, now_ms: Optional[int] = None) -> MetricsSnapshot:
        """
        Copy current values.

        Args:
            now_ms: Snapshot time (defaults to wall clock)

        Returns:
            Metrics snapshot
        """
        with self._lock:
            return MetricsSnapshot(
                total_generated=self.total_generated,
                total_hits=self.total_hits,
                total_misses=self.total_misses,
                average_generation_time=self.average_generation_time,
                provider_usage=dict(self.provider_usage),
                error_counts=dict(self.error_counts),
                last_updated=now_ms if now_ms is not None else int(time.time() * 1000),
            )

    def restore(self, snapshot: MetricsSnapshot) -> None:
        """
        Replace current values with a persisted snapshot.

        Args:
            snapshot: Snapshot to load
        """
        with self._lock:
            self.total_generated = snapshot.total_generated
            self.total_hits = snapshot.total_hits
            self.total_misses = snapshot.total_misses
            self.average_generation_time = snapshot.average_generation_time
            self.provider_usage = dict(snapshot.provider_usage)
            self.error_counts = dict(snapshot.error_counts)
        logger.info("Restored embedding metrics", total_generated=snapshot.total_generated)

    def reset(self) -> None:
        """Reset all counters."""
        with self._lock:
            self.total_generated = 0
            self.total_hits = 0
            self.total_misses = 0
            self.average_generation_time = 0.0
            self.provider_usage = {}
            self.error_counts = {}
        logger.info("Reset embedding metrics")

    def to_dict(self) -> Dict:
        """Convert to dictionary."""
        snapshot = self.snapshot()
        return {
            "total_generated": snapshot.total_generated,
            "total_hits": snapshot.total_hits,
            "total_misses": snapshot.total_misses,
            "hit_rate": round(snapshot.hit_rate, 4),
            "average_generation_time_ms": round(snapshot.average_generation_time, 2),
            "provider_usage": snapshot.provider_usage,
            "error_counts": snapshot.error_counts,
        }
