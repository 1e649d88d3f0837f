"""
Embedding service.

Orchestrates cache lookup, provider chain, eviction and metrics for single
and batched requests, and exposes similarity ranking.

Sandi Metz Principles:
- Single Responsibility: Embedding orchestration
- Small methods: Each step isolated
- Dependency Injection: Store, chain, policy and metrics injected
"""

import asyncio
import time
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

from embedcache.cache.eviction import EvictionPolicy
from embedcache.cache.serialization import to_storage_precision
from embedcache.cache.snapshot import CacheSnapshot
from embedcache.exceptions import CacheUnavailableError, InvalidInputError
from embedcache.models.cache_entry import CacheEntry
from embedcache.models.embedding import (
    BatchEmbeddingResult,
    EmbeddingResult,
    SimilarityCandidate,
    SimilarityResult,
)
from embedcache.models.statistics import CacheStats, MetricEvent, MetricsSnapshot
from embedcache.monitoring.collectors import EmbeddingMetrics
from embedcache.providers.chain import ProviderChain
from embedcache.repositories.base import CacheStore
from embedcache.similarity.score_calculator import (
    VectorLike,
    cosine_similarity,
    find_similar,
)
from embedcache.utils.hasher import fingerprint
from embedcache.utils.logger import (
    get_logger,
    log_cache_hit,
    log_cache_miss,
    log_error,
)

logger = get_logger(__name__)

NO_PROVIDER = "none"


def _epoch_ms() -> int:
    return int(time.time() * 1000)


class EmbeddingService:
    """
    Semantic embedding cache.

    Per call: lookup -> provider chain -> (evict, insert) -> metrics.
    Eviction and insert share one lock so concurrent misses cannot push
    the store past capacity. Lookups never take the lock.
    """

    def __init__(
        self,
        store: CacheStore,
        chain: ProviderChain,
        eviction_policy: Optional[EvictionPolicy] = None,
        metrics: Optional[EmbeddingMetrics] = None,
        batch_size: int = 10,
        max_concurrency: int = 5,
        dimension: int = 384,
        clock: Optional[Callable[[], int]] = None,
    ):
        """
        Initialize service.

        Args:
            store: Cache store
            chain: Provider chain
            eviction_policy: LRU/TTL policy (uses defaults if None)
            metrics: Metrics collector (creates one if None)
            batch_size: Texts per batch group
            max_concurrency: In-flight requests per group
            dimension: Vector dimensionality
            clock: Returns current time in epoch ms
        """
        if batch_size < 1 or max_concurrency < 1:
            raise InvalidInputError("batch_size and max_concurrency must be positive")

        self._store = store
        self._chain = chain
        self._eviction = eviction_policy or EvictionPolicy()
        self._metrics = metrics if metrics is not None else EmbeddingMetrics()
        self._batch_size = batch_size
        self._max_concurrency = max_concurrency
        self._dimension = dimension
        self._clock = clock or _epoch_ms
        self._write_lock = asyncio.Lock()

    @property
    def metrics(self) -> EmbeddingMetrics:
        """Get metrics collector."""
        return self._metrics

    async def generate_embedding(self, text: str) -> EmbeddingResult:
        """
        Generate embedding, serving from cache when possible.

        Args:
            text: Text to embed

        Returns:
            Embedding result

        Raises:
            InvalidInputError: If text is empty or whitespace
            AllProvidersFailedError: If generation failed and fallback is disabled
        """
        if not text or not text.strip():
            raise InvalidInputError("Cannot generate embedding for empty text")

        started = time.perf_counter()
        key = fingerprint(text)
        now = self._clock()

        entry = await self._store.lookup(key, now)
        if entry is not None and not self._eviction.is_expired(entry, now):
            self._metrics.record_hit()
            log_cache_hit(key, access_count=entry.access_count)
            return await self._build_hit(entry, started)

        self._metrics.record_miss()
        log_cache_miss(key, expired=entry is not None)
        return await self._generate_fresh(text, key, started)

    async def generate_batch_embeddings(self, texts: List[str]) -> BatchEmbeddingResult:
        """
        Generate embeddings for many texts.

        Texts are processed in sequential groups of ``batch_size``, each
        group concurrently. A failed text does not abort the batch.

        Args:
            texts: Texts to embed

        Returns:
            Batch result with successes in input order
        """
        started = time.perf_counter()
        semaphore = asyncio.Semaphore(min(self._batch_size, self._max_concurrency))
        outcomes: List[Union[EmbeddingResult, BaseException]] = []

        async def bounded(text: str) -> EmbeddingResult:
            async with semaphore:
                return await self.generate_embedding(text)

        for offset in range(0, len(texts), self._batch_size):
            group = texts[offset : offset + self._batch_size]
            outcomes.extend(
                await asyncio.gather(*(bounded(t) for t in group), return_exceptions=True)
            )

        return self._build_batch_result(outcomes, started)

    def calculate_similarity(self, a: VectorLike, b: VectorLike) -> float:
        """
        Cosine similarity of two vectors.

        Raises:
            DimensionMismatchError: If lengths differ
        """
        return cosine_similarity(a, b)

    def find_similar(
        self,
        query: VectorLike,
        candidates: Sequence[Union[SimilarityCandidate, VectorLike]],
        limit: int = 10,
    ) -> List[SimilarityResult]:
        """
        Rank candidates by similarity to query.

        Args:
            query: Query vector
            candidates: Candidate vectors
            limit: Maximum results

        Returns:
            Ranked results
        """
        return find_similar(query, candidates, limit)

    async def cleanup_expired_entries(self) -> int:
        """
        Delete entries older than the TTL.

        Returns:
            Number of entries deleted (0 if the store is unavailable)
        """
        try:
            return await self._eviction.sweep(self._store, self._clock())
        except CacheUnavailableError as e:
            logger.error("Expired entry cleanup failed", error=str(e))
            return 0

    async def clear_cache(self) -> int:
        """
        Delete every cache entry.

        Returns:
            Number of entries deleted

        Raises:
            CacheUnavailableError: If the store cannot be reached
        """
        async with self._write_lock:
            cleared = await self._store.clear()
        logger.info("Cleared embedding cache", count=cleared)
        return cleared

    async def get_cache_stats(self) -> CacheStats:
        """
        Get cache occupancy and hit rate.

        Returns:
            Cache statistics (zero occupancy if the store is unavailable)
        """
        snapshot = self._metrics.snapshot()
        try:
            total_entries = await self._store.count()
            size_bytes = await self._store.total_size_bytes()
        except CacheUnavailableError as e:
            logger.error("Cache stats unavailable", error=str(e))
            total_entries, size_bytes = 0, 0

        return CacheStats.create(
            total_entries=total_entries,
            hits=snapshot.total_hits,
            misses=snapshot.total_misses,
            cache_size_bytes=size_bytes,
        )

    def get_metrics(self) -> MetricsSnapshot:
        """Get a copy of current metrics."""
        return self._metrics.snapshot(self._clock())

    def reset_metrics(self) -> None:
        """Reset all metrics counters."""
        self._metrics.reset()

    async def persist_metrics(self) -> MetricsSnapshot:
        """
        Write current metrics to the durable snapshot.

        Raises:
            CacheUnavailableError: If the store cannot be reached
        """
        snapshot = self.get_metrics()
        await self._store.save_metrics_snapshot(snapshot)
        logger.info("Persisted embedding metrics", total_generated=snapshot.total_generated)
        return snapshot

    async def load_persisted_metrics(self) -> Optional[MetricsSnapshot]:
        """
        Restore metrics from the durable snapshot, if one exists.

        Returns:
            Loaded snapshot, or None

        Raises:
            CacheUnavailableError: If the store cannot be reached
        """
        snapshot = await self._store.load_metrics_snapshot()
        if snapshot is not None:
            self._metrics.restore(snapshot)
        return snapshot

    async def get_metric_events(self, limit: int = 100) -> List[MetricEvent]:
        """
        Get the most recent metric events, oldest first.

        Raises:
            InvalidInputError: If limit is negative
            CacheUnavailableError: If the store cannot be reached
        """
        if limit < 0:
            raise InvalidInputError(f"limit must be non-negative, got {limit}")
        return await self._store.get_metric_events(limit)

    async def get_provider_stats(self, limit: int = 1000) -> Dict[str, Dict[str, Any]]:
        """
        Summarize recent metric events per provider.

        Args:
            limit: Number of recent events to summarize

        Returns:
            Provider -> {count, avg_generation_time, cache_hits, errors}
        """
        events = await self.get_metric_events(limit)
        stats: Dict[str, Dict[str, Any]] = {}

        for event in events:
            row = stats.setdefault(
                event.provider,
                {"count": 0, "avg_generation_time": 0.0, "cache_hits": 0, "errors": 0},
            )
            row["count"] += 1
            row["avg_generation_time"] += (
                event.generation_time - row["avg_generation_time"]
            ) / row["count"]
            if event.cache_hit:
                row["cache_hits"] += 1
            if event.error:
                row["errors"] += 1

        return stats

    async def export_snapshot(self) -> CacheSnapshot:
        """
        Export every cache entry.

        Raises:
            CacheUnavailableError: If the store cannot be reached
        """
        entries = await self._store.export_entries()
        logger.info("Exported cache entries", count=len(entries))
        return CacheSnapshot.from_entries(entries, exported_at=self._clock())

    async def import_snapshot(self, snapshot: CacheSnapshot) -> int:
        """
        Merge snapshot entries into the cache.

        Existing keys are replaced. Capacity is enforced before each insert.

        Args:
            snapshot: Snapshot to import

        Returns:
            Number of entries imported

        Raises:
            CacheUnavailableError: If the store cannot be reached
        """
        imported = 0
        for entry in snapshot.to_entries():
            async with self._write_lock:
                await self._eviction.make_room(self._store)
                await self._store.insert(entry)
            imported += 1

        logger.info("Imported cache entries", count=imported)
        return imported

    async def export_cache(self, path: Union[str, Path]) -> int:
        """Export the cache to a JSON file. Returns number of entries."""
        snapshot = await self.export_snapshot()
        snapshot.write(path)
        return len(snapshot.entries)

    async def import_cache(self, path: Union[str, Path]) -> int:
        """Import a JSON snapshot file. Returns number of entries."""
        return await self.import_snapshot(CacheSnapshot.read(path))

    def get_dimension(self) -> int:
        """Get vector dimensionality."""
        return self._dimension

    async def health_check(self) -> Dict[str, Any]:
        """
        Check store health.

        Returns:
            Health status with entry count when available
        """
        try:
            healthy = await self._store.ping()
            entries = await self._store.count() if healthy else None
        except CacheUnavailableError as e:
            logger.error("Cache health check failed", error=str(e))
            healthy, entries = False, None

        return {
            "status": "healthy" if healthy else "degraded",
            "cache_available": healthy,
            "entries": entries,
            "dimension": self._dimension,
            "metrics_enabled": self._metrics.enabled,
        }

    async def close(self) -> None:
        """Close provider clients and the store."""
        await self._chain.close()
        await self._store.close()
        logger.info("Embedding service closed")

    async def _build_hit(self, entry: CacheEntry, started: float) -> EmbeddingResult:
        """Build result for a cache hit."""
        result = EmbeddingResult(
            vector=entry.vector,
            model=entry.model,
            dimensions=entry.dimensions,
            timestamp=self._clock(),
            cache_hit=True,
            generation_time=self._elapsed_ms(started),
            provider=self._chain.provider_for_model(entry.model),
        )
        await self._record_event(result)
        return result

    async def _generate_fresh(self, text: str, key: str, started: float) -> EmbeddingResult:
        """Run the provider chain and cache its vector."""
        try:
            generated = await self._chain.generate(text)
        except Exception as e:
            log_error(e, "generate_embedding")
            await self._record_failure(e, started)
            raise

        vector = to_storage_precision(generated.vector)
        await self._store_entry(CacheEntry.create(key, vector, generated.model, self._clock()))

        elapsed = self._elapsed_ms(started)
        self._metrics.record_generation(generated.provider, elapsed)
        result = EmbeddingResult(
            vector=vector,
            model=generated.model,
            dimensions=len(vector),
            timestamp=self._clock(),
            cache_hit=False,
            generation_time=elapsed,
            provider=generated.provider,
        )
        await self._record_event(result, attempts=generated.attempts)
        return result

    async def _store_entry(self, entry: CacheEntry) -> None:
        """Evict then insert. Store failures leave the result uncached."""
        try:
            async with self._write_lock:
                await self._eviction.make_room(self._store)
                await self._store.insert(entry)
        except CacheUnavailableError as e:
            logger.error("Cache write failed, continuing uncached", error=str(e))

    async def _record_event(self, result: EmbeddingResult, **metadata: Any) -> None:
        if not self._metrics.enabled:
            return
        event = MetricEvent(
            timestamp=result.timestamp,
            provider=result.provider,
            model=result.model,
            generation_time=result.generation_time,
            cache_hit=result.cache_hit,
            dimension=result.dimensions,
            metadata=metadata,
        )
        await self._append_event(event)

    async def _record_failure(self, error: Exception, started: float) -> None:
        if not self._metrics.enabled:
            return
        event = MetricEvent(
            timestamp=self._clock(),
            provider=NO_PROVIDER,
            model=NO_PROVIDER,
            generation_time=self._elapsed_ms(started),
            cache_hit=False,
            dimension=0,
            error=str(error),
        )
        await self._append_event(event)

    async def _append_event(self, event: MetricEvent) -> None:
        try:
            await self._store.append_metric_event(event)
        except CacheUnavailableError as e:
            logger.error("Metric event not recorded", error=str(e))

    def _build_batch_result(
        self, outcomes: List[Union[EmbeddingResult, BaseException]], started: float
    ) -> BatchEmbeddingResult:
        """Split batch outcomes into results and errors."""
        results: List[EmbeddingResult] = []
        errors: Dict[int, str] = {}

        for index, outcome in enumerate(outcomes):
            if isinstance(outcome, EmbeddingResult):
                results.append(outcome)
            else:
                errors[index] = str(outcome)
                logger.warning("Batch item failed", index=index, error=str(outcome))

        total_time = self._elapsed_ms(started)
        return BatchEmbeddingResult(
            results=results,
            success_count=len(results),
            failure_count=len(errors),
            total_time=total_time,
            average_time=total_time / len(outcomes) if outcomes else 0.0,
            errors=errors,
        )

    @staticmethod
    def _elapsed_ms(started: float) -> float:
        return (time.perf_counter() - started) * 1000
