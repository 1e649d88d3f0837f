"""Test in-memory cache store."""

import pytest

from embedcache.cache.serialization import to_storage_precision
from embedcache.models.cache_entry import CacheEntry
from embedcache.models.statistics import MetricEvent, MetricsSnapshot
from embedcache.repositories.memory_repository import InMemoryCacheStore
from embedcache.utils.hasher import fingerprint


def make_entry(text: str, created_at: int = 1000, vector=None, model: str = "m"):
    """Create an entry keyed by the text fingerprint."""
    return CacheEntry.create(fingerprint(text), vector or [0.25, 0.5], model, created_at)


def make_event(provider: str = "ollama") -> MetricEvent:
    return MetricEvent(
        timestamp=1,
        provider=provider,
        model="m",
        generation_time=1.0,
        cache_hit=False,
        dimension=2,
    )


class TestLookupAndInsert:
    """Test read-with-touch and replace-or-create."""

    @pytest.mark.asyncio
    async def test_should_round_trip_vector_exactly(self, memory_store):
        """Test stored vector comes back bit-identical."""
        vector = to_storage_precision([0.1 * i for i in range(384)])
        entry = make_entry("code", vector=vector)

        await memory_store.insert(entry)
        found = await memory_store.lookup(entry.key, 2000)

        assert found.vector == vector

    @pytest.mark.asyncio
    async def test_should_touch_on_hit(self, memory_store):
        """Test hit bumps access count and last access time."""
        entry = make_entry("code", created_at=1000)
        await memory_store.insert(entry)

        first = await memory_store.lookup(entry.key, 1500)
        second = await memory_store.lookup(entry.key, 1800)

        assert first.access_count == 1
        assert second.access_count == 2
        assert second.last_accessed == 1800
        assert second.created_at == 1000

    @pytest.mark.asyncio
    async def test_touch_should_not_precede_creation(self, memory_store):
        """Test last access never goes before creation under clock skew."""
        entry = make_entry("code", created_at=5000)
        await memory_store.insert(entry)

        found = await memory_store.lookup(entry.key, 4000)

        assert found.last_accessed == 5000

    @pytest.mark.asyncio
    async def test_should_miss_unknown_key(self, memory_store):
        """Test absent key."""
        assert await memory_store.lookup(fingerprint("nothing"), 1) is None

    @pytest.mark.asyncio
    async def test_insert_should_be_idempotent(self, memory_store):
        """Test same key twice keeps one entry with the latest data."""
        await memory_store.insert(make_entry("code", vector=[1.0, 0.0], model="old"))
        await memory_store.insert(make_entry("code", vector=[0.0, 1.0], model="new"))

        found = await memory_store.lookup(fingerprint("code"), 2000)

        assert await memory_store.count() == 1
        assert found.vector == [0.0, 1.0]
        assert found.model == "new"


class TestEviction:
    """Test LRU eviction and TTL expiry."""

    @pytest.mark.asyncio
    async def test_should_not_evict_below_capacity(self, memory_store):
        """Test no-op under capacity."""
        await memory_store.insert(make_entry("a"))

        assert await memory_store.evict_if_needed(5, 1) == 0

    @pytest.mark.asyncio
    async def test_should_evict_least_recently_used(self, memory_store):
        """Test smallest last_accessed goes first."""
        for i, text in enumerate(["a", "b", "c", "d"]):
            await memory_store.insert(make_entry(text, created_at=1000 + i))
        await memory_store.lookup(fingerprint("a"), 9000)

        deleted = await memory_store.evict_if_needed(4, 1)

        assert deleted == 1
        remaining = {e.key for e in await memory_store.export_entries()}
        assert fingerprint("b") not in remaining
        assert fingerprint("a") in remaining

    @pytest.mark.asyncio
    async def test_should_evict_headroom_batch(self, memory_store):
        """Test count - max + headroom entries removed."""
        for i in range(10):
            await memory_store.insert(make_entry(f"t{i}", created_at=1000 + i))

        deleted = await memory_store.evict_if_needed(8, 3)

        assert deleted == 5
        assert await memory_store.count() == 5

    @pytest.mark.asyncio
    async def test_should_evict_one_when_full_without_headroom(self, memory_store):
        """Test a full cache with zero headroom still frees a slot."""
        for i in range(3):
            await memory_store.insert(make_entry(f"t{i}", created_at=1000 + i))

        deleted = await memory_store.evict_if_needed(3, 0)

        assert deleted == 1
        assert await memory_store.lookup(fingerprint("t0"), 2000) is None
        assert await memory_store.count() == 2

    @pytest.mark.asyncio
    async def test_should_expire_only_old_entries(self, memory_store):
        """Test created_at < threshold removed, others kept."""
        await memory_store.insert(make_entry("old", created_at=100))
        await memory_store.insert(make_entry("edge", created_at=500))
        await memory_store.insert(make_entry("new", created_at=900))

        assert await memory_store.expire_older_than(500) == 1
        assert await memory_store.expire_older_than(500) == 0
        assert await memory_store.count() == 2

    @pytest.mark.asyncio
    async def test_should_clear(self, memory_store):
        """Test clear returns count removed."""
        await memory_store.insert(make_entry("a"))
        await memory_store.insert(make_entry("b"))

        assert await memory_store.clear() == 2
        assert await memory_store.count() == 0

    @pytest.mark.asyncio
    async def test_should_report_size(self, memory_store):
        """Test size is four bytes per component."""
        await memory_store.insert(make_entry("a", vector=[0.0] * 384))

        assert await memory_store.total_size_bytes() == 384 * 4


class TestMetricsStorage:
    """Test metrics snapshot and event log."""

    @pytest.mark.asyncio
    async def test_should_store_snapshot_copy(self, memory_store):
        """Test snapshot round trip is detached."""
        snapshot = MetricsSnapshot(total_generated=3, provider_usage={"ollama": 3})
        await memory_store.save_metrics_snapshot(snapshot)
        snapshot.provider_usage["ollama"] = 99

        loaded = await memory_store.load_metrics_snapshot()

        assert loaded.provider_usage == {"ollama": 3}

    @pytest.mark.asyncio
    async def test_should_assign_event_ids(self, memory_store):
        """Test sequence ids and most-recent retrieval."""
        ids = [await memory_store.append_metric_event(make_event(str(i))) for i in range(3)]

        events = await memory_store.get_metric_events(2)

        assert ids == [1, 2, 3]
        assert [e.id for e in events] == [2, 3]

    @pytest.mark.asyncio
    async def test_should_bound_event_log(self):
        """Test oldest events dropped beyond max_events."""
        store = InMemoryCacheStore(max_events=2)
        for i in range(5):
            await store.append_metric_event(make_event(str(i)))

        events = await store.get_metric_events(10)

        assert [e.provider for e in events] == ["3", "4"]
