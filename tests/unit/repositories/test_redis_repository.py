"""Test Redis cache store."""

import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from embedcache.cache.serialization import serialize_vector
from embedcache.exceptions import CacheUnavailableError
from embedcache.models.cache_entry import CacheEntry
from embedcache.models.statistics import MetricEvent, MetricsSnapshot
from embedcache.repositories.redis_repository import TOUCH_SCRIPT, RedisCacheStore
from embedcache.utils.hasher import fingerprint

KEY = fingerprint("def f(): pass")


@pytest.fixture
def redis_store(mock_redis_pool):
    """Create Redis store with mock pool."""
    return RedisCacheStore(pool=mock_redis_pool, prefix="t:", max_events=50)


@pytest.fixture
def mock_redis():
    """Create mock Redis client with a mock pipeline."""
    client = AsyncMock()
    pipe = MagicMock()
    pipe.execute = AsyncMock(return_value=[])
    client.pipeline = MagicMock(return_value=pipe)
    return client


@pytest.fixture
def patched_redis(mock_redis):
    """Patch the Redis class used by the store."""
    with patch("embedcache.repositories.redis_repository.Redis") as mock_redis_class:
        mock_redis_class.return_value.__aenter__.return_value = mock_redis
        yield mock_redis


def stored_row(vector, created_at=1000, last_accessed=2000, access_count=3):
    """Build HGETALL-style flat reply."""
    return [
        b"vector", serialize_vector(vector),
        b"model", b"@cf/baai/bge-small-en-v1.5",
        b"created_at", str(created_at).encode(),
        b"last_accessed", str(last_accessed).encode(),
        b"access_count", str(access_count).encode(),
    ]


class TestLookup:
    """Test read-with-touch."""

    @pytest.mark.asyncio
    async def test_should_run_touch_script(self, redis_store, patched_redis):
        """Test hit decodes the touched hash."""
        patched_redis.eval.return_value = stored_row([0.5, -0.25])

        entry = await redis_store.lookup(KEY, 2000)

        assert entry.key == KEY
        assert entry.vector == [0.5, -0.25]
        assert entry.access_count == 3
        assert entry.last_accessed == 2000
        patched_redis.eval.assert_called_once_with(
            TOUCH_SCRIPT, 2, f"t:entry:{KEY}", "t:lru", 2000, KEY
        )

    @pytest.mark.asyncio
    async def test_should_return_none_on_miss(self, redis_store, patched_redis):
        """Test missing entry."""
        patched_redis.eval.return_value = None

        assert await redis_store.lookup(KEY, 2000) is None

    @pytest.mark.asyncio
    async def test_should_swallow_redis_errors(self, redis_store, patched_redis):
        """Test lookup failure is reported as a miss."""
        patched_redis.eval.side_effect = RedisConnectionError("down")

        assert await redis_store.lookup(KEY, 2000) is None

    @pytest.mark.asyncio
    async def test_should_treat_corrupt_vector_as_miss(self, redis_store, patched_redis):
        """Test truncated vector bytes."""
        row = stored_row([0.5])
        row[1] = b"\x00\x01\x02"
        patched_redis.eval.return_value = row

        assert await redis_store.lookup(KEY, 2000) is None


class TestWrites:
    """Test insert, eviction and expiry."""

    @pytest.mark.asyncio
    async def test_should_insert_in_transaction(self, redis_store, patched_redis):
        """Test insert replaces hash and updates both indexes."""
        entry = CacheEntry.create(KEY, [0.5, 0.25], "m", 1000)

        await redis_store.insert(entry)

        patched_redis.pipeline.assert_called_once_with(transaction=True)
        pipe = patched_redis.pipeline.return_value
        pipe.delete.assert_called_once_with(f"t:entry:{KEY}")
        mapping = pipe.hset.call_args.kwargs["mapping"]
        assert mapping["vector"] == serialize_vector([0.5, 0.25])
        assert mapping["created_at"] == 1000
        pipe.zadd.assert_any_call("t:lru", {KEY: 1000})
        pipe.zadd.assert_any_call("t:created", {KEY: 1000})
        pipe.execute.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_insert_should_raise_unavailable(self, redis_store, patched_redis):
        """Test write failures surface as CacheUnavailableError."""
        patched_redis.pipeline.return_value.execute.side_effect = RedisConnectionError("down")

        with pytest.raises(CacheUnavailableError):
            await redis_store.insert(CacheEntry.create(KEY, [0.1], "m", 1))

    @pytest.mark.asyncio
    async def test_should_not_evict_below_capacity(self, redis_store, patched_redis):
        """Test no deletion under capacity."""
        patched_redis.zcard.return_value = 5

        assert await redis_store.evict_if_needed(10, 2) == 0
        patched_redis.zrange.assert_not_called()

    @pytest.mark.asyncio
    async def test_should_evict_oldest_with_headroom(self, redis_store, patched_redis):
        """Test count - max + headroom oldest entries are removed."""
        patched_redis.zcard.return_value = 10
        patched_redis.zrange.return_value = [b"k1", b"k2", b"k3"]

        deleted = await redis_store.evict_if_needed(10, 3)

        assert deleted == 3
        patched_redis.zrange.assert_called_once_with("t:lru", 0, 2)
        pipe = patched_redis.pipeline.return_value
        pipe.delete.assert_called_once_with("t:entry:k1", "t:entry:k2", "t:entry:k3")
        pipe.zrem.assert_any_call("t:lru", "k1", "k2", "k3")

    @pytest.mark.asyncio
    async def test_should_evict_one_when_full_without_headroom(
        self, redis_store, patched_redis
    ):
        """Test a full cache with zero headroom still frees a slot."""
        patched_redis.zcard.return_value = 10
        patched_redis.zrange.return_value = [b"k1"]

        deleted = await redis_store.evict_if_needed(10, 0)

        assert deleted == 1
        patched_redis.zrange.assert_called_once_with("t:lru", 0, 0)

    @pytest.mark.asyncio
    async def test_should_expire_by_creation_time(self, redis_store, patched_redis):
        """Test expiry uses an exclusive upper bound on created_at."""
        patched_redis.zrangebyscore.return_value = [b"old"]

        assert await redis_store.expire_older_than(5000) == 1
        patched_redis.zrangebyscore.assert_called_once_with("t:created", "-inf", "(5000")

    @pytest.mark.asyncio
    async def test_should_clear_all_entries(self, redis_store, patched_redis):
        """Test clear removes everything indexed."""
        patched_redis.zrange.return_value = [b"a", b"b"]

        assert await redis_store.clear() == 2

    @pytest.mark.asyncio
    async def test_should_count_entries(self, redis_store, patched_redis):
        """Test count reads the LRU index size."""
        patched_redis.zcard.return_value = 7

        assert await redis_store.count() == 7

    @pytest.mark.asyncio
    async def test_count_should_raise_unavailable(self, redis_store, patched_redis):
        """Test read failures outside lookup surface."""
        patched_redis.zcard.side_effect = RedisConnectionError("down")

        with pytest.raises(CacheUnavailableError):
            await redis_store.count()

    @pytest.mark.asyncio
    async def test_should_sum_vector_sizes(self, redis_store, patched_redis):
        """Test total size from stored vector lengths."""
        patched_redis.zrange.return_value = [b"a", b"b"]
        patched_redis.pipeline.return_value.execute.return_value = [1536, 1536]

        assert await redis_store.total_size_bytes() == 3072


class TestMetricsPersistence:
    """Test metrics snapshot and event log."""

    @pytest.mark.asyncio
    async def test_should_save_snapshot_as_hash(self, redis_store, patched_redis):
        """Test JSON encoded counters."""
        snapshot = MetricsSnapshot(total_generated=2, provider_usage={"ollama": 2})

        await redis_store.save_metrics_snapshot(snapshot)

        mapping = patched_redis.hset.call_args.kwargs["mapping"]
        assert mapping["total_generated"] == 2
        assert json.loads(mapping["provider_usage"]) == {"ollama": 2}

    @pytest.mark.asyncio
    async def test_should_load_snapshot(self, redis_store, patched_redis):
        """Test decoding the stored hash."""
        patched_redis.hgetall.return_value = {
            b"total_generated": b"4",
            b"total_hits": b"1",
            b"total_misses": b"4",
            b"average_generation_time": b"12.5",
            b"last_updated": b"99",
            b"provider_usage": b'{"cloudflare": 4}',
            b"error_counts": b"{}",
        }

        snapshot = await redis_store.load_metrics_snapshot()

        assert snapshot.total_generated == 4
        assert snapshot.average_generation_time == 12.5
        assert snapshot.provider_usage == {"cloudflare": 4}

    @pytest.mark.asyncio
    async def test_should_return_none_without_snapshot(self, redis_store, patched_redis):
        """Test empty metadata hash."""
        patched_redis.hgetall.return_value = {}

        assert await redis_store.load_metrics_snapshot() is None

    @pytest.mark.asyncio
    async def test_should_append_and_trim_events(self, redis_store, patched_redis):
        """Test event gets a sequence id and the log is bounded."""
        patched_redis.incr.return_value = 7
        event = MetricEvent(
            timestamp=1,
            provider="ollama",
            model="ollama-all-minilm",
            generation_time=3.0,
            cache_hit=False,
            dimension=384,
        )

        event_id = await redis_store.append_metric_event(event)

        assert event_id == 7
        pipe = patched_redis.pipeline.return_value
        payload = pipe.rpush.call_args.args[1]
        assert json.loads(payload)["id"] == 7
        pipe.ltrim.assert_called_once_with("t:metrics", -50, -1)

    @pytest.mark.asyncio
    async def test_should_read_recent_events(self, redis_store, patched_redis):
        """Test events parsed from the list tail."""
        event = MetricEvent(
            id=1,
            timestamp=1,
            provider="placeholder",
            model="placeholder-hash",
            generation_time=0.1,
            cache_hit=True,
            dimension=384,
        )
        patched_redis.lrange.return_value = [event.model_dump_json().encode()]

        events = await redis_store.get_metric_events(10)

        assert events == [event]
        patched_redis.lrange.assert_called_once_with("t:metrics", -10, -1)


class TestHealth:
    """Test ping and close."""

    @pytest.mark.asyncio
    async def test_ping_should_report_failure(self, redis_store, patched_redis):
        """Test ping failure returns False."""
        patched_redis.ping.side_effect = RedisConnectionError("down")

        assert await redis_store.ping() is False

    @pytest.mark.asyncio
    async def test_close_should_disconnect_pool(self, redis_store, mock_redis_pool):
        """Test pool disconnect."""
        await redis_store.close()

        mock_redis_pool.disconnect.assert_awaited_once()
