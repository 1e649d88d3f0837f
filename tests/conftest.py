"""
Pytest configuration and fixtures.

Provides common fixtures for testing.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from embedcache.cache.eviction import EvictionConfig, EvictionPolicy
from embedcache.config import EmbeddingConfig
from embedcache.monitoring.collectors import EmbeddingMetrics
from embedcache.providers.chain import ProviderChain
from embedcache.providers.hash_provider import HashEmbeddingProvider
from embedcache.providers.retry import RetryConfig
from embedcache.providers.timeout_handler import TimeoutConfig
from embedcache.repositories.memory_repository import InMemoryCacheStore
from embedcache.services.embedding_service import EmbeddingService
from embedcache.utils.hasher import fingerprint
from tests.mocks.provider_mocks import MockEmbeddingProvider


class FakeClock:
    """Manually advanced epoch-ms clock."""

    def __init__(self, start: int = 1_700_000_000_000):
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


@pytest.fixture
def test_config() -> EmbeddingConfig:
    """
    Create test configuration.

    Returns:
        Test configuration instance
    """
    return EmbeddingConfig(
        cache_backend="memory",
        cloudflare_account_id="test-account",
        cloudflare_api_key="test-key",
        max_cache_entries=100,
        eviction_headroom=10,
        retry_initial_delay_seconds=0.0,
    )


@pytest.fixture
def clock() -> FakeClock:
    """Create a controllable clock."""
    return FakeClock()


@pytest.fixture
def memory_store() -> InMemoryCacheStore:
    """Create an empty in-memory cache store."""
    return InMemoryCacheStore()


@pytest.fixture
def metrics() -> EmbeddingMetrics:
    """Create a fresh metrics collector."""
    return EmbeddingMetrics()


@pytest.fixture
def fast_retry() -> RetryConfig:
    """Retry config without backoff delays."""
    return RetryConfig(max_attempts=3, initial_delay=0.0, max_delay=0.0)


@pytest.fixture
def primary_provider() -> MockEmbeddingProvider:
    """Create a healthy primary provider."""
    return MockEmbeddingProvider(name="primary", model="primary-model")


@pytest.fixture
def chain(primary_provider, fast_retry, metrics) -> ProviderChain:
    """Create a chain with one healthy provider and the hash fallback."""
    return ProviderChain(
        [primary_provider],
        fallback=HashEmbeddingProvider(),
        retry_config=fast_retry,
        timeout_config=TimeoutConfig(timeout_seconds=1.0),
        metrics=metrics,
    )


@pytest.fixture
def embedding_service(memory_store, chain, metrics, clock) -> EmbeddingService:
    """Create an embedding service on the in-memory store."""
    return EmbeddingService(
        store=memory_store,
        chain=chain,
        eviction_policy=EvictionPolicy(
            EvictionConfig(max_entries=100, headroom=10, ttl_ms=60_000)
        ),
        metrics=metrics,
        batch_size=5,
        max_concurrency=5,
        clock=clock,
    )


@pytest.fixture
def mock_redis_pool():
    """
    Mock Redis connection pool.

    Returns:
        Mocked Redis pool
    """
    pool = MagicMock()
    pool.disconnect = AsyncMock()
    return pool


@pytest.fixture
def sample_text() -> str:
    """
    Sample source code text for testing.

    Returns:
        Sample text
    """
    return "def add(a, b):\n    return a + b\n"


@pytest.fixture
def sample_key(sample_text) -> str:
    """Fingerprint of the sample text."""
    return fingerprint(sample_text)


@pytest.fixture
def sample_embedding() -> list:
    """
    Sample embedding vector for testing.

    Returns:
        Sample embedding vector
    """
    return [0.1] * 384
