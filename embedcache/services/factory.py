"""
Embedding service factory.

Sandi Metz Principles:
- Single Responsibility: Wire service collaborators from configuration
- Open/Closed: Easy to add new store backends
- Dependency Inversion: Returns the service, built on interfaces
"""

from typing import List, Optional

from embedcache.cache.eviction import EvictionConfig, EvictionPolicy
from embedcache.config import EmbeddingConfig, config
from embedcache.exceptions import ConfigurationError
from embedcache.monitoring.collectors import EmbeddingMetrics
from embedcache.providers.base import BaseEmbeddingProvider
from embedcache.providers.chain import ProviderChain
from embedcache.providers.cloudflare_provider import CloudflareEmbeddingProvider
from embedcache.providers.hash_provider import HashEmbeddingProvider
from embedcache.providers.ollama_provider import OllamaEmbeddingProvider
from embedcache.providers.retry import RetryConfig
from embedcache.providers.timeout_handler import TimeoutConfig
from embedcache.repositories.base import CacheStore
from embedcache.repositories.memory_repository import InMemoryCacheStore
from embedcache.repositories.redis_repository import RedisCacheStore, create_redis_pool
from embedcache.services.embedding_service import EmbeddingService
from embedcache.utils.logger import get_logger

logger = get_logger(__name__)


async def create_embedding_service(
    settings: Optional[EmbeddingConfig] = None,
) -> EmbeddingService:
    """
    Build an embedding service from configuration.

    Args:
        settings: Configuration (uses global config if None)

    Returns:
        Wired embedding service

    Raises:
        ConfigurationError: If the configuration cannot produce a service
    """
    settings = settings or config
    metrics = EmbeddingMetrics(enabled=settings.enable_metrics)

    try:
        store = await create_store(settings)
        chain = create_provider_chain(settings, metrics)
    except ConfigurationError:
        raise
    except Exception as e:
        error_msg = f"Failed to create embedding service: {str(e)}"
        logger.error(error_msg)
        raise ConfigurationError(error_msg) from e

    eviction = EvictionPolicy(
        EvictionConfig(
            max_entries=settings.max_cache_entries,
            headroom=settings.eviction_headroom,
            ttl_ms=settings.cache_ttl_ms,
        )
    )

    logger.info(
        "Created embedding service",
        backend=settings.cache_backend,
        providers=[p.get_name() for p in chain.providers],
        fallback=settings.fallback_to_hash,
    )
    return EmbeddingService(
        store=store,
        chain=chain,
        eviction_policy=eviction,
        metrics=metrics,
        batch_size=settings.batch_size,
        max_concurrency=settings.max_concurrency,
        dimension=settings.embedding_dimension,
    )


async def create_store(settings: EmbeddingConfig) -> CacheStore:
    """
    Create the configured cache store.

    Raises:
        ConfigurationError: If the backend name is invalid
    """
    if settings.cache_backend == "memory":
        return InMemoryCacheStore(max_events=settings.metrics_log_max_events)
    if settings.cache_backend == "redis":
        pool = await create_redis_pool(settings)
        return RedisCacheStore(
            pool,
            prefix=settings.redis_key_prefix,
            max_events=settings.metrics_log_max_events,
        )
    raise ConfigurationError(f"Invalid cache backend: {settings.cache_backend}")


def create_provider_chain(
    settings: EmbeddingConfig, metrics: Optional[EmbeddingMetrics] = None
) -> ProviderChain:
    """
    Create the provider chain: Cloudflare, then Ollama, then hash fallback.

    Raises:
        ConfigurationError: If no provider can run
    """
    timeout = settings.timeout_seconds
    providers: List[BaseEmbeddingProvider] = [
        CloudflareEmbeddingProvider(
            account_id=settings.cloudflare_account_id,
            api_key=settings.cloudflare_api_key,
            model=settings.embedding_model,
            api_endpoint=settings.cloudflare_api_endpoint,
            dimension=settings.embedding_dimension,
            timeout=timeout,
        ),
        OllamaEmbeddingProvider(
            endpoint=settings.ollama_endpoint,
            model_name=settings.ollama_model,
            dimension=settings.embedding_dimension,
            timeout=timeout,
        ),
    ]

    if not settings.has_cloudflare_credentials:
        logger.warning("Cloudflare credentials not configured, skipping primary provider")

    fallback = None
    if settings.fallback_to_hash:
        fallback = HashEmbeddingProvider(dimension=settings.embedding_dimension)

    return ProviderChain(
        providers,
        fallback=fallback,
        retry_config=RetryConfig(
            max_attempts=settings.max_retries,
            initial_delay=settings.retry_initial_delay_seconds,
            max_delay=settings.retry_max_delay_seconds,
        ),
        timeout_config=TimeoutConfig(timeout_seconds=timeout),
        metrics=metrics,
    )
