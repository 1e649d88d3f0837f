"""
Models package for the embedding cache.

Exports all model classes for easy imports throughout the application.
"""

# Cache models
from embedcache.models.cache_entry import CacheEntry

# Embedding models
from embedcache.models.embedding import (
    BatchEmbeddingResult,
    EmbeddingResult,
    SimilarityCandidate,
    SimilarityResult,
)

# Statistics models
from embedcache.models.statistics import CacheStats, MetricEvent, MetricsSnapshot

__all__ = [
    # Cache
    "CacheEntry",
    # Embedding
    "EmbeddingResult",
    "BatchEmbeddingResult",
    "SimilarityCandidate",
    "SimilarityResult",
    # Statistics
    "CacheStats",
    "MetricsSnapshot",
    "MetricEvent",
]
