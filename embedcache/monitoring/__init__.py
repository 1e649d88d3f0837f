"""
Monitoring & Metrics module.

Provides in-process counters for embedding cache effectiveness.
"""

from embedcache.monitoring.collectors import (
    NETWORK_ERRORS,
    TIMEOUT_ERRORS,
    EmbeddingMetrics,
)

__all__ = [
    "EmbeddingMetrics",
    "TIMEOUT_ERRORS",
    "NETWORK_ERRORS",
]
