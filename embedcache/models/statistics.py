"""
Cache and metrics statistics models.

Sandi Metz Principles:
- Small classes with clear purpose
- Computed properties for derived metrics
- Clear naming conventions
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class CacheStats(BaseModel):
    """Cache occupancy and effectiveness."""

    total_entries: int = Field(..., ge=0, description="Entries in the store")
    hits: int = Field(..., ge=0, description="Cache hits")
    misses: int = Field(..., ge=0, description="Cache misses")
    hit_rate: float = Field(..., ge=0.0, le=1.0, description="Hit rate (0-1)")
    cache_size_bytes: int = Field(..., ge=0, description="Serialized vector bytes")

    @classmethod
    def create(
        cls, total_entries: int, hits: int, misses: int, cache_size_bytes: int
    ) -> "CacheStats":
        """
        Create cache statistics with calculated hit rate.

        Args:
            total_entries: Entries in the store
            hits: Cache hits
            misses: Cache misses
            cache_size_bytes: Serialized vector bytes

        Returns:
            CacheStats instance
        """
        lookups = hits + misses
        hit_rate = hits / lookups if lookups > 0 else 0.0
        return cls(
            total_entries=total_entries,
            hits=hits,
            misses=misses,
            hit_rate=hit_rate,
            cache_size_bytes=cache_size_bytes,
        )


class MetricsSnapshot(BaseModel):
    """Point-in-time copy of the embedding metrics."""

    total_generated: int = Field(default=0, ge=0, description="Embeddings generated")
    total_hits: int = Field(default=0, ge=0, description="Cache hits")
    total_misses: int = Field(default=0, ge=0, description="Cache misses")
    average_generation_time: float = Field(
        default=0.0, ge=0.0, description="Mean generation time (ms)"
    )
    provider_usage: Dict[str, int] = Field(
        default_factory=dict, description="Generations per provider"
    )
    error_counts: Dict[str, int] = Field(
        default_factory=dict, description="Errors per provider or category"
    )
    last_updated: int = Field(default=0, ge=0, description="Snapshot time (epoch ms)")

    @property
    def hit_rate(self) -> float:
        """Get cache hit rate."""
        lookups = self.total_hits + self.total_misses
        if lookups == 0:
            return 0.0
        return self.total_hits / lookups


class MetricEvent(BaseModel):
    """One row of the append-only generation log."""

    id: Optional[int] = Field(None, description="Sequence number assigned by store")
    timestamp: int = Field(..., ge=0, description="Event time (epoch ms)")
    provider: str = Field(..., description="Provider used, or 'none' on failure")
    model: str = Field(..., description="Model used")
    generation_time: float = Field(..., ge=0.0, description="Elapsed time (ms)")
    cache_hit: bool = Field(..., description="Whether served from cache")
    dimension: int = Field(..., ge=0, description="Vector dimensionality")
    error: Optional[str] = Field(None, description="Error message on failure")
    metadata: Dict[str, Any] = Field(default_factory=dict, description="Extra context")
