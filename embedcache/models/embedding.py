"""
Embedding result models.

Sandi Metz Principles:
- Small classes with clear purpose
- Type-safe vector representation
- Clear naming conventions
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, model_validator

PLACEHOLDER_PROVIDER = "placeholder"


class EmbeddingResult(BaseModel):
    """Result of a single embedding request."""

    vector: List[float] = Field(..., description="Embedding vector values")
    model: str = Field(..., description="Model that produced the vector")
    dimensions: int = Field(..., ge=1, description="Vector dimensionality")
    timestamp: int = Field(..., ge=0, description="Generation time (epoch ms)")
    cache_hit: bool = Field(..., description="Whether served from cache")
    generation_time: float = Field(..., ge=0.0, description="Elapsed time (ms)")
    provider: str = Field(..., description="Provider that produced the vector")

    @model_validator(mode="after")
    def validate_dimensions(self) -> "EmbeddingResult":
        """Validate dimensions match vector length."""
        if len(self.vector) != self.dimensions:
            raise ValueError(
                f"Vector length ({len(self.vector)}) does not match "
                f"dimensions ({self.dimensions})"
            )
        return self

    @property
    def is_degraded(self) -> bool:
        """Check if the vector came from the non-semantic fallback."""
        return self.provider == PLACEHOLDER_PROVIDER


class BatchEmbeddingResult(BaseModel):
    """Result of a batch embedding request."""

    results: List[EmbeddingResult] = Field(
        default_factory=list, description="Successful results in input order"
    )
    success_count: int = Field(default=0, ge=0, description="Successful texts")
    failure_count: int = Field(default=0, ge=0, description="Failed texts")
    total_time: float = Field(default=0.0, ge=0.0, description="Total time (ms)")
    average_time: float = Field(default=0.0, ge=0.0, description="Time per text (ms)")
    errors: Dict[int, str] = Field(
        default_factory=dict, description="Input index -> error message"
    )

    @property
    def total(self) -> int:
        """Get number of texts processed."""
        return self.success_count + self.failure_count


class SimilarityCandidate(BaseModel):
    """Vector to rank against a query, with caller metadata."""

    vector: List[float] = Field(..., description="Candidate embedding vector")
    metadata: Optional[Any] = Field(None, description="Caller payload (e.g. chunk)")


class SimilarityResult(BaseModel):
    """Ranked similarity match."""

    item: Optional[Any] = Field(None, description="Candidate metadata")
    score: float = Field(..., description="Cosine similarity")
    distance: float = Field(..., description="1 - score")
    rank: int = Field(..., ge=1, description="1-based rank")
