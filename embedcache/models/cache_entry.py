"""
Cache entry models.

Sandi Metz Principles:
- Single Responsibility: Cache data structure
- Clear naming: Descriptive fields
- Validated data: Timestamps and vectors checked on creation
"""

from typing import List

from pydantic import BaseModel, Field, field_validator, model_validator

from embedcache.utils.hasher import is_fingerprint


class CacheEntry(BaseModel):
    """Cached embedding vector with access metadata."""

    key: str = Field(..., description="Fingerprint of the input text")
    vector: List[float] = Field(..., description="Embedding vector")
    model: str = Field(..., description="Model that produced the vector")
    created_at: int = Field(..., ge=0, description="Creation time (epoch ms)")
    last_accessed: int = Field(..., ge=0, description="Last access time (epoch ms)")
    access_count: int = Field(default=0, ge=0, description="Number of cache hits")

    @field_validator("key")
    @classmethod
    def validate_key(cls, v: str) -> str:
        """Validate key is a fingerprint."""
        if not is_fingerprint(v):
            raise ValueError(f"Invalid cache key: {v!r}")
        return v

    @field_validator("vector")
    @classmethod
    def validate_vector_not_empty(cls, v: List[float]) -> List[float]:
        """Validate vector is not empty."""
        if not v:
            raise ValueError("Embedding vector cannot be empty")
        return v

    @model_validator(mode="after")
    def validate_access_order(self) -> "CacheEntry":
        """Validate last access is not before creation."""
        if self.last_accessed < self.created_at:
            raise ValueError(
                f"last_accessed ({self.last_accessed}) must not precede "
                f"created_at ({self.created_at})"
            )
        return self

    @classmethod
    def create(
        cls, key: str, vector: List[float], model: str, timestamp: int
    ) -> "CacheEntry":
        """
        Create a fresh entry that has not been read yet.

        Args:
            key: Cache key
            vector: Embedding vector
            model: Model identifier
            timestamp: Creation time (epoch ms)

        Returns:
            CacheEntry instance
        """
        return cls(
            key=key,
            vector=vector,
            model=model,
            created_at=timestamp,
            last_accessed=timestamp,
            access_count=0,
        )

    @property
    def dimensions(self) -> int:
        """Get vector dimensionality."""
        return len(self.vector)

    def age_ms(self, now_ms: int) -> int:
        """Calculate entry age in milliseconds."""
        return now_ms - self.created_at
