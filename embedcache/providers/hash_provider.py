"""
Deterministic hash-based embedding provider.

Last resort when every semantic provider is unreachable. The vector is a
pure function of the text and carries no semantic meaning; results are
tagged with the "placeholder" provider so callers can discount them.

Sandi Metz Principles:
- Single Responsibility: Offline vector generation
- Pure functions: No I/O, no randomness
"""

import math
from typing import List

from embedcache.exceptions import InvalidInputError
from embedcache.models.embedding import PLACEHOLDER_PROVIDER
from embedcache.providers.base import BaseEmbeddingProvider

_INT32_RANGE = 2**32
_INT32_MAX = 2**31


def _to_int32(value: int) -> int:
    """Wrap an integer to signed 32-bit."""
    return (value + _INT32_MAX) % _INT32_RANGE - _INT32_MAX


def _utf16_units(text: str) -> List[int]:
    """Split text into UTF-16 code units (surrogate pairs give two)."""
    data = text.encode("utf-16-le", "surrogatepass")
    return [int.from_bytes(data[i:i + 2], "little") for i in range(0, len(data), 2)]


def hash_embedding(text: str, dimension: int = 384) -> List[float]:
    """
    Build an L2-normalized vector from a rolling 32-bit string hash.

    The hash walks UTF-16 code units, so characters outside the Basic
    Multilingual Plane contribute two steps.

    Args:
        text: Input text
        dimension: Vector length

    Returns:
        Vector of ``dimension`` floats

    Raises:
        InvalidInputError: If text is empty
    """
    if not text:
        raise InvalidInputError("Cannot embed empty text")

    values = [0.0] * dimension
    rolling = 0
    for i, unit in enumerate(_utf16_units(text)):
        rolling = _to_int32((rolling << 5) - rolling + unit)
        values[i % dimension] = math.fmod(rolling, 1000) / 1000

    norm = math.sqrt(sum(v * v for v in values))
    if norm == 0:
        return values
    return [v / norm for v in values]


class HashEmbeddingProvider(BaseEmbeddingProvider):
    """Placeholder provider backed by ``hash_embedding``."""

    NAME = PLACEHOLDER_PROVIDER

    def __init__(self, dimension: int = 384):
        """
        Initialize hash provider.

        Args:
            dimension: Vector length
        """
        super().__init__(model="placeholder-hash", dimension=dimension)

    def get_name(self) -> str:
        return self.NAME

    async def embed(self, text: str) -> List[float]:
        return hash_embedding(text, self.dimension)
