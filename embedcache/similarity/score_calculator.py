"""
Similarity score calculation and ranking.

Sandi Metz Principles:
- Single Responsibility: Score calculation
- Small functions: Each calculation isolated
- Pure functions: No side effects
"""

import math
from typing import Any, List, Sequence, Union

from embedcache.exceptions import DimensionMismatchError, InvalidInputError
from embedcache.models.embedding import (
    EmbeddingResult,
    SimilarityCandidate,
    SimilarityResult,
)

VectorLike = Union[Sequence[float], EmbeddingResult]


def _as_vector(value: VectorLike) -> Sequence[float]:
    if isinstance(value, EmbeddingResult):
        return value.vector
    return value


def cosine_similarity(a: VectorLike, b: VectorLike) -> float:
    """
    Calculate cosine similarity between vectors.

    Args:
        a: First vector (or embedding result)
        b: Second vector (or embedding result)

    Returns:
        dot(a, b) / (|a| * |b|), or exactly 0.0 if either vector has zero
        magnitude. Symmetric in its arguments.

    Raises:
        DimensionMismatchError: If vectors have different lengths
    """
    vec1 = _as_vector(a)
    vec2 = _as_vector(b)

    if len(vec1) != len(vec2):
        raise DimensionMismatchError(
            f"Embedding dimensions must match: {len(vec1)} != {len(vec2)}"
        )

    dot_product = 0.0
    norm1 = 0.0
    norm2 = 0.0
    for x, y in zip(vec1, vec2):
        dot_product += x * y
        norm1 += x * x
        norm2 += y * y

    denominator = math.sqrt(norm1) * math.sqrt(norm2)
    if denominator == 0:
        return 0.0

    # Rounding can push |score| just past 1
    return max(-1.0, min(1.0, dot_product / denominator))


def find_similar(
    query: VectorLike,
    candidates: Sequence[Union[SimilarityCandidate, VectorLike]],
    limit: int = 10,
) -> List[SimilarityResult]:
    """
    Rank candidates by similarity to a query.

    Args:
        query: Query vector
        candidates: Candidates to score; bare vectors are accepted
        limit: Maximum number of results

    Returns:
        Results sorted by descending score, ties in candidate order,
        ranked from 1

    Raises:
        InvalidInputError: If limit is negative
        DimensionMismatchError: If any candidate has a different length
    """
    if limit < 0:
        raise InvalidInputError(f"limit must be non-negative, got {limit}")

    scored = []
    for candidate in candidates:
        vector, item = _unpack_candidate(candidate)
        scored.append((cosine_similarity(query, vector), item))

    # sorted() is stable, so equal scores keep candidate order
    ranked = sorted(scored, key=lambda pair: pair[0], reverse=True)[:limit]

    return [
        SimilarityResult(item=item, score=score, distance=1 - score, rank=index + 1)
        for index, (score, item) in enumerate(ranked)
    ]


def _unpack_candidate(candidate: Any) -> tuple:
    if isinstance(candidate, SimilarityCandidate):
        return candidate.vector, candidate.metadata
    return _as_vector(candidate), None
