"""
Similarity calculation and ranking utilities.
"""

from embedcache.similarity.score_calculator import cosine_similarity, find_similar

__all__ = [
    "cosine_similarity",
    "find_similar",
]
