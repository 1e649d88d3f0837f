"""
Services module.

Contains the embedding service and its factory.
"""

from embedcache.services.embedding_service import EmbeddingService
from embedcache.services.factory import create_embedding_service

__all__ = ["EmbeddingService", "create_embedding_service"]
