"""
Custom exceptions for the embedding cache.
"""

from typing import List, Optional


class EmbeddingCacheError(Exception):
    """Base exception for embedding cache errors."""

    pass


class InvalidInputError(EmbeddingCacheError):
    """Raised when input text or arguments are rejected."""

    pass


class ProviderError(EmbeddingCacheError):
    """Raised when a single embedding provider attempt fails."""

    def __init__(
        self,
        message: str,
        provider: Optional[str] = None,
        timed_out: bool = False,
    ):
        super().__init__(message)
        self.provider = provider
        self.timed_out = timed_out


class AllProvidersFailedError(EmbeddingCacheError):
    """Raised when every provider failed and no fallback is available."""

    def __init__(self, message: str, failures: Optional[List[ProviderError]] = None):
        super().__init__(message)
        self.failures = failures or []


class DimensionMismatchError(EmbeddingCacheError):
    """Raised when two vectors of different lengths are compared."""

    pass


class CacheUnavailableError(EmbeddingCacheError):
    """Raised when the cache backend cannot be reached."""

    pass


class ConfigurationError(EmbeddingCacheError):
    """Raised when configuration is invalid."""

    pass
