"""
Embedding provider base class and interface.

Sandi Metz Principles:
- Single Responsibility: Provider abstraction
- Interface Segregation: Minimal provider interface
- Dependency Inversion: Depend on abstraction, not concrete classes
"""

import math
from abc import ABC, abstractmethod
from typing import Any, List

from embedcache.exceptions import ProviderError


class BaseEmbeddingProvider(ABC):
    """
    Abstract base class for embedding providers.

    Defines interface that all providers must implement.
    """

    def __init__(self, model: str, dimension: int):
        """
        Initialize provider.

        Args:
            model: Model identifier reported with each vector
            dimension: Expected vector length
        """
        self._model = model
        self._dimension = dimension

    @property
    def model(self) -> str:
        """Get model identifier."""
        return self._model

    @property
    def dimension(self) -> int:
        """Get expected vector length."""
        return self._dimension

    @abstractmethod
    async def embed(self, text: str) -> List[float]:
        """
        Generate embedding for text.

        Args:
            text: Text to embed

        Returns:
            Vector of exactly ``dimension`` floats

        Raises:
            ProviderError: If the request or its response is invalid
        """
        pass

    @abstractmethod
    def get_name(self) -> str:
        """
        Get provider name.

        Returns:
            Provider name (e.g., "cloudflare", "ollama")
        """
        pass

    def is_configured(self) -> bool:
        """
        Check if the provider has what it needs to be called.

        Returns:
            True if the provider can be attempted
        """
        return True

    async def close(self) -> None:
        """Release network resources."""
        return None

    def _validate_vector(self, values: Any) -> List[float]:
        """
        Validate a provider payload as an embedding vector.

        Args:
            values: Decoded payload

        Returns:
            Vector as list of floats

        Raises:
            ProviderError: If payload is missing, has the wrong length, or
                contains non-finite or non-numeric values
        """
        if not isinstance(values, list) or not values:
            raise ProviderError(
                f"{self.get_name()} returned no embedding", provider=self.get_name()
            )

        if len(values) != self._dimension:
            raise ProviderError(
                f"{self.get_name()} returned {len(values)} dimensions, "
                f"expected {self._dimension}",
                provider=self.get_name(),
            )

        vector = []
        for i, value in enumerate(values):
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ProviderError(
                    f"{self.get_name()} returned non-numeric value at index {i}",
                    provider=self.get_name(),
                )
            if math.isnan(value) or math.isinf(value):
                raise ProviderError(
                    f"{self.get_name()} returned NaN or Inf at index {i}",
                    provider=self.get_name(),
                )
            vector.append(float(value))
        return vector

    def _build_error_message(self, error: Exception, context: str) -> str:
        """
        Build error message with context.

        Args:
            error: The exception that occurred
            context: Context description

        Returns:
            Formatted error message
        """
        return f"{context}: {type(error).__name__} - {str(error)}"
