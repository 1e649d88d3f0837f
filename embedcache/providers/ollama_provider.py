"""
Ollama embedding provider.

Secondary provider. Uses Ollama's local ``/api/embeddings`` endpoint, which
answers ``{"embedding": [...]}``. The configured model must produce vectors
of the cache dimension (``all-minilm`` yields 384).

Sandi Metz Principles:
- Single Responsibility: Ollama API integration
- Small methods: Request and parse isolated
- Dependency Injection: HTTP client injectable
"""

from typing import List, Optional

import httpx

from embedcache.exceptions import ProviderError
from embedcache.providers.base import BaseEmbeddingProvider
from embedcache.utils.logger import get_logger

logger = get_logger(__name__)


class OllamaEmbeddingProvider(BaseEmbeddingProvider):
    """Embedding provider for a local Ollama server."""

    NAME = "ollama"

    def __init__(
        self,
        endpoint: str = "http://localhost:11434",
        model_name: str = "all-minilm",
        dimension: int = 384,
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize Ollama provider.

        Args:
            endpoint: Ollama base URL
            model_name: Ollama model to run
            dimension: Expected vector length
            timeout: HTTP timeout in seconds
            client: Pre-built HTTP client (optional)
        """
        super().__init__(model=f"ollama-{model_name}", dimension=dimension)
        self._endpoint = endpoint.rstrip("/")
        self._model_name = model_name
        self._timeout = timeout
        self._client = client

    @property
    def client(self) -> httpx.AsyncClient:
        """Lazy-load the async HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self._timeout,
                limits=httpx.Limits(max_connections=100, max_keepalive_connections=20),
            )
        return self._client

    def get_name(self) -> str:
        return self.NAME

    async def embed(self, text: str) -> List[float]:
        url = f"{self._endpoint}/api/embeddings"
        payload = {"model": self._model_name, "prompt": text}

        try:
            response = await self.client.post(url, json=payload)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPError as e:
            error_msg = self._build_error_message(e, "Ollama API error")
            if isinstance(e, httpx.ConnectError):
                error_msg += " (is Ollama running? try: ollama serve)"
            raise ProviderError(
                error_msg,
                provider=self.NAME,
                timed_out=isinstance(e, httpx.TimeoutException),
            ) from e
        except ValueError as e:
            raise ProviderError(
                self._build_error_message(e, "Invalid JSON from Ollama"),
                provider=self.NAME,
            ) from e

        if not isinstance(data, dict) or "embedding" not in data:
            raise ProviderError("Invalid response format from Ollama", provider=self.NAME)

        vector = self._validate_vector(data["embedding"])
        logger.debug("Ollama embedding received", model=self._model_name, dimensions=len(vector))
        return vector

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
