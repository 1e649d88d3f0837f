"""
Cloudflare Workers AI embedding provider.

Primary provider. Calls ``/accounts/{account}/ai/run/{model}`` with a
single-text batch and expects ``{"success": true, "result": {"data": [[...]]}}``.

Sandi Metz Principles:
- Single Responsibility: Cloudflare API integration
- Small methods: Request, parse and validate isolated
- Dependency Injection: HTTP client injectable
"""

from typing import Any, List, Optional

import httpx

from embedcache.exceptions import ProviderError
from embedcache.providers.base import BaseEmbeddingProvider
from embedcache.utils.logger import get_logger

logger = get_logger(__name__)


class CloudflareEmbeddingProvider(BaseEmbeddingProvider):
    """Embedding provider for Cloudflare Workers AI."""

    NAME = "cloudflare"

    def __init__(
        self,
        account_id: str,
        api_key: str,
        model: str = "@cf/baai/bge-small-en-v1.5",
        api_endpoint: str = "https://api.cloudflare.com/client/v4",
        dimension: int = 384,
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize Cloudflare provider.

        Args:
            account_id: Cloudflare account ID
            api_key: Cloudflare API token
            model: Workers AI model name
            api_endpoint: API base URL
            dimension: Expected vector length
            timeout: HTTP timeout in seconds
            client: Pre-built HTTP client (optional)
        """
        super().__init__(model=model, dimension=dimension)
        self._account_id = account_id
        self._api_key = api_key
        self._api_endpoint = api_endpoint.rstrip("/")
        self._timeout = timeout
        self._client = client

    @property
    def client(self) -> httpx.AsyncClient:
        """Lazy-load the async HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        return self._client

    def get_name(self) -> str:
        return self.NAME

    def is_configured(self) -> bool:
        return bool(self._account_id and self._api_key)

    async def embed(self, text: str) -> List[float]:
        if not self.is_configured():
            raise ProviderError("Cloudflare credentials not configured", provider=self.NAME)

        try:
            response = await self.client.post(
                self._build_url(),
                headers={"Authorization": f"Bearer {self._api_key}"},
                json={"text": [text]},
            )
        except httpx.HTTPError as e:
            raise ProviderError(
                self._build_error_message(e, "Cloudflare request failed"),
                provider=self.NAME,
                timed_out=isinstance(e, httpx.TimeoutException),
            ) from e

        if response.status_code >= 400:
            raise ProviderError(
                f"Cloudflare API error {response.status_code}: {response.text[:200]}",
                provider=self.NAME,
            )

        vector = self._validate_vector(self._extract_embedding(self._parse_json(response)))
        logger.debug("Cloudflare embedding received", model=self.model, dimensions=len(vector))
        return vector

    def _build_url(self) -> str:
        return f"{self._api_endpoint}/accounts/{self._account_id}/ai/run/{self.model}"

    def _parse_json(self, response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise ProviderError(
                self._build_error_message(e, "Invalid JSON from Cloudflare"),
                provider=self.NAME,
            ) from e

    def _extract_embedding(self, data: Any) -> Any:
        """
        Pull the first vector out of a Workers AI response.

        Raises:
            ProviderError: If the API reports failure or the payload is missing
        """
        if not isinstance(data, dict):
            raise ProviderError("Invalid response format from Cloudflare", provider=self.NAME)

        if not data.get("success"):
            errors = data.get("errors") or []
            first = errors[0] if errors and isinstance(errors[0], dict) else {}
            message = first.get("message", "Unknown error")
            raise ProviderError(f"Cloudflare API failure: {message}", provider=self.NAME)

        result = data.get("result")
        if not isinstance(result, dict):
            raise ProviderError("Invalid response format from Cloudflare", provider=self.NAME)

        rows = result.get("data")
        if not isinstance(rows, list) or not rows:
            raise ProviderError("Invalid response format from Cloudflare", provider=self.NAME)

        return rows[0]

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
