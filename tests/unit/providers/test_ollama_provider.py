"""Test Ollama embedding provider."""

import json

import httpx
import pytest

from embedcache.exceptions import ProviderError
from embedcache.providers.ollama_provider import OllamaEmbeddingProvider


def make_provider(handler, dimension: int = 3) -> OllamaEmbeddingProvider:
    """Create provider whose HTTP calls go to handler."""
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return OllamaEmbeddingProvider(dimension=dimension, client=client)


class TestOllamaEmbeddingProvider:
    """Test Ollama provider requests and response handling."""

    @pytest.mark.asyncio
    async def test_should_post_prompt_to_embeddings_endpoint(self):
        """Test request shape and parsed vector."""
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"embedding": [1, 2.5, -3]})

        provider = make_provider(handler)
        vector = await provider.embed("class Foo: ...")

        assert vector == [1.0, 2.5, -3.0]
        assert seen["url"] == "http://localhost:11434/api/embeddings"
        assert seen["body"] == {"model": "all-minilm", "prompt": "class Foo: ..."}

    def test_should_prefix_model_id(self):
        """Test model id reported with vectors."""
        provider = OllamaEmbeddingProvider(model_name="nomic-embed-text")

        assert provider.model == "ollama-nomic-embed-text"
        assert provider.get_name() == "ollama"

    @pytest.mark.asyncio
    async def test_should_reject_missing_embedding(self):
        """Test payload without embedding key."""
        provider = make_provider(lambda request: httpx.Response(200, json={"error": "x"}))

        with pytest.raises(ProviderError, match="Invalid response format"):
            await provider.embed("text")

    @pytest.mark.asyncio
    async def test_should_reject_non_numeric_values(self):
        """Test malformed vector contents."""
        provider = make_provider(
            lambda request: httpx.Response(200, json={"embedding": [1.0, "a", 2.0]})
        )

        with pytest.raises(ProviderError, match="non-numeric"):
            await provider.embed("text")

    @pytest.mark.asyncio
    async def test_should_reject_http_error_status(self):
        """Test raise_for_status failures."""
        provider = make_provider(lambda request: httpx.Response(404, text="no model"))

        with pytest.raises(ProviderError, match="Ollama API error"):
            await provider.embed("text")

    @pytest.mark.asyncio
    async def test_should_hint_when_server_is_down(self):
        """Test connection refused adds a hint."""

        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        provider = make_provider(handler)

        with pytest.raises(ProviderError, match="ollama serve"):
            await provider.embed("text")
