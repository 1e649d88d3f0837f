"""
Embedding provider chain.

Tries semantic providers in order, each with its own retries and
per-attempt timeout, then falls back to the deterministic hash provider.

Sandi Metz Principles:
- Single Responsibility: Handle provider failover
- Small methods: Each method < 15 lines
- Dependency Injection: Providers, policies and metrics injected
"""

from dataclasses import dataclass
from typing import List, Optional

import httpx

from embedcache.exceptions import (
    AllProvidersFailedError,
    InvalidInputError,
    ProviderError,
)
from embedcache.monitoring.collectors import (
    NETWORK_ERRORS,
    TIMEOUT_ERRORS,
    EmbeddingMetrics,
)
from embedcache.providers.base import BaseEmbeddingProvider
from embedcache.providers.retry import RetryConfig, RetryHandler
from embedcache.providers.timeout_handler import TimeoutConfig, TimeoutHandler
from embedcache.utils.logger import get_logger, log_provider_call

logger = get_logger(__name__)

UNKNOWN_PROVIDER = "unknown"


@dataclass
class ProviderResult:
    """Vector produced by the chain and where it came from."""

    vector: List[float]
    model: str
    provider: str
    attempts: int


class ProviderChain:
    """
    Ordered provider failover.

    State per request: primary -> secondary -> ... -> fallback. A provider
    is abandoned only after its retries are exhausted; the chain never
    cycles back to an earlier provider.
    """

    def __init__(
        self,
        providers: List[BaseEmbeddingProvider],
        fallback: Optional[BaseEmbeddingProvider] = None,
        retry_config: RetryConfig | None = None,
        timeout_config: TimeoutConfig | None = None,
        metrics: Optional[EmbeddingMetrics] = None,
    ):
        """
        Initialize provider chain.

        Args:
            providers: Semantic providers, in priority order
            fallback: Provider used when all others fail (None disables)
            retry_config: Retry policy applied to each provider
            timeout_config: Per-attempt timeout
            metrics: Collector for error counts (optional)
        """
        self._providers = list(providers)
        self._fallback = fallback
        self._retry = RetryHandler(retry_config)
        self._timeout = TimeoutHandler(timeout_config)
        self._metrics = metrics

    @property
    def providers(self) -> List[BaseEmbeddingProvider]:
        """Get semantic providers in priority order."""
        return list(self._providers)

    @property
    def fallback(self) -> Optional[BaseEmbeddingProvider]:
        """Get fallback provider."""
        return self._fallback

    async def generate(self, text: str) -> ProviderResult:
        """
        Generate an embedding from the first provider that succeeds.

        Args:
            text: Text to embed

        Returns:
            Provider result

        Raises:
            InvalidInputError: If text is empty or whitespace
            AllProvidersFailedError: If every provider failed and there is
                no fallback
        """
        if not text or not text.strip():
            raise InvalidInputError("Cannot generate embedding for empty text")

        failures: List[ProviderError] = []

        for provider in self._providers:
            if not provider.is_configured():
                logger.debug("Skipping unconfigured provider", provider=provider.get_name())
                continue

            try:
                return await self._try_provider(provider, text)
            except ProviderError as e:
                failures.append(e)
                self._record_error(provider.get_name())
                logger.warning(
                    "Provider failed, trying next",
                    provider=provider.get_name(),
                    error=str(e),
                )

        if self._fallback is not None:
            return await self._use_fallback(text)

        logger.error("All providers failed", attempted=len(failures))
        raise AllProvidersFailedError(self._build_error_message(failures), failures)

    def provider_for_model(self, model: str) -> str:
        """
        Find which provider produces a given model id.

        Args:
            model: Model identifier stored with a vector

        Returns:
            Provider name, or "unknown"
        """
        candidates = list(self._providers)
        if self._fallback is not None:
            candidates.append(self._fallback)
        for provider in candidates:
            if provider.model == model:
                return provider.get_name()
        return UNKNOWN_PROVIDER

    async def close(self) -> None:
        """Close every provider's network resources."""
        for provider in self._providers:
            await provider.close()
        if self._fallback is not None:
            await self._fallback.close()

    async def _try_provider(
        self, provider: BaseEmbeddingProvider, text: str
    ) -> ProviderResult:
        """Run one provider under the retry and timeout policies."""
        name = provider.get_name()
        attempts = 0

        async def attempt() -> List[float]:
            nonlocal attempts
            attempts += 1
            log_provider_call(name, provider.model, attempts)
            try:
                return await self._timeout.execute(
                    lambda: provider.embed(text), provider=name
                )
            except ProviderError:
                raise
            except Exception as e:
                raise ProviderError(
                    f"Unexpected error from {name}: {type(e).__name__} - {e}",
                    provider=name,
                ) from e

        vector = await self._retry.execute(attempt, on_failure=self._record_attempt_failure)
        logger.info("Embedding generated", provider=name, attempts=attempts)
        return ProviderResult(
            vector=vector, model=provider.model, provider=name, attempts=attempts
        )

    async def _use_fallback(self, text: str) -> ProviderResult:
        """Run the fallback provider once."""
        fallback = self._fallback
        logger.warning(
            "Using hash-based placeholder embedding, search quality will be poor",
            provider=fallback.get_name(),
        )
        vector = await fallback.embed(text)
        return ProviderResult(
            vector=vector, model=fallback.model, provider=fallback.get_name(), attempts=1
        )

    def _record_attempt_failure(self, attempt: int, error: ProviderError) -> None:
        """Count timeout and network failures per attempt."""
        if error.timed_out:
            self._record_error(TIMEOUT_ERRORS)
        elif isinstance(error.__cause__, httpx.TransportError):
            self._record_error(NETWORK_ERRORS)

    def _record_error(self, source: str) -> None:
        if self._metrics is not None:
            self._metrics.record_error(source)

    def _build_error_message(self, failures: List[ProviderError]) -> str:
        """
        Build error message for all providers failing.

        Args:
            failures: Final error of each provider tried

        Returns:
            Formatted error message
        """
        if not failures:
            return "No embedding provider is configured and fallback is disabled"

        details = "; ".join(f"{f.provider}: {f}" for f in failures)
        return f"All embedding providers failed and fallback is disabled ({details})"
