"""
Retry logic for embedding providers.

Sandi Metz Principles:
- Single Responsibility: Manage retry logic
- Small methods: Each method < 10 lines
- Dependency Injection: Configuration injected
"""

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, TypeVar

from embedcache.exceptions import ProviderError
from embedcache.utils.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass
class RetryConfig:
    """Retry configuration."""

    max_attempts: int = 3
    initial_delay: float = 1.0
    max_delay: float = 60.0
    exponential_base: float = 2.0


class RetryHandler:
    """
    Exponential backoff retry handler.

    Retries failed provider attempts with increasing delays. Only
    ``ProviderError`` is retried; anything else propagates immediately.
    """

    def __init__(self, config: RetryConfig | None = None):
        """
        Initialize retry handler.

        Args:
            config: Retry configuration (uses defaults if None)
        """
        self._config = config or RetryConfig()

    @property
    def max_attempts(self) -> int:
        """Get maximum attempts."""
        return self._config.max_attempts

    async def execute(
        self,
        func: Callable[[], Awaitable[T]],
        on_failure: Optional[Callable[[int, ProviderError], None]] = None,
    ) -> T:
        """
        Execute function with retry logic.

        Args:
            func: Async function to execute
            on_failure: Called with (attempt, error) after each failed attempt

        Returns:
            Function result

        Raises:
            ProviderError: If all retries exhausted
        """
        last_exception: ProviderError | None = None

        for attempt in range(1, self._config.max_attempts + 1):
            try:
                return await func()
            except ProviderError as e:
                last_exception = e
                if on_failure:
                    on_failure(attempt, e)
                if attempt == self._config.max_attempts:
                    logger.debug(f"All {attempt} retry attempts failed", error=str(e))
                    raise

                delay = self._calculate_delay(attempt)
                logger.debug(
                    f"Attempt {attempt} failed, retrying in {delay:.2f}s", error=str(e)
                )
                await asyncio.sleep(delay)

        raise last_exception  # type: ignore

    def _calculate_delay(self, attempt: int) -> float:
        """
        Calculate delay for attempt using exponential backoff.

        Args:
            attempt: Current attempt number (1-indexed)

        Returns:
            Delay in seconds
        """
        delay = self._config.initial_delay * (
            self._config.exponential_base ** (attempt - 1)
        )
        return min(delay, self._config.max_delay)
