"""
Provider timeout handler.

Sandi Metz Principles:
- Single Responsibility: Handle request timeouts
- Small methods: Each method < 10 lines
- Clear naming: Self-documenting code
"""

import asyncio
from typing import Awaitable, Callable, TypeVar

from embedcache.exceptions import ProviderError
from embedcache.utils.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class TimeoutConfig:
    """Configuration for timeout handling."""

    def __init__(self, timeout_seconds: float = 30.0):
        """
        Initialize timeout configuration.

        Args:
            timeout_seconds: Timeout in seconds (default: 30)
        """
        self.timeout_seconds = timeout_seconds


class TimeoutHandler:
    """
    Handler for managing request timeouts.

    Wraps async operations with timeout protection. On timeout the wrapped
    coroutine is cancelled, which closes any in-flight HTTP request.
    """

    def __init__(self, config: TimeoutConfig | None = None):
        """
        Initialize timeout handler.

        Args:
            config: Timeout configuration (creates default if None)
        """
        self._config = config or TimeoutConfig()

    async def execute(
        self,
        operation: Callable[[], Awaitable[T]],
        provider: str | None = None,
    ) -> T:
        """
        Execute operation with timeout.

        Args:
            operation: Async function to execute
            provider: Provider name for error reporting

        Returns:
            Operation result

        Raises:
            ProviderError: If operation times out
        """
        timeout = self._config.timeout_seconds

        try:
            return await asyncio.wait_for(operation(), timeout=timeout)
        except asyncio.TimeoutError as e:
            logger.warning("Provider request timeout", provider=provider, timeout=timeout)
            raise ProviderError(
                f"Request timed out after {timeout} seconds",
                provider=provider,
                timed_out=True,
            ) from e

    def get_timeout(self) -> float:
        """
        Get configured timeout value.

        Returns:
            Timeout in seconds
        """
        return self._config.timeout_seconds
