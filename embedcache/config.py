"""
Application configuration management.

Following Sandi Metz principles:
- Single Responsibility: Configuration loading and validation
- Small class: Settings grouped by concern
- Clear naming: Descriptive property names
"""

from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

SEVEN_DAYS_MS = 7 * 24 * 60 * 60 * 1000


class EmbeddingConfig(BaseSettings):
    """
    Embedding cache configuration with validation.

    Loads from environment variables with fallback to .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False, extra="ignore"
    )

    # Application settings
    app_name: str = Field(default="embedcache", description="Application name")
    log_level: str = Field(default="INFO", description="Logging level")

    # Primary provider (Cloudflare Workers AI)
    cloudflare_account_id: str = Field(default="", description="Cloudflare account ID")
    cloudflare_api_key: str = Field(default="", description="Cloudflare API key")
    cloudflare_api_endpoint: str = Field(
        default="https://api.cloudflare.com/client/v4",
        description="Cloudflare API endpoint",
    )
    embedding_model: str = Field(
        default="@cf/baai/bge-small-en-v1.5", description="Primary embedding model"
    )

    # Secondary provider (Ollama)
    ollama_endpoint: str = Field(
        default="http://localhost:11434", description="Ollama endpoint"
    )
    ollama_model: str = Field(default="all-minilm", description="Ollama model")

    embedding_dimension: int = Field(
        default=384, ge=1, le=10000, description="Vector dimensionality"
    )

    # Cache store settings
    cache_backend: Literal["redis", "memory"] = Field(
        default="redis", description="Cache store backend"
    )
    redis_host: str = Field(default="localhost", description="Redis host")
    redis_port: int = Field(default=6379, ge=1, le=65535, description="Redis port")
    redis_db: int = Field(default=0, ge=0, le=15, description="Redis database")
    redis_password: str = Field(default="", description="Redis password")
    redis_max_connections: int = Field(default=10, ge=1, description="Max connections")
    redis_key_prefix: str = Field(default="embcache:", description="Redis key prefix")

    # Eviction and expiry
    cache_ttl_ms: int = Field(default=SEVEN_DAYS_MS, ge=0, description="Entry TTL (ms)")
    max_cache_entries: int = Field(default=10000, ge=1, description="Max cache entries")
    eviction_headroom: int = Field(
        default=100, ge=0, description="Extra entries evicted per eviction pass"
    )

    # Generation settings
    batch_size: int = Field(default=10, ge=1, description="Batch group size")
    max_concurrency: int = Field(default=5, ge=1, description="Max in-flight requests")
    timeout_ms: int = Field(default=30000, ge=1, description="Per-attempt timeout (ms)")
    max_retries: int = Field(default=3, ge=1, description="Attempts per provider")
    retry_initial_delay_seconds: float = Field(
        default=1.0, ge=0.0, description="First backoff delay"
    )
    retry_max_delay_seconds: float = Field(
        default=60.0, ge=0.0, description="Backoff delay cap"
    )

    # Monitoring settings
    enable_metrics: bool = Field(default=True, description="Enable metrics")
    metrics_log_max_events: int = Field(
        default=10000, ge=1, description="Retained metric events"
    )

    fallback_to_hash: bool = Field(
        default=True, description="Use deterministic hash embedding as last resort"
    )

    @model_validator(mode="after")
    def validate_eviction_headroom(self) -> "EmbeddingConfig":
        """Validate headroom leaves room in the cache."""
        if self.eviction_headroom >= self.max_cache_entries:
            raise ValueError(
                f"eviction_headroom ({self.eviction_headroom}) must be smaller than "
                f"max_cache_entries ({self.max_cache_entries})"
            )
        return self

    @property
    def redis_url(self) -> str:
        """Build Redis URL."""
        if self.redis_password:
            return (
                f"redis://:{self.redis_password}@"
                f"{self.redis_host}:{self.redis_port}/{self.redis_db}"
            )
        return f"redis://{self.redis_host}:{self.redis_port}/{self.redis_db}"

    @property
    def timeout_seconds(self) -> float:
        """Per-attempt timeout in seconds."""
        return self.timeout_ms / 1000

    @property
    def has_cloudflare_credentials(self) -> bool:
        """Check if the primary provider can be used."""
        return bool(self.cloudflare_account_id and self.cloudflare_api_key)


# Global configuration instance
config = EmbeddingConfig()
