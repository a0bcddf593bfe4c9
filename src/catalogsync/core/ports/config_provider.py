"""
Configuration Provider Port - Abstract interface for configuration.

Implementations:
- EnvironmentConfigProvider: Load from CATALOGSYNC_* env vars and .env
- FileConfigProvider: Load from YAML/TOML config files
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from typing import Any


DEFAULT_RETRYABLE_STATUS_CODES = frozenset({500, 502, 503, 504})


@dataclass(frozen=True)
class RetryConfig:
    """
    Retry policy for transient platform failures.

    Delays are in seconds. ``timeout`` caps every individual delay.
    """

    max_retries: int = 5
    initial_delay: float = 0.2
    timeout: float = 30.0
    retryable_status_codes: frozenset[int] = DEFAULT_RETRYABLE_STATUS_CODES

    def with_updates(self, **kwargs: Any) -> RetryConfig:
        """Return a copy with the given fields replaced."""
        return replace(self, **kwargs)


@dataclass(frozen=True)
class BatchConfig:
    """Chunking and concurrency settings for bulk operations."""

    batch_size: int = 30
    max_parallel_requests: int = 20


@dataclass(frozen=True)
class CacheConfig:
    """Reference id-to-key cache settings."""

    max_size: int = 10_000


@dataclass(frozen=True)
class DeferredConfig:
    """Settings for the store of drafts waiting for missing references."""

    page_size: int = 250
    retention_days: int = 30
    container_prefix: str = "catalogsync.deferred"

    def container_for(self, resource_type: str) -> str:
        """Container name holding deferred drafts of one resource kind."""
        return f"{self.container_prefix}.{resource_type}Drafts"


@dataclass
class PlatformConfig:
    """Connection settings for one commerce-platform project."""

    project_key: str = ""
    client_id: str = ""
    client_secret: str = ""
    api_url: str = "https://api.europe-west1.gcp.commercetools.com"
    auth_url: str = "https://auth.europe-west1.gcp.commercetools.com"
    scopes: list[str] = field(default_factory=list)
    request_timeout: float = 30.0

    def is_valid(self) -> bool:
        """Check if configuration is valid."""
        return bool(self.project_key and self.client_id and self.client_secret)


@dataclass
class AppConfig:
    """Complete application configuration."""

    source: PlatformConfig = field(default_factory=PlatformConfig)
    target: PlatformConfig = field(default_factory=PlatformConfig)
    retry: RetryConfig = field(default_factory=RetryConfig)
    batch: BatchConfig = field(default_factory=BatchConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    deferred: DeferredConfig = field(default_factory=DeferredConfig)
    log_level: str = "INFO"
    log_format: str = "text"

    def validate(self) -> list[str]:
        """
        Validate configuration.

        Returns:
            List of validation errors (empty if valid)
        """
        errors = []

        if not self.target.project_key:
            errors.append("Missing target project key (CATALOGSYNC_TARGET_PROJECT_KEY)")
        if not self.target.client_id:
            errors.append("Missing target client id (CATALOGSYNC_TARGET_CLIENT_ID)")
        if not self.target.client_secret:
            errors.append("Missing target client secret (CATALOGSYNC_TARGET_CLIENT_SECRET)")
        if self.batch.batch_size < 1:
            errors.append("Batch size must be at least 1")
        if self.batch.max_parallel_requests < 1:
            errors.append("Max parallel requests must be at least 1")
        if self.retry.max_retries < 0:
            errors.append("Max retries cannot be negative")
        if self.retry.initial_delay < 0 or self.retry.timeout < 0:
            errors.append("Retry delays cannot be negative")
        if self.cache.max_size < 1:
            errors.append("Cache size must be at least 1")
        if self.log_format not in ("text", "json"):
            errors.append(f"Unknown log format: {self.log_format}")

        return errors


class ConfigProviderPort(ABC):
    """
    Abstract interface for configuration providers.

    Configuration can come from various sources:
    - Environment variables
    - .env files
    - YAML/TOML config files
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Get the provider name."""
        ...

    @abstractmethod
    def load(self) -> AppConfig:
        """
        Load configuration from source.

        Returns:
            Complete application configuration
        """
        ...

    @abstractmethod
    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a specific configuration value.

        Args:
            key: Configuration key (dot notation supported)
            default: Default value if not found

        Returns:
            Configuration value
        """
        ...

    @abstractmethod
    def validate(self) -> list[str]:
        """
        Validate loaded configuration.

        Returns:
            List of validation errors
        """
        ...
