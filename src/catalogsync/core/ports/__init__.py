"""
Ports - Abstract interfaces for external dependencies.

Ports define the contracts that adapters must implement.
This enables dependency inversion and easy testing.
"""

from .config_provider import (
    AppConfig,
    BatchConfig,
    CacheConfig,
    ConfigProviderPort,
    DeferredConfig,
    PlatformConfig,
    RetryConfig,
)
from .key_value_store import KeyValueStorePort, StoredEntry
from .reference_cache import ReferenceCachePort
from .resource_client import PagedResult, ResourceClientPort, build_in_predicate


__all__ = [
    "AppConfig",
    "BatchConfig",
    "CacheConfig",
    "ConfigProviderPort",
    "DeferredConfig",
    "KeyValueStorePort",
    "PagedResult",
    "PlatformConfig",
    "ReferenceCachePort",
    "ResourceClientPort",
    "RetryConfig",
    "StoredEntry",
    "build_in_predicate",
]
