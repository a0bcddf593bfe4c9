"""
In-memory adapters - dict-backed implementations of the platform ports.

Used by the test suite and for offline dry runs.
"""

from .key_value_store import InMemoryKeyValueStore
from .resource_client import InMemoryResourceClient


__all__ = ["InMemoryKeyValueStore", "InMemoryResourceClient"]
