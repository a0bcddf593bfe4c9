"""
HTTP adapters for the commerce platform's REST API (aiohttp).
"""

from .client import HttpKeyValueStore, HttpResourceClient, PlatformSession, map_error


__all__ = [
    "HttpKeyValueStore",
    "HttpResourceClient",
    "PlatformSession",
    "map_error",
]
