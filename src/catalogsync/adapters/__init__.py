"""
Adapters - concrete implementations of the core ports.

- cache: in-memory id-to-key cache
- config: environment and file configuration providers
- http: aiohttp clients for the platform REST API
- memory: dict-backed resource client and key-value store
"""
