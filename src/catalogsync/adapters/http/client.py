"""
Platform HTTP Client - aiohttp-based access to the commerce platform's REST
API.

- PlatformSession: one authenticated aiohttp session per project
  (OAuth2 client-credentials token, refreshed before it expires)
- HttpResourceClient: ResourceClientPort over a resource endpoint
- HttpKeyValueStore: KeyValueStorePort over the custom-objects endpoint

HTTP status codes are mapped onto the exception hierarchy:
404 -> ResourceNotFoundError, 409 -> ConcurrentModificationError,
5xx -> ServerError, other 4xx -> BadRequestError.
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from collections.abc import Sequence
from datetime import datetime
from typing import Any
from urllib.parse import quote

import aiohttp

from catalogsync.core.domain import Resource, ResourceDraft, UpdateAction
from catalogsync.core.exceptions import (
    BadRequestError,
    ConcurrentModificationError,
    PlatformError,
    ResourceNotFoundError,
    ServerError,
)
from catalogsync.core.ports import (
    KeyValueStorePort,
    PagedResult,
    PlatformConfig,
    ResourceClientPort,
    StoredEntry,
    build_in_predicate,
)


# Refresh tokens this many seconds before they expire
TOKEN_EXPIRY_MARGIN = 60.0
DEFAULT_QUERY_LIMIT = 500


def _parse_datetime(value: str | None) -> datetime | None:
    if not value:
        return None
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def map_error(
    status: int,
    body: Any,
    resource_key: str | None = None,
) -> PlatformError:
    """Translate an error response into the matching PlatformError."""
    message = body.get("message") if isinstance(body, dict) else None
    message = message or f"HTTP {status}"
    errors = body.get("errors") if isinstance(body, dict) else None

    if status == 404:
        return ResourceNotFoundError(message, resource_key=resource_key, status_code=status)
    if status == 409:
        current_version = None
        for error in errors or []:
            if isinstance(error, dict) and "currentVersion" in error:
                current_version = error["currentVersion"]
                break
        return ConcurrentModificationError(
            message, resource_key=resource_key, current_version=current_version
        )
    if status >= 500:
        return ServerError(message, resource_key=resource_key, status_code=status)
    return BadRequestError(message, resource_key=resource_key, status_code=status)


class PlatformSession:
    """
    Authenticated HTTP session for one project.

    Use as an async context manager:

        >>> async with PlatformSession(config) as session:
        ...     categories = HttpResourceClient(session, "category", "categories")
        ...     await categories.fetch_by_keys(["shoes"])
    """

    def __init__(
        self,
        config: PlatformConfig,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self.config = config
        self._session = session
        self._owns_session = session is None
        self._token: str | None = None
        self._token_expires_at = 0.0
        self._token_lock = asyncio.Lock()
        self.logger = logging.getLogger("PlatformSession")

    async def __aenter__(self) -> PlatformSession:
        await self.connect()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def connect(self) -> None:
        if self._session is None:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.config.request_timeout)
            )
            self._owns_session = True

    async def close(self) -> None:
        if self._session is not None and self._owns_session:
            await self._session.close()
        self._session = None

    def _ensure_connected(self) -> aiohttp.ClientSession:
        if self._session is None:
            raise RuntimeError("Platform session is not connected. Use 'async with' or connect().")
        return self._session

    @property
    def project_url(self) -> str:
        return f"{self.config.api_url.rstrip('/')}/{self.config.project_key}"

    async def _access_token(self) -> str:
        async with self._token_lock:
            if self._token is not None and time.monotonic() < self._token_expires_at:
                return self._token

            session = self._ensure_connected()
            data = {"grant_type": "client_credentials"}
            if self.config.scopes:
                data["scope"] = " ".join(self.config.scopes)

            self.logger.debug(f"Requesting access token for project '{self.config.project_key}'")
            try:
                async with session.post(
                    f"{self.config.auth_url.rstrip('/')}/oauth/token",
                    data=data,
                    auth=aiohttp.BasicAuth(self.config.client_id, self.config.client_secret),
                ) as response:
                    body = await self._read_body(response)
                    if response.status >= 400:
                        raise map_error(response.status, body)
            except (aiohttp.ClientConnectionError, asyncio.TimeoutError) as e:
                raise ServerError(
                    f"Connection to {self.config.auth_url} failed", cause=e
                ) from e

            self._token = body["access_token"]
            self._token_expires_at = (
                time.monotonic() + float(body.get("expires_in", 0)) - TOKEN_EXPIRY_MARGIN
            )
            return self._token

    @staticmethod
    async def _read_body(response: aiohttp.ClientResponse) -> Any:
        text = await response.text()
        if not text:
            return None
        try:
            return json.loads(text)
        except json.JSONDecodeError:
            return {"message": text}

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json_body: Any = None,
        resource_key: str | None = None,
    ) -> Any:
        """
        Send one request relative to the project URL.

        Raises:
            PlatformError: Mapped from the response status
            ServerError: On connection failures and timeouts (no status code)
        """
        session = self._ensure_connected()
        token = await self._access_token()
        url = f"{self.project_url}/{path.lstrip('/')}"

        self.logger.debug(f"{method} {url}")
        try:
            async with session.request(
                method,
                url,
                params=params,
                json=json_body,
                headers={"Authorization": f"Bearer {token}"},
            ) as response:
                body = await self._read_body(response)
                if response.status >= 400:
                    raise map_error(response.status, body, resource_key)
                return body
        except (aiohttp.ClientConnectionError, asyncio.TimeoutError) as e:
            raise ServerError(
                f"Connection to {self.config.api_url} failed", resource_key=resource_key, cause=e
            ) from e


class HttpResourceClient(ResourceClientPort):
    """ResourceClientPort over one resource endpoint (e.g. ``categories``)."""

    def __init__(
        self,
        session: PlatformSession,
        resource_type: str,
        endpoint: str,
        page_size: int = DEFAULT_QUERY_LIMIT,
    ) -> None:
        self.session = session
        self._resource_type = resource_type
        self.endpoint = endpoint.strip("/")
        self.page_size = page_size

    @property
    def resource_type(self) -> str:
        return self._resource_type

    async def query(
        self,
        predicate: str | None = None,
        *,
        limit: int = DEFAULT_QUERY_LIMIT,
        offset: int = 0,
    ) -> PagedResult[Resource]:
        params: dict[str, Any] = {"limit": limit, "offset": offset, "withTotal": "true"}
        if predicate:
            params["where"] = predicate
        body = await self.session.request("GET", self.endpoint, params=params)
        return PagedResult(
            results=[Resource.from_dict(item) for item in body.get("results", [])],
            offset=body.get("offset", offset),
            total=body.get("total"),
        )

    async def _query_all(self, predicate: str) -> list[Resource]:
        resources: list[Resource] = []
        offset = 0
        while True:
            page = await self.query(predicate, limit=self.page_size, offset=offset)
            resources.extend(page.results)
            if page.count == 0 or not page.has_next(self.page_size):
                return resources
            offset += page.count

    async def fetch_by_keys(self, keys: Sequence[str]) -> list[Resource]:
        if not keys:
            return []
        return await self._query_all(build_in_predicate("key", keys))

    async def fetch_by_ids(self, ids: Sequence[str]) -> list[Resource]:
        if not ids:
            return []
        return await self._query_all(build_in_predicate("id", ids))

    async def create(self, draft: ResourceDraft) -> Resource:
        body = await self.session.request(
            "POST", self.endpoint, json_body=draft.to_dict(), resource_key=draft.key
        )
        return Resource.from_dict(body)

    async def update(self, resource: Resource, actions: Sequence[UpdateAction]) -> Resource:
        body = await self.session.request(
            "POST",
            f"{self.endpoint}/{resource.id}",
            json_body={
                "version": resource.version,
                "actions": [action.to_dict() for action in actions],
            },
            resource_key=resource.key,
        )
        return Resource.from_dict(body)

    async def delete(self, resource: Resource) -> Resource:
        body = await self.session.request(
            "DELETE",
            f"{self.endpoint}/{resource.id}",
            params={"version": resource.version},
            resource_key=resource.key,
        )
        return Resource.from_dict(body)


class HttpKeyValueStore(KeyValueStorePort):
    """KeyValueStorePort over the platform's custom-objects endpoint."""

    endpoint = "custom-objects"

    def __init__(self, session: PlatformSession) -> None:
        self.session = session

    @staticmethod
    def _to_entry(data: dict[str, Any]) -> StoredEntry:
        return StoredEntry(
            container=data["container"],
            key=data["key"],
            value=data.get("value"),
            version=int(data.get("version", 1)),
            last_modified_at=_parse_datetime(data.get("lastModifiedAt")),
        )

    def _path(self, container: str, key: str | None = None) -> str:
        path = f"{self.endpoint}/{quote(container, safe='')}"
        if key is not None:
            path += f"/{quote(key, safe='')}"
        return path

    async def get(self, container: str, key: str) -> StoredEntry | None:
        try:
            body = await self.session.request("GET", self._path(container, key), resource_key=key)
        except ResourceNotFoundError:
            return None
        return self._to_entry(body)

    async def query(
        self,
        container: str,
        *,
        keys: list[str] | None = None,
        modified_before: datetime | None = None,
        limit: int = DEFAULT_QUERY_LIMIT,
        offset: int = 0,
    ) -> PagedResult[StoredEntry]:
        predicates = []
        if keys is not None:
            predicates.append(build_in_predicate("key", keys))
        if modified_before is not None:
            predicates.append(f'lastModifiedAt < "{modified_before.isoformat()}"')

        params: dict[str, Any] = {"limit": limit, "offset": offset, "withTotal": "true"}
        if predicates:
            params["where"] = " and ".join(predicates)
        body = await self.session.request("GET", self._path(container), params=params)
        return PagedResult(
            results=[self._to_entry(item) for item in body.get("results", [])],
            offset=body.get("offset", offset),
            total=body.get("total"),
        )

    async def upsert(self, container: str, key: str, value: Any) -> StoredEntry:
        body = await self.session.request(
            "POST",
            self.endpoint,
            json_body={"container": container, "key": key, "value": value},
            resource_key=key,
        )
        return self._to_entry(body)

    async def delete(self, container: str, key: str) -> StoredEntry:
        body = await self.session.request("DELETE", self._path(container, key), resource_key=key)
        return self._to_entry(body)
