"""
Centralized exception hierarchy for catalogsync.

All exceptions raised by the library derive from CatalogSyncError, so
callers can catch one type at the boundary and still inspect the cause.

Hierarchy:
    CatalogSyncError
    ├── BuildUpdateActionError
    │   ├── DuplicateKeyError
    │   └── BlankTypeIdError
    ├── InvalidDraftError
    ├── PlatformError
    │   ├── ResourceNotFoundError
    │   ├── ConcurrentModificationError
    │   ├── BadRequestError
    │   └── ServerError
    ├── RetryExhaustedError
    └── ConfigError
        ├── ConfigFileError
        └── ConfigValidationError
"""

from __future__ import annotations


__all__ = [
    "BadRequestError",
    "BlankTypeIdError",
    "BuildUpdateActionError",
    "CatalogSyncError",
    "ConcurrentModificationError",
    "ConfigError",
    "ConfigFileError",
    "ConfigValidationError",
    "DuplicateKeyError",
    "InvalidDraftError",
    "PlatformError",
    "ResourceNotFoundError",
    "RetryExhaustedError",
    "ServerError",
]


class CatalogSyncError(Exception):
    """
    Base exception for all catalogsync errors.

    Attributes:
        message: Human-readable error message.
        cause: The underlying exception, if any.
    """

    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        self.message = message
        self.cause = cause
        super().__init__(message)
        if cause is not None:
            self.__cause__ = cause

    def __str__(self) -> str:
        if self.cause is not None:
            return f"{self.message} (caused by {type(self.cause).__name__}: {self.cause})"
        return self.message


# =============================================================================
# Diff / build errors
# =============================================================================


class BuildUpdateActionError(CatalogSyncError):
    """Update actions could not be computed for a resource."""


class DuplicateKeyError(BuildUpdateActionError):
    """Two drafts inside one container share the same key."""

    def __init__(
        self,
        message: str,
        duplicate_key: str | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message, cause)
        self.duplicate_key = duplicate_key


class BlankTypeIdError(BuildUpdateActionError):
    """A custom field set references a blank type id."""


class InvalidDraftError(CatalogSyncError):
    """A caller-supplied draft is malformed (e.g. missing its natural key)."""


# =============================================================================
# Remote platform errors
# =============================================================================


class PlatformError(CatalogSyncError):
    """
    Error reported by the remote commerce platform.

    Attributes:
        resource_key: Key (or id) of the resource the request targeted.
        status_code: HTTP status code of the failed response, if known.
    """

    def __init__(
        self,
        message: str,
        resource_key: str | None = None,
        status_code: int | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message, cause)
        self.resource_key = resource_key
        self.status_code = status_code


class ResourceNotFoundError(PlatformError):
    """The targeted resource does not exist (404)."""


class ConcurrentModificationError(PlatformError):
    """The resource version sent with an update is stale (409)."""

    def __init__(
        self,
        message: str,
        resource_key: str | None = None,
        current_version: int | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message, resource_key=resource_key, status_code=409, cause=cause)
        self.current_version = current_version


class BadRequestError(PlatformError):
    """The platform rejected the request as invalid (4xx other than 404/409)."""


class ServerError(PlatformError):
    """Transient server-side failure (5xx)."""


class RetryExhaustedError(CatalogSyncError):
    """A retryable request kept failing until the retry budget ran out."""

    def __init__(
        self,
        message: str,
        attempts: int,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message, cause)
        self.attempts = attempts


# =============================================================================
# Configuration errors
# =============================================================================


class ConfigError(CatalogSyncError):
    """Base class for configuration problems."""


class ConfigFileError(ConfigError):
    """A configuration file is missing or cannot be parsed."""

    def __init__(
        self,
        message: str,
        path: str | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message, cause)
        self.path = path


class ConfigValidationError(ConfigError):
    """Loaded configuration failed validation."""

    def __init__(self, errors: list[str]) -> None:
        super().__init__("Invalid configuration: " + "; ".join(errors))
        self.errors = errors
