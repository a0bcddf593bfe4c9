"""
File Configuration Provider - Load configuration from YAML/TOML files.

Supported files (searched in order when no path is given):
- .catalogsync.yaml / .catalogsync.yml
- .catalogsync.toml
- pyproject.toml ([tool.catalogsync] section)

Searched in the current directory first, then the home directory.

Example .catalogsync.yaml:

    target:
      project_key: my-shop-staging
      client_id: abc
      client_secret: s3cr3t
    batch:
      batch_size: 50
      max_parallel_requests: 10
    retry:
      max_retries: 3
    logging:
      level: DEBUG
      format: json
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml


try:
    import tomllib  # Python 3.11+
except ImportError:
    import tomli as tomllib  # Fallback for older Python

from catalogsync.core.exceptions import ConfigFileError, ConfigValidationError
from catalogsync.core.ports.config_provider import (
    AppConfig,
    BatchConfig,
    CacheConfig,
    ConfigProviderPort,
    DeferredConfig,
    PlatformConfig,
    RetryConfig,
)


CONFIG_FILE_NAMES = (
    ".catalogsync.yaml",
    ".catalogsync.yml",
    ".catalogsync.toml",
    "pyproject.toml",
)


def find_config_file(search_dirs: list[Path] | None = None) -> Path | None:
    """Return the first config file found in the search directories."""
    dirs = search_dirs if search_dirs is not None else [Path.cwd(), Path.home()]
    for directory in dirs:
        for name in CONFIG_FILE_NAMES:
            candidate = directory / name
            if not candidate.is_file():
                continue
            if name == "pyproject.toml" and not _has_tool_section(candidate):
                continue
            return candidate
    return None


def _has_tool_section(path: Path) -> bool:
    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except (OSError, tomllib.TOMLDecodeError):
        return False
    return "catalogsync" in data.get("tool", {})


def read_config_file(path: Path) -> dict[str, Any]:
    """
    Parse a config file into a nested dict.

    Raises:
        ConfigFileError: If the file is missing or has invalid syntax
    """
    if not path.is_file():
        raise ConfigFileError(f"Config file not found: {path}", path=str(path))

    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigFileError(f"Cannot read config file {path}", path=str(path), cause=e) from e

    if path.suffix in (".yaml", ".yml"):
        try:
            data = yaml.safe_load(text) or {}
        except yaml.YAMLError as e:
            raise ConfigFileError(
                f"Invalid YAML syntax in {path}", path=str(path), cause=e
            ) from e
    elif path.suffix == ".toml":
        try:
            data = tomllib.loads(text)
        except tomllib.TOMLDecodeError as e:
            raise ConfigFileError(
                f"Invalid TOML syntax in {path}", path=str(path), cause=e
            ) from e
        if path.name == "pyproject.toml":
            data = data.get("tool", {}).get("catalogsync", {})
    else:
        raise ConfigFileError(f"Unsupported config file type: {path.suffix}", path=str(path))

    if not isinstance(data, dict):
        raise ConfigFileError(f"Config file {path} must contain a mapping", path=str(path))
    return data


def deep_merge(base: Mapping[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    """Merge two nested dicts; values from ``override`` win."""
    merged = copy.deepcopy(dict(base))
    for key, value in override.items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), Mapping):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def set_dotted(data: dict[str, Any], dotted_key: str, value: Any) -> None:
    """Set ``data['a']['b'] = value`` for ``dotted_key='a.b'``."""
    parts = dotted_key.split(".")
    node = data
    for part in parts[:-1]:
        node = node.setdefault(part, {})
    node[parts[-1]] = value


def get_dotted(data: Mapping[str, Any], dotted_key: str, default: Any = None) -> Any:
    node: Any = data
    for part in dotted_key.split("."):
        if not isinstance(node, Mapping) or part not in node:
            return default
        node = node[part]
    return node


def _as_int(section: Mapping[str, Any], name: str, default: int, errors: list[str], prefix: str) -> int:
    value = section.get(name, default)
    try:
        return int(value)
    except (TypeError, ValueError):
        errors.append(f"{prefix}.{name} must be an integer, got {value!r}")
        return default


def _as_float(
    section: Mapping[str, Any], name: str, default: float, errors: list[str], prefix: str
) -> float:
    value = section.get(name, default)
    try:
        return float(value)
    except (TypeError, ValueError):
        errors.append(f"{prefix}.{name} must be a number, got {value!r}")
        return default


def _platform_config(section: Mapping[str, Any], errors: list[str], prefix: str) -> PlatformConfig:
    defaults = PlatformConfig()
    scopes = section.get("scopes", [])
    if isinstance(scopes, str):
        scopes = scopes.split()
    return PlatformConfig(
        project_key=str(section.get("project_key", defaults.project_key)),
        client_id=str(section.get("client_id", defaults.client_id)),
        client_secret=str(section.get("client_secret", defaults.client_secret)),
        api_url=str(section.get("api_url", defaults.api_url)).rstrip("/"),
        auth_url=str(section.get("auth_url", defaults.auth_url)).rstrip("/"),
        scopes=list(scopes),
        request_timeout=_as_float(section, "request_timeout", defaults.request_timeout, errors, prefix),
    )


def config_from_dict(data: Mapping[str, Any]) -> AppConfig:
    """
    Build an AppConfig from a nested dict.

    Raises:
        ConfigValidationError: If a value has the wrong type
    """
    errors: list[str] = []

    retry_data = data.get("retry") or {}
    retry_defaults = RetryConfig()
    codes = retry_data.get("retryable_status_codes")
    retry = RetryConfig(
        max_retries=_as_int(retry_data, "max_retries", retry_defaults.max_retries, errors, "retry"),
        initial_delay=_as_float(
            retry_data, "initial_delay", retry_defaults.initial_delay, errors, "retry"
        ),
        timeout=_as_float(retry_data, "timeout", retry_defaults.timeout, errors, "retry"),
        retryable_status_codes=(
            frozenset(int(code) for code in codes)
            if codes
            else retry_defaults.retryable_status_codes
        ),
    )

    batch_data = data.get("batch") or {}
    batch_defaults = BatchConfig()
    batch = BatchConfig(
        batch_size=_as_int(batch_data, "batch_size", batch_defaults.batch_size, errors, "batch"),
        max_parallel_requests=_as_int(
            batch_data,
            "max_parallel_requests",
            batch_defaults.max_parallel_requests,
            errors,
            "batch",
        ),
    )

    cache_data = data.get("cache") or {}
    cache = CacheConfig(
        max_size=_as_int(cache_data, "max_size", CacheConfig().max_size, errors, "cache")
    )

    deferred_data = data.get("deferred") or {}
    deferred_defaults = DeferredConfig()
    deferred = DeferredConfig(
        page_size=_as_int(
            deferred_data, "page_size", deferred_defaults.page_size, errors, "deferred"
        ),
        retention_days=_as_int(
            deferred_data, "retention_days", deferred_defaults.retention_days, errors, "deferred"
        ),
        container_prefix=str(
            deferred_data.get("container_prefix", deferred_defaults.container_prefix)
        ),
    )

    logging_data = data.get("logging") or {}
    config = AppConfig(
        source=_platform_config(data.get("source") or {}, errors, "source"),
        target=_platform_config(data.get("target") or {}, errors, "target"),
        retry=retry,
        batch=batch,
        cache=cache,
        deferred=deferred,
        log_level=str(logging_data.get("level", "INFO")).upper(),
        log_format=str(logging_data.get("format", "text")).lower(),
    )

    if errors:
        raise ConfigValidationError(errors)
    return config


class FileConfigProvider(ConfigProviderPort):
    """
    Configuration provider reading one YAML or TOML file.

    ``overrides`` maps dotted keys (``"batch.batch_size"``) to values and
    takes precedence over the file.
    """

    def __init__(
        self,
        config_path: Path | str | None = None,
        overrides: Mapping[str, Any] | None = None,
    ) -> None:
        self._explicit_path = Path(config_path) if config_path is not None else None
        self._overrides = dict(overrides or {})
        self._data: dict[str, Any] | None = None
        self._config: AppConfig | None = None
        self.logger = logging.getLogger("FileConfigProvider")

    @property
    def name(self) -> str:
        path = self.config_file_path
        return f"File ({path})" if path else "File (none)"

    @property
    def config_file_path(self) -> Path | None:
        if self._explicit_path is not None:
            return self._explicit_path
        return find_config_file()

    def raw_data(self) -> dict[str, Any]:
        """
        Parsed file contents with overrides applied.

        Raises:
            ConfigFileError: If the file cannot be read or parsed
        """
        if self._data is None:
            path = self.config_file_path
            data: dict[str, Any] = {}
            if path is not None:
                data = read_config_file(path)
                self.logger.debug(f"Loaded config file {path}")
            for dotted_key, value in self._overrides.items():
                set_dotted(data, dotted_key, value)
            self._data = data
        return self._data

    def load(self) -> AppConfig:
        if self._config is None:
            self._config = config_from_dict(self.raw_data())
        return self._config

    def get(self, key: str, default: Any = None) -> Any:
        return get_dotted(self.raw_data(), key, default)

    def validate(self) -> list[str]:
        try:
            config = self.load()
        except ConfigValidationError as e:
            return list(e.errors)
        except ConfigFileError as e:
            return [str(e)]
        return config.validate()
