"""
Environment Configuration Provider - Load configuration from environment
variables, an optional .env file and an optional config file.

Precedence (highest first):
    overrides > environment variables > .env file > config file > defaults

Environment variables:
    CATALOGSYNC_{SOURCE,TARGET}_PROJECT_KEY
    CATALOGSYNC_{SOURCE,TARGET}_CLIENT_ID
    CATALOGSYNC_{SOURCE,TARGET}_CLIENT_SECRET
    CATALOGSYNC_{SOURCE,TARGET}_API_URL
    CATALOGSYNC_{SOURCE,TARGET}_AUTH_URL
    CATALOGSYNC_{SOURCE,TARGET}_SCOPES (space separated)
    CATALOGSYNC_BATCH_SIZE, CATALOGSYNC_MAX_PARALLEL_REQUESTS
    CATALOGSYNC_MAX_RETRIES, CATALOGSYNC_INITIAL_DELAY, CATALOGSYNC_RETRY_TIMEOUT
    CATALOGSYNC_CACHE_SIZE
    CATALOGSYNC_DEFERRED_PAGE_SIZE, CATALOGSYNC_RETENTION_DAYS
    CATALOGSYNC_LOG_LEVEL, CATALOGSYNC_LOG_FORMAT
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from dotenv import dotenv_values

from catalogsync.core.exceptions import ConfigFileError, ConfigValidationError
from catalogsync.core.ports.config_provider import AppConfig, ConfigProviderPort

from .file_config import (
    config_from_dict,
    deep_merge,
    find_config_file,
    get_dotted,
    read_config_file,
    set_dotted,
)


ENV_PREFIX = "CATALOGSYNC_"

# Environment variable suffix -> dotted config key
ENV_KEYS: dict[str, str] = {
    "BATCH_SIZE": "batch.batch_size",
    "MAX_PARALLEL_REQUESTS": "batch.max_parallel_requests",
    "MAX_RETRIES": "retry.max_retries",
    "INITIAL_DELAY": "retry.initial_delay",
    "RETRY_TIMEOUT": "retry.timeout",
    "CACHE_SIZE": "cache.max_size",
    "DEFERRED_PAGE_SIZE": "deferred.page_size",
    "RETENTION_DAYS": "deferred.retention_days",
    "LOG_LEVEL": "logging.level",
    "LOG_FORMAT": "logging.format",
}

for _project in ("source", "target"):
    for _field in ("project_key", "client_id", "client_secret", "api_url", "auth_url", "scopes"):
        ENV_KEYS[f"{_project.upper()}_{_field.upper()}"] = f"{_project}.{_field}"


class EnvironmentConfigProvider(ConfigProviderPort):
    """
    Configuration provider backed by environment variables.

    A .env file in the current directory is read automatically (without
    modifying ``os.environ``). A config file, when given or found, supplies
    the lowest-priority values.
    """

    def __init__(
        self,
        env_file: Path | str | None = None,
        config_file: Path | str | None = None,
        overrides: Mapping[str, Any] | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        """
        Args:
            env_file: .env file to read (default: ./.env if present)
            config_file: YAML/TOML config file (default: auto-detect)
            overrides: Dotted keys taking precedence over everything else
            environ: Environment mapping (default: os.environ)
        """
        self._env_file = Path(env_file) if env_file is not None else None
        self._config_file = Path(config_file) if config_file is not None else None
        self._overrides = dict(overrides or {})
        self._environ = environ
        self._data: dict[str, Any] | None = None
        self._config: AppConfig | None = None
        self.logger = logging.getLogger("EnvironmentConfigProvider")

    @property
    def name(self) -> str:
        path = self.config_file_path
        if path is not None:
            return f"Environment + {path.name}"
        return "Environment"

    @property
    def config_file_path(self) -> Path | None:
        if self._config_file is not None:
            return self._config_file
        return find_config_file()

    def _env_file_values(self) -> dict[str, str]:
        path = self._env_file if self._env_file is not None else Path.cwd() / ".env"
        if not path.is_file():
            return {}
        self.logger.debug(f"Reading {path}")
        return {key: value for key, value in dotenv_values(path).items() if value is not None}

    @staticmethod
    def _from_env(values: Mapping[str, str]) -> dict[str, Any]:
        data: dict[str, Any] = {}
        for suffix, dotted_key in ENV_KEYS.items():
            value = values.get(f"{ENV_PREFIX}{suffix}")
            if value:
                set_dotted(data, dotted_key, value)
        return data

    def raw_data(self) -> dict[str, Any]:
        if self._data is None:
            path = self.config_file_path
            data: dict[str, Any] = read_config_file(path) if path is not None else {}
            data = deep_merge(data, self._from_env(self._env_file_values()))
            environ = self._environ if self._environ is not None else os.environ
            data = deep_merge(data, self._from_env(environ))
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

        errors = config.validate()
        if errors:
            errors.append(
                "Set the missing values as CATALOGSYNC_* environment variables, "
                "in a .env file or in a config file (.catalogsync.yaml)"
            )
        return errors
