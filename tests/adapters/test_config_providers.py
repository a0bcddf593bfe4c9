"""
Tests for configuration providers.

Tests cover:
- YAML/TOML/pyproject config files
- Environment variables and .env files
- Precedence of overrides, environment, .env and files
- Error handling for invalid files and values
"""

from pathlib import Path
from textwrap import dedent

import pytest

from catalogsync.adapters.config import (
    EnvironmentConfigProvider,
    FileConfigProvider,
    config_from_dict,
    find_config_file,
)
from catalogsync.adapters.config.file_config import deep_merge, get_dotted, read_config_file
from catalogsync.core.exceptions import ConfigFileError, ConfigValidationError


@pytest.fixture
def isolated_dir(tmp_path, monkeypatch):
    """Run in an empty directory with an empty home directory."""
    home = tmp_path / "home"
    home.mkdir()
    work = tmp_path / "work"
    work.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.chdir(work)
    return work


YAML_CONFIG = dedent(
    """
    target:
      project_key: shop-staging
      client_id: abc
      client_secret: s3cr3t
      scopes: manage_project:shop-staging view_products:shop-staging
    batch:
      batch_size: 50
      max_parallel_requests: 10
    retry:
      max_retries: 3
      initial_delay: 0.5
    logging:
      level: debug
      format: JSON
    """
)


class TestFindConfigFile:
    def test_none_found(self, isolated_dir):
        assert find_config_file() is None

    def test_yaml_preferred_over_toml(self, isolated_dir):
        (isolated_dir / ".catalogsync.toml").write_text("[batch]\nbatch_size = 5\n")
        (isolated_dir / ".catalogsync.yaml").write_text("batch:\n  batch_size: 5\n")

        assert find_config_file() == isolated_dir / ".catalogsync.yaml"

    def test_pyproject_needs_tool_section(self, isolated_dir):
        (isolated_dir / "pyproject.toml").write_text('[project]\nname = "x"\n')
        assert find_config_file() is None

        (isolated_dir / "pyproject.toml").write_text("[tool.catalogsync.batch]\nbatch_size = 5\n")
        assert find_config_file() == isolated_dir / "pyproject.toml"

    def test_explicit_search_dirs(self, tmp_path):
        (tmp_path / ".catalogsync.yml").write_text("{}\n")

        assert find_config_file([tmp_path]) == tmp_path / ".catalogsync.yml"


class TestReadConfigFile:
    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigFileError, match="not found"):
            read_config_file(tmp_path / "missing.yaml")

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("target: [unclosed\n")

        with pytest.raises(ConfigFileError, match="Invalid YAML"):
            read_config_file(path)

    def test_invalid_toml(self, tmp_path):
        path = tmp_path / "bad.toml"
        path.write_text("[batch\n")

        with pytest.raises(ConfigFileError, match="Invalid TOML"):
            read_config_file(path)

    def test_non_mapping(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")

        with pytest.raises(ConfigFileError, match="mapping"):
            read_config_file(path)

    def test_unsupported_suffix(self, tmp_path):
        path = tmp_path / "config.ini"
        path.write_text("[x]\n")

        with pytest.raises(ConfigFileError, match="Unsupported"):
            read_config_file(path)

    def test_empty_yaml_is_empty_mapping(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")

        assert read_config_file(path) == {}


class TestConfigFromDict:
    def test_defaults(self):
        config = config_from_dict({})

        assert config.batch.batch_size == 30
        assert config.retry.max_retries == 5
        assert config.log_level == "INFO"
        assert config.log_format == "text"

    def test_string_values_are_coerced(self):
        config = config_from_dict(
            {"batch": {"batch_size": "12"}, "retry": {"timeout": "1.5"}, "cache": {"max_size": "7"}}
        )

        assert config.batch.batch_size == 12
        assert config.retry.timeout == 1.5
        assert config.cache.max_size == 7

    def test_invalid_values_are_collected(self):
        with pytest.raises(ConfigValidationError) as exc_info:
            config_from_dict({"batch": {"batch_size": "many"}, "retry": {"initial_delay": "soon"}})

        assert len(exc_info.value.errors) == 2
        assert "batch.batch_size must be an integer, got 'many'" in exc_info.value.errors

    def test_retryable_status_codes(self):
        config = config_from_dict({"retry": {"retryable_status_codes": [503, "504"]}})
        assert config.retry.retryable_status_codes == frozenset({503, 504})

    def test_deferred_section(self):
        config = config_from_dict({"deferred": {"retention_days": 7, "container_prefix": "acme"}})

        assert config.deferred.retention_days == 7
        assert config.deferred.container_for("category") == "acme.categoryDrafts"


class TestHelpers:
    def test_deep_merge(self):
        merged = deep_merge({"a": {"b": 1, "c": 2}, "d": 1}, {"a": {"b": 3}})
        assert merged == {"a": {"b": 3, "c": 2}, "d": 1}

    def test_get_dotted(self):
        data = {"a": {"b": {"c": 1}}}

        assert get_dotted(data, "a.b.c") == 1
        assert get_dotted(data, "a.x", "default") == "default"
        assert get_dotted(data, "a.b.c.d") is None


class TestFileConfigProvider:
    def test_load_yaml(self, tmp_path):
        path = tmp_path / ".catalogsync.yaml"
        path.write_text(YAML_CONFIG)

        provider = FileConfigProvider(config_path=path)
        config = provider.load()

        assert config.target.project_key == "shop-staging"
        assert config.target.scopes == ["manage_project:shop-staging", "view_products:shop-staging"]
        assert config.batch.batch_size == 50
        assert config.retry.initial_delay == 0.5
        assert config.log_level == "DEBUG"
        assert config.log_format == "json"
        assert provider.validate() == []

    def test_load_toml(self, tmp_path):
        path = tmp_path / ".catalogsync.toml"
        path.write_text(
            dedent(
                """
                [target]
                project_key = "shop"
                client_id = "id"
                client_secret = "secret"

                [batch]
                max_parallel_requests = 4
                """
            )
        )

        config = FileConfigProvider(config_path=path).load()

        assert config.target.project_key == "shop"
        assert config.batch.max_parallel_requests == 4

    def test_load_pyproject_section(self, tmp_path):
        path = tmp_path / "pyproject.toml"
        path.write_text('[project]\nname = "x"\n\n[tool.catalogsync.retry]\nmax_retries = 1\n')

        assert FileConfigProvider(config_path=path).load().retry.max_retries == 1

    def test_overrides_win(self, tmp_path):
        path = tmp_path / ".catalogsync.yaml"
        path.write_text(YAML_CONFIG)

        provider = FileConfigProvider(config_path=path, overrides={"batch.batch_size": 5})

        assert provider.load().batch.batch_size == 5
        assert provider.get("batch.batch_size") == 5
        assert provider.get("target.client_id") == "abc"

    def test_name(self, tmp_path, isolated_dir):
        assert FileConfigProvider().name == "File (none)"
        assert "config.yaml" in FileConfigProvider(config_path=tmp_path / "config.yaml").name

    def test_validate_reports_file_errors(self, tmp_path):
        errors = FileConfigProvider(config_path=tmp_path / "missing.yaml").validate()

        assert len(errors) == 1
        assert "not found" in errors[0]

    def test_validate_reports_value_errors(self, tmp_path):
        path = tmp_path / "c.yaml"
        path.write_text("batch:\n  batch_size: lots\n")

        assert FileConfigProvider(config_path=path).validate() == [
            "batch.batch_size must be an integer, got 'lots'"
        ]

    def test_validate_reports_missing_credentials(self, tmp_path):
        path = tmp_path / "c.yaml"
        path.write_text("batch:\n  batch_size: 3\n")

        errors = FileConfigProvider(config_path=path).validate()

        assert any("target project key" in error for error in errors)


class TestEnvironmentConfigProvider:
    def test_reads_environment(self, isolated_dir):
        provider = EnvironmentConfigProvider(
            environ={
                "CATALOGSYNC_TARGET_PROJECT_KEY": "shop",
                "CATALOGSYNC_TARGET_CLIENT_ID": "id",
                "CATALOGSYNC_TARGET_CLIENT_SECRET": "secret",
                "CATALOGSYNC_TARGET_SCOPES": "a b",
                "CATALOGSYNC_BATCH_SIZE": "10",
                "CATALOGSYNC_MAX_PARALLEL_REQUESTS": "3",
                "CATALOGSYNC_RETRY_TIMEOUT": "2.5",
                "CATALOGSYNC_RETENTION_DAYS": "9",
                "CATALOGSYNC_LOG_FORMAT": "json",
                "UNRELATED": "x",
            }
        )

        config = provider.load()

        assert config.target.project_key == "shop"
        assert config.target.scopes == ["a", "b"]
        assert config.batch.batch_size == 10
        assert config.batch.max_parallel_requests == 3
        assert config.retry.timeout == 2.5
        assert config.deferred.retention_days == 9
        assert config.log_format == "json"
        assert provider.validate() == []
        assert provider.name == "Environment"

    def test_reads_dotenv_file(self, isolated_dir):
        (isolated_dir / ".env").write_text(
            "CATALOGSYNC_TARGET_PROJECT_KEY=from-dotenv\nCATALOGSYNC_CACHE_SIZE=42\n"
        )

        config = EnvironmentConfigProvider(environ={}).load()

        assert config.target.project_key == "from-dotenv"
        assert config.cache.max_size == 42

    def test_explicit_env_file(self, isolated_dir, tmp_path):
        env_file = tmp_path / "custom.env"
        env_file.write_text("CATALOGSYNC_MAX_RETRIES=1\n")

        config = EnvironmentConfigProvider(env_file=env_file, environ={}).load()

        assert config.retry.max_retries == 1

    def test_precedence(self, isolated_dir):
        (isolated_dir / ".catalogsync.yaml").write_text(
            "batch:\n  batch_size: 1\n  max_parallel_requests: 1\ncache:\n  max_size: 1\nretry:\n  max_retries: 1\n"
        )
        (isolated_dir / ".env").write_text(
            "CATALOGSYNC_BATCH_SIZE=2\nCATALOGSYNC_MAX_PARALLEL_REQUESTS=2\nCATALOGSYNC_CACHE_SIZE=2\n"
        )
        provider = EnvironmentConfigProvider(
            environ={"CATALOGSYNC_BATCH_SIZE": "3", "CATALOGSYNC_MAX_PARALLEL_REQUESTS": "3"},
            overrides={"batch.batch_size": 4},
        )

        config = provider.load()

        assert config.retry.max_retries == 1
        assert config.cache.max_size == 2
        assert config.batch.max_parallel_requests == 3
        assert config.batch.batch_size == 4
        assert provider.name == "Environment + .catalogsync.yaml"

    def test_empty_values_are_ignored(self, isolated_dir):
        config = EnvironmentConfigProvider(environ={"CATALOGSYNC_BATCH_SIZE": ""}).load()
        assert config.batch.batch_size == 30

    def test_validate_adds_hint(self, isolated_dir):
        errors = EnvironmentConfigProvider(environ={}).validate()

        assert any("CATALOGSYNC_TARGET_CLIENT_ID" in error for error in errors)
        assert "CATALOGSYNC_* environment variables" in errors[-1]

    def test_validate_reports_bad_values(self, isolated_dir):
        errors = EnvironmentConfigProvider(environ={"CATALOGSYNC_MAX_RETRIES": "often"}).validate()
        assert errors == ["retry.max_retries must be an integer, got 'often'"]

    def test_explicit_config_file(self, isolated_dir, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text(YAML_CONFIG)

        provider = EnvironmentConfigProvider(config_file=path, environ={})

        assert provider.get("target.project_key") == "shop-staging"
        assert provider.config_file_path == Path(path)
