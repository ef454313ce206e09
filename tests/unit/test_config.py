"""Tests for Settings and the cache configuration loader.

Tests verify the 3-tier fallback chain:
1. YAML config file (querycache.yaml ``cache`` section)
2. Environment variables
3. Hardcoded defaults
"""

import pytest
import yaml
from pydantic import ValidationError

from querycache.core.config import Settings, load_cache_config, parse_env_value
from querycache.core.models import StorageMode

ENV_VARS = [
    "SCOPED_TIER_CAPACITY",
    "DEFAULT_STORAGE_MODE",
    "DEFAULT_TTL_SECONDS",
    "DEFAULT_MAX_RESULTS",
    "SHARED_BACKEND",
    "REDIS_URL",
    "REDIS_KEY_PREFIX",
]


@pytest.fixture(autouse=True)
def clean_env(tmp_path, monkeypatch):
    """Run every test in an empty directory with no cache env vars."""
    monkeypatch.chdir(tmp_path)
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


class TestParseEnvValue:
    def test_parse_bool(self):
        assert parse_env_value("true") is True
        assert parse_env_value("YES") is True
        assert parse_env_value("False") is False

    def test_parse_numbers(self):
        assert parse_env_value("42") == 42
        assert parse_env_value("-10") == -10
        assert parse_env_value("0.5") == 0.5

    def test_parse_string(self):
        assert parse_env_value("shared_only") == "shared_only"


class TestSettings:
    def test_defaults(self):
        current = Settings()

        assert current.scoped_tier_capacity == 100
        assert current.default_storage_mode == StorageMode.BOTH
        assert current.default_ttl_seconds == 300
        assert current.default_max_results is None
        assert current.shared_backend == "memory"
        assert current.otel_enabled is False
        assert not current.is_production

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("SCOPED_TIER_CAPACITY", "25")
        monkeypatch.setenv("DEFAULT_STORAGE_MODE", "shared_only")
        monkeypatch.setenv("SHARED_BACKEND", "redis")

        current = Settings()

        assert current.scoped_tier_capacity == 25
        assert current.default_storage_mode == StorageMode.SHARED_ONLY
        assert current.shared_backend == "redis"

    def test_empty_max_results_is_unlimited(self, monkeypatch):
        monkeypatch.setenv("DEFAULT_MAX_RESULTS", "")
        assert Settings().default_max_results is None

    def test_invalid_backend_rejected(self, monkeypatch):
        monkeypatch.setenv("SHARED_BACKEND", "memcached")
        with pytest.raises(ValidationError):
            Settings()

    def test_env_file(self, tmp_path):
        (tmp_path / ".env").write_text("DEFAULT_TTL_SECONDS=42\n")
        assert Settings().default_ttl_seconds == 42


class TestLoadCacheConfig:
    def test_hardcoded_defaults(self):
        config = load_cache_config()

        assert config["scoped_capacity"] == 100
        assert config["storage_mode"] == "both"
        assert config["ttl_seconds"] == 300
        assert config["shared_backend"] == "memory"
        assert config["redis"]["key_prefix"] == "querycache"
        assert config["redis"]["circuit_breaker"]["threshold"] == 5

    def test_env_fallback(self, monkeypatch):
        monkeypatch.setenv("DEFAULT_TTL_SECONDS", "60")
        assert load_cache_config()["ttl_seconds"] == 60

    def test_yaml_overrides_env(self, tmp_path, monkeypatch):
        monkeypatch.setenv("DEFAULT_TTL_SECONDS", "60")
        (tmp_path / "querycache.yaml").write_text(
            yaml.dump({"cache": {"ttl_seconds": 900, "storage_mode": "scoped_only"}})
        )

        config = load_cache_config()

        assert config["ttl_seconds"] == 900
        assert config["storage_mode"] == "scoped_only"
        assert config["scoped_capacity"] == 100

    def test_nested_yaml_merge(self, tmp_path):
        (tmp_path / "querycache.yaml").write_text(
            yaml.dump({"cache": {"redis": {"circuit_breaker": {"threshold": 2}}}})
        )

        config = load_cache_config()

        assert config["redis"]["circuit_breaker"]["threshold"] == 2
        assert config["redis"]["circuit_breaker"]["timeout"] == 300
        assert config["redis"]["url"] == "redis://localhost:6379"

    def test_explicit_path(self, tmp_path):
        path = tmp_path / "custom.yaml"
        path.write_text(yaml.dump({"cache": {"scoped_capacity": 7}}))

        assert load_cache_config(path)["scoped_capacity"] == 7

    def test_invalid_yaml_falls_back(self, tmp_path):
        (tmp_path / "querycache.yaml").write_text("cache: [unclosed")
        assert load_cache_config()["scoped_capacity"] == 100

    def test_yaml_without_cache_section(self, tmp_path):
        (tmp_path / "querycache.yaml").write_text(yaml.dump({"other": {"x": 1}}))
        assert load_cache_config()["ttl_seconds"] == 300
