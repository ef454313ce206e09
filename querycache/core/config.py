"""Configuration management for the query cache.

Cache settings come from the environment (and ``.env``), validated by
pydantic-settings. An optional ``querycache.yaml`` file in the working
directory overrides them through its ``cache`` section.
"""

from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from querycache.core.models import StorageMode

CONFIG_FILENAME = "querycache.yaml"


class Settings(BaseSettings):
    """Process-wide cache, backend and telemetry settings."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False, extra="ignore"
    )

    # Scoped tier
    scoped_tier_capacity: int = Field(
        default=100, description="Max entries per execution context", ge=1, le=100000
    )

    # Default cache options
    default_storage_mode: StorageMode = Field(
        default=StorageMode.BOTH, description="Tiers used when a call sets none"
    )
    default_ttl_seconds: int = Field(
        default=300, description="Shared-tier TTL seconds (0 = scoped only)", ge=0
    )
    default_max_results: int | None = Field(
        default=None, description="Default record cap (None = unlimited)", gt=0
    )

    # Shared tier
    shared_backend: Literal["memory", "redis", "none"] = Field(
        default="memory", description="Shared tier implementation"
    )
    memory_store_max_entries: int = Field(
        default=10000, description="In-process shared store capacity", ge=1
    )
    redis_url: str = Field(default="redis://localhost:6379", description="Redis URL")
    redis_timeout: int = Field(
        default=5, description="Redis operation timeout seconds", ge=1, le=30
    )
    redis_key_prefix: str = Field(
        default="querycache", description="Namespace prefix for Redis keys"
    )
    redis_circuit_breaker_threshold: int = Field(
        default=5, description="Failures before opening circuit", ge=1, le=20
    )
    redis_circuit_breaker_timeout: int = Field(
        default=300,
        description="Circuit breaker timeout seconds (5 min)",
        ge=1,
        le=3600,
    )

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(
        default="", description="json or console (empty = pick by environment)"
    )
    environment: str = Field(
        default="development", description="Environment (development, production)"
    )

    # OpenTelemetry Configuration
    otel_enabled: bool = Field(
        default=False, description="Enable OpenTelemetry instrumentation"
    )
    otel_service_name: str = Field(
        default="querycache", description="Service name for telemetry"
    )
    otel_exporter_otlp_endpoint: str = Field(
        default="http://localhost:4317", description="OTLP gRPC endpoint"
    )
    otel_exporter_otlp_headers: str = Field(
        default="", description="OTLP headers (e.g., 'api-key=xxx')"
    )
    otel_traces_enabled: bool = Field(
        default=True, description="Enable trace collection"
    )
    otel_metrics_enabled: bool = Field(
        default=True, description="Enable metrics collection"
    )

    @field_validator("default_max_results", mode="before")
    @classmethod
    def empty_max_results_is_none(cls, value: Any) -> Any:
        """Treat DEFAULT_MAX_RESULTS= (empty) as unlimited."""
        if value == "":
            return None
        return value

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"


settings = Settings()


def parse_env_value(value: str) -> Any:
    """Coerce a raw string (env var or CLI value) to bool, int, float or str.

    Example:
        >>> parse_env_value("1.5")
        1.5
        >>> parse_env_value("true")
        True
        >>> parse_env_value("both")
        'both'
    """
    if value.lower() in ("true", "yes"):
        return True
    if value.lower() in ("false", "no"):
        return False

    try:
        return int(value)
    except ValueError:
        pass

    try:
        return float(value)
    except ValueError:
        pass

    return value


def load_cache_config(path: Path | None = None) -> dict[str, Any]:
    """Load cache configuration.

    3-tier fallback chain:
        1. YAML config (querycache.yaml ``cache`` section)
        2. Environment variables (via Settings class)
        3. Hardcoded defaults (Settings field defaults)

    Args:
        path: Explicit YAML path (default: querycache.yaml in the cwd)

    Returns:
        Dict with cache configuration

    Example:
        >>> config = load_cache_config()
        >>> config["scoped_capacity"]
        100
        >>> config["redis"]["circuit_breaker"]["threshold"]
        5
    """
    current = Settings()
    defaults: dict[str, Any] = {
        "scoped_capacity": current.scoped_tier_capacity,
        "storage_mode": current.default_storage_mode.value,
        "ttl_seconds": current.default_ttl_seconds,
        "max_results": current.default_max_results,
        "shared_backend": current.shared_backend,
        "memory_max_entries": current.memory_store_max_entries,
        "redis": {
            "url": current.redis_url,
            "timeout": current.redis_timeout,
            "key_prefix": current.redis_key_prefix,
            "circuit_breaker": {
                "threshold": current.redis_circuit_breaker_threshold,
                "timeout": current.redis_circuit_breaker_timeout,
            },
        },
    }

    config_path = path or Path(CONFIG_FILENAME)
    if not config_path.exists():
        return defaults

    try:
        with open(config_path) as f:
            config = yaml.safe_load(f)
    except (OSError, yaml.YAMLError):
        return defaults

    if not isinstance(config, dict):
        return defaults
    cache_config = config.get("cache", {})
    if not isinstance(cache_config, dict) or not cache_config:
        return defaults

    return _deep_merge(defaults, cache_config)


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    result = base.copy()
    for key, value in override.items():
        existing = result.get(key)
        if isinstance(value, dict) and isinstance(existing, dict):
            result[key] = _deep_merge(existing, value)
        else:
            result[key] = value
    return result
