"""Factory for creating CacheOrchestrator instances."""

import logging
from typing import Any

from querycache.cache.shared import InMemorySharedStore, RedisSharedStore, SharedStore
from querycache.cache.store import TieredCacheStore
from querycache.core.config import load_cache_config
from querycache.core.exceptions import ConfigurationError
from querycache.core.models import CacheOptions, StorageMode
from querycache.engines.oracle import QueryOracle
from querycache.engines.orchestrator import CacheOrchestrator

logger = logging.getLogger(__name__)


def create_shared_store(config: dict[str, Any]) -> SharedStore | None:
    """Build the shared backend named by ``config["shared_backend"]``.

    Raises:
        ConfigurationError: Unknown backend, or redis without a URL
    """
    backend = config.get("shared_backend", "memory")

    if backend == "none":
        return None

    if backend == "memory":
        return InMemorySharedStore(max_entries=config["memory_max_entries"])

    if backend == "redis":
        redis_config = config["redis"]
        if not redis_config.get("url"):
            raise ConfigurationError("shared_backend is redis but no redis url is set")
        breaker = redis_config.get("circuit_breaker", {})
        return RedisSharedStore(
            redis_url=redis_config["url"],
            key_prefix=redis_config["key_prefix"],
            timeout=redis_config["timeout"],
            circuit_breaker_threshold=breaker.get("threshold", 5),
            circuit_breaker_timeout=breaker.get("timeout", 300),
        )

    raise ConfigurationError(
        f"Unknown shared backend: {backend}", details={"backend": backend}
    )


def create_query_cache(
    oracle: QueryOracle,
    config: dict[str, Any] | None = None,
) -> CacheOrchestrator:
    """Create a CacheOrchestrator with all dependencies.

    Args:
        oracle: Query executor used on cache misses
        config: Cache configuration (default: load_cache_config())

    Returns:
        Configured CacheOrchestrator
    """
    if config is None:
        config = load_cache_config()

    try:
        default_options = CacheOptions(
            storage_mode=StorageMode(config["storage_mode"]),
            ttl_seconds=config["ttl_seconds"],
            max_results=config["max_results"],
        )
    except ValueError as e:
        raise ConfigurationError(f"Invalid default cache options: {e}") from e

    shared_store = create_shared_store(config)
    logger.info(
        f"Query cache ready (shared backend: {config.get('shared_backend')}, "
        f"default mode: {default_options.storage_mode.value})"
    )

    return CacheOrchestrator(
        oracle=oracle,
        store=TieredCacheStore(shared_store=shared_store),
        default_options=default_options,
        scoped_capacity=config["scoped_capacity"],
    )
