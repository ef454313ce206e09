"""Integration tests for the Redis shared tier.

Note: These tests require a running Redis instance at redis://localhost:6379
      They are skipped when Redis is unavailable.
"""

import pytest
from redis.asyncio import Redis

from querycache.cache.scoped import ExecutionContext
from querycache.cache.shared import RedisSharedStore
from querycache.cache.store import TieredCacheStore
from querycache.core.models import CacheOptions, StorageMode, Tier
from querycache.engines.orchestrator import CacheOrchestrator

REDIS_URL = "redis://localhost:6379/15"  # DB 15 for testing

pytestmark = pytest.mark.redis


@pytest.fixture
async def redis_available():
    """Check if Redis is available for testing."""
    redis = Redis.from_url(REDIS_URL, socket_connect_timeout=1)
    try:
        await redis.ping()
    except Exception:
        pytest.skip("Redis not available at localhost:6379")
    finally:
        await redis.aclose()


@pytest.fixture
async def redis_store(redis_available):
    store = RedisSharedStore(
        redis_url=REDIS_URL,
        key_prefix="querycache-test",
        timeout=2,
        circuit_breaker_threshold=3,
        circuit_breaker_timeout=10,
    )
    await store.clear()

    yield store

    await store.clear()
    await store.close()


class TestRedisSharedTier:
    async def test_put_get_remove(self, redis_store):
        await redis_store.put("q:abc", b"payload", ttl_seconds=60)

        record = await redis_store.get("q:abc")
        assert record.blob == b"payload"

        await redis_store.remove("q:abc")
        assert await redis_store.get("q:abc") is None

    async def test_server_side_ttl_is_set(self, redis_store):
        await redis_store.put("q:ttl", b"x", ttl_seconds=120)

        ttl = await redis_store.redis.ttl("querycache-test:q:ttl")

        assert 0 < ttl <= 120

    async def test_shared_hit_across_contexts(self, redis_store, oracle):
        orchestrator = CacheOrchestrator(oracle, TieredCacheStore(shared_store=redis_store))
        options = CacheOptions(storage_mode=StorageMode.BOTH, ttl_seconds=60)

        await orchestrator.query("SELECT Id, Name FROM Account", ExecutionContext(), options)
        result = await orchestrator.query(
            "select Name, Id from Account", ExecutionContext(), options
        )

        assert result.outcome == "hit"
        assert result.tier == Tier.SHARED
        assert result.rows.records == oracle.records
        assert oracle.call_count == 1
