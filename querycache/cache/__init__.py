"""Tiered caching layer for canonical query results.

This package provides the execution-scoped tier, the shared tier backends
and the TieredCacheStore that combines them. The cache is designed with
fail-safe patterns: the shared tier may disappear at any moment and the
system keeps answering queries, only slower.

Key Features:
    - Scoped tier bound to an ExecutionContext, reject-when-full capacity
    - Shared tier with reader-enforced TTL (in-memory or Redis)
    - Promotion of shared hits into the scoped tier
    - Version-tagged MessagePack payloads
    - Circuit breaker around Redis
    - Thread-safe hit/miss statistics

    >>> from querycache.cache import ExecutionContext, TieredCacheStore
    >>> from querycache.cache import InMemorySharedStore
    >>> from querycache.cache import ExecutionContext, InMemorySharedStore, TieredCacheStore
    >>> store = TieredCacheStore(shared_store=InMemorySharedStore())
    >>> with ExecutionContext() as context:
    ...     result = await store.lookup(key, options, context)
"""

from querycache.cache.codec import PAYLOAD_VERSION, decode_entry, encode_entry
from querycache.cache.models import (
    CacheHit,
    CacheMiss,
    CacheStatistics,
    LookupResult,
    SharedRecord,
    StoreAck,
    StoreDegraded,
    StoreResult,
)
from querycache.cache.scoped import (
    DEFAULT_SCOPED_CAPACITY,
    ExecutionContext,
    ScopedTier,
)
from querycache.cache.shared import (
    CacheCircuitBreaker,
    InMemorySharedStore,
    RedisSharedStore,
    SharedStore,
)
from querycache.cache.stats import StatisticsRecorder
from querycache.cache.store import TieredCacheStore

__all__ = [
    "TieredCacheStore",
    "ExecutionContext",
    "ScopedTier",
    "DEFAULT_SCOPED_CAPACITY",
    "SharedStore",
    "InMemorySharedStore",
    "RedisSharedStore",
    "CacheCircuitBreaker",
    "StatisticsRecorder",
    "CacheStatistics",
    "CacheHit",
    "CacheMiss",
    "LookupResult",
    "StoreAck",
    "StoreDegraded",
    "StoreResult",
    "SharedRecord",
    "encode_entry",
    "decode_entry",
    "PAYLOAD_VERSION",
]
