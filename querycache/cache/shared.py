"""Shared cache tier backends.

The shared tier outlives execution contexts and is used concurrently by
many of them, possibly from other processes. It is treated as an opaque,
possibly lossy key/value service: reads may return stale snapshots,
writes overwrite unconditionally, and the backend may drop entries
under pressure regardless of TTL. Expiry is enforced by the reader
(TieredCacheStore), never trusted to the backend.

Backends:
    InMemorySharedStore: lock-protected map for a single process
    RedisSharedStore: redis.asyncio client behind a circuit breaker
"""

import logging
import threading
import time
from abc import ABC, abstractmethod
from collections import OrderedDict
from collections.abc import Callable

import msgpack
from redis.asyncio import Redis
from redis.exceptions import RedisError

from querycache.cache.models import SharedRecord
from querycache.core.exceptions import SharedStoreError

logger = logging.getLogger(__name__)


class SharedStore(ABC):
    """Abstract shared key/value store.

    Implementations raise SharedStoreError when the backend cannot serve a
    call; ``get`` returns None only when the key is absent.
    """

    @abstractmethod
    async def get(self, key: str) -> SharedRecord | None:
        """Fetch the payload and write timestamp stored under ``key``."""
        pass

    @abstractmethod
    async def put(self, key: str, blob: bytes, ttl_seconds: int) -> None:
        """Store ``blob`` unconditionally (last writer wins)."""
        pass

    @abstractmethod
    async def remove(self, key: str) -> None:
        """Best-effort removal of ``key``."""
        pass

    async def close(self) -> None:
        """Release backend resources."""
        return None


class InMemorySharedStore(SharedStore):
    """Process-local shared tier guarded by a mutex.

    Entries are evicted oldest-written first once ``max_entries`` is
    exceeded. Expired entries stay physically present until evicted or
    purged; readers decide whether they are still trusted.

    Example:
        >>> store = InMemorySharedStore(max_entries=1000)
        >>> await store.put("q:ab12", b"...", ttl_seconds=60)
        >>> record = await store.get("q:ab12")
    """

    def __init__(
        self,
        max_entries: int | None = 10000,
        clock: Callable[[], float] = time.time,
    ):
        if max_entries is not None and max_entries < 1:
            raise ValueError(f"max_entries must be >= 1, got {max_entries}")
        self.max_entries = max_entries
        self.clock = clock
        self.evictions = 0
        self._entries: OrderedDict[str, tuple[bytes, float, int]] = OrderedDict()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    async def get(self, key: str) -> SharedRecord | None:
        with self._lock:
            item = self._entries.get(key)
        if item is None:
            return None
        blob, stored_at, _ = item
        return SharedRecord(blob=blob, stored_at=stored_at)

    async def put(self, key: str, blob: bytes, ttl_seconds: int) -> None:
        stored_at = self.clock()
        with self._lock:
            self._entries.pop(key, None)
            self._entries[key] = (blob, stored_at, ttl_seconds)
            if self.max_entries is not None:
                while len(self._entries) > self.max_entries:
                    self._entries.popitem(last=False)
                    self.evictions += 1

    async def remove(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def purge_expired(self) -> int:
        """Physically drop entries whose TTL has elapsed.

        Returns:
            Number of entries removed
        """
        now = self.clock()
        with self._lock:
            expired = [
                key
                for key, (_, stored_at, ttl) in self._entries.items()
                if now >= stored_at + ttl
            ]
            for key in expired:
                del self._entries[key]
        return len(expired)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


class CacheCircuitBreaker:
    """Circuit breaker for shared-store failures with automatic recovery.

    States:
        closed: Normal operation, store calls allowed
        open: Circuit tripped, shared tier skipped entirely
        half_open: Testing recovery, one trial call in flight at a time

    Pattern:
        closed -> (failures >= threshold) -> open
        open -> (timeout expired) -> half_open
        half_open -> (success) -> closed
        half_open -> (failure) -> open
    """

    def __init__(self, failure_threshold: int = 5, timeout: int = 300):
        self.failure_threshold = failure_threshold
        self.timeout = timeout
        self.failure_count = 0
        self.state = "closed"  # closed, open, half_open
        self.last_failure_time: float | None = None
        self.trial_started_at: float | None = None
        self._lock = threading.Lock()

    def on_success(self) -> None:
        with self._lock:
            if self.state == "half_open":
                logger.info("Circuit breaker recovered, closing circuit")
                self.state = "closed"
            self.failure_count = 0
            self.trial_started_at = None

    def on_failure(self) -> None:
        with self._lock:
            self.failure_count += 1
            self.last_failure_time = time.time()
            self.trial_started_at = None

            tripped = self.failure_count >= self.failure_threshold
            if self.state == "half_open" or tripped:
                if self.state != "open":
                    logger.warning(
                        f"Circuit breaker opened after {self.failure_count} failures"
                    )
                self.state = "open"

    def can_attempt(self) -> bool:
        with self._lock:
            if self.state == "closed":
                return True

            if self.state == "open":
                if (
                    self.last_failure_time
                    and time.time() - self.last_failure_time > self.timeout
                ):
                    logger.info(
                        "Circuit breaker timeout expired, entering half-open state"
                    )
                    self.state = "half_open"
                    self.trial_started_at = time.time()
                    return True
                return False

            # half_open: a trial call that never reported back frees the slot
            # after another timeout
            now = time.time()
            if (
                self.trial_started_at is not None
                and now - self.trial_started_at <= self.timeout
            ):
                return False
            self.trial_started_at = now
            return True

    def reset(self) -> None:
        with self._lock:
            self.state = "closed"
            self.failure_count = 0
            self.last_failure_time = None
            self.trial_started_at = None


class RedisSharedStore(SharedStore):
    """Redis-backed shared tier.

    Values are MessagePack envelopes ``{"stored_at": float, "payload": bytes}``
    written with ``SET key value EX ttl``. Keys are namespaced as
    ``{key_prefix}:{key}``.

    Every call goes through a circuit breaker: while the circuit is open
    calls fail fast with SharedStoreError and Redis is not contacted.
    """

    def __init__(
        self,
        redis_url: str = "redis://localhost:6379",
        key_prefix: str = "querycache",
        timeout: int = 5,
        circuit_breaker_threshold: int = 5,
        circuit_breaker_timeout: int = 300,
        redis: "Redis[bytes] | None" = None,
        clock: Callable[[], float] = time.time,
    ):
        self.key_prefix = key_prefix
        self.clock = clock
        self.circuit_breaker = CacheCircuitBreaker(
            failure_threshold=circuit_breaker_threshold,
            timeout=circuit_breaker_timeout,
        )
        if redis is not None:
            self.redis = redis
        else:
            self.redis = Redis.from_url(
                redis_url,
                socket_timeout=timeout,
                socket_connect_timeout=timeout,
                retry_on_timeout=True,
                max_connections=10,
                decode_responses=False,  # We handle bytes for msgpack
            )
            logger.info(f"Shared tier initialized with Redis at {redis_url}")

    def _key(self, key: str) -> str:
        return f"{self.key_prefix}:{key}" if self.key_prefix else key

    def _guard(self, operation: str) -> None:
        if not self.circuit_breaker.can_attempt():
            raise SharedStoreError(
                f"Shared store circuit open, skipping {operation}",
                details={
                    "operation": operation,
                    "circuit_state": self.circuit_breaker.state,
                },
            )

    def _failed(self, operation: str, error: Exception) -> SharedStoreError:
        self.circuit_breaker.on_failure()
        logger.warning(f"Shared store {operation} failed: {error}")
        return SharedStoreError(
            f"Shared store {operation} failed: {error}",
            details={"operation": operation},
        )

    async def get(self, key: str) -> SharedRecord | None:
        self._guard("get")
        try:
            data = await self.redis.get(self._key(key))
        except RedisError as e:
            raise self._failed("get", e) from e
        self.circuit_breaker.on_success()

        if data is None:
            return None

        try:
            envelope = msgpack.unpackb(data, raw=False)
            return SharedRecord(
                blob=envelope["payload"], stored_at=envelope["stored_at"]
            )
        except Exception as e:
            # Foreign or corrupted value under our namespace
            raise SharedStoreError(f"Unreadable shared envelope: {e}") from e

    async def put(self, key: str, blob: bytes, ttl_seconds: int) -> None:
        self._guard("put")
        envelope = msgpack.packb(
            {"stored_at": self.clock(), "payload": blob}, use_bin_type=True
        )
        try:
            await self.redis.set(self._key(key), envelope, ex=max(ttl_seconds, 1))
        except RedisError as e:
            raise self._failed("put", e) from e
        self.circuit_breaker.on_success()

    async def remove(self, key: str) -> None:
        self._guard("remove")
        try:
            await self.redis.delete(self._key(key))
        except RedisError as e:
            raise self._failed("remove", e) from e
        self.circuit_breaker.on_success()

    async def clear(self) -> int:
        """Delete every key in this store's namespace (admin operation).

        Note:
            This is expensive and should only be used for maintenance
            or testing. Normal operation relies on TTL-based expiry.

        Returns:
            Number of keys deleted
        """
        deleted = 0
        cursor = 0
        pattern = f"{self.key_prefix}:*" if self.key_prefix else "*"
        try:
            while True:
                cursor, keys = await self.redis.scan(
                    cursor=cursor, match=pattern, count=100
                )
                if keys:
                    deleted += await self.redis.delete(*keys)
                if cursor == 0:
                    break
        except RedisError as e:
            raise self._failed("clear", e) from e
        logger.info(f"Shared store cleared {deleted} keys")
        return deleted

    async def close(self) -> None:
        """Close Redis connection gracefully."""
        await self.redis.aclose()
        logger.info("Shared store closed")
