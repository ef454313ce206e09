"""Two-tier cache store with shared-to-scoped promotion.

Lookup order, governed by the call's storage mode:
    1. Scoped tier of the execution context (no expiry check)
    2. Shared tier, trusted only while now < stored_at + ttl; a hit is
       copied into the scoped tier when the mode includes it
    3. Miss

Writes go to every tier the mode names, independently. The cache is an
optional optimization, so shared-tier failures never reach the caller:
they are logged, counted, and reported as StoreDegraded.
"""

import logging
import time
from collections.abc import Callable

from querycache.cache.codec import decode_entry, encode_entry
from querycache.cache.models import (
    CacheHit,
    CacheMiss,
    LookupResult,
    StoreAck,
    StoreDegraded,
    StoreResult,
)
from querycache.cache.scoped import ExecutionContext
from querycache.cache.shared import SharedStore
from querycache.cache.stats import StatisticsRecorder
from querycache.core.exceptions import CacheDegradedError
from querycache.core.models import CacheEntry, CacheOptions, RowSet, Tier

logger = logging.getLogger(__name__)


class TieredCacheStore:
    """Scoped + shared cache tiers behind one lookup/store protocol.

    Args:
        shared_store: Shared backend (None = shared tier unavailable)
        recorder: Statistics sink for degraded shared-tier calls
        clock: Time source for expiry checks
    """

    def __init__(
        self,
        shared_store: SharedStore | None = None,
        recorder: StatisticsRecorder | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self.shared_store = shared_store
        self.recorder = recorder or StatisticsRecorder()
        self.clock = clock

    async def lookup(
        self, key: str, options: CacheOptions, context: ExecutionContext
    ) -> LookupResult:
        """Find a usable entry for ``key``.

        Returns:
            CacheHit tagged with the serving tier, or CacheMiss
        """
        if options.bypass:
            return CacheMiss(reason="bypass")

        mode = options.storage_mode

        if mode.includes_scoped:
            entry = context.scoped.get(key)
            if entry is not None:
                return CacheHit(entry=entry, tier=Tier.SCOPED)

        if not mode.includes_shared or self.shared_store is None:
            return CacheMiss()

        entry = await self._read_shared(self.shared_store, key)
        if entry is None:
            return CacheMiss()

        if entry.is_expired(self.clock()):
            logger.debug(f"Shared entry expired for {key[:24]}")
            return CacheMiss(reason="expired")

        if mode.includes_scoped:
            promoted = entry.model_copy(update={"source_tier": Tier.SCOPED})
            if context.scoped.put(promoted):
                logger.debug(f"Promoted shared entry {key[:24]} to scoped tier")

        return CacheHit(entry=entry, tier=Tier.SHARED)

    async def store(
        self,
        key: str,
        rows: RowSet,
        options: CacheOptions,
        context: ExecutionContext,
    ) -> StoreResult:
        """Write ``rows`` to every tier named by the storage mode.

        Returns:
            StoreAck listing the tiers written, or StoreDegraded when the
            shared tier could not take the entry
        """
        if options.bypass:
            return StoreAck()

        mode = options.storage_mode
        written: list[Tier] = []
        entry = CacheEntry(
            key=key,
            rows=rows,
            stored_at=self.clock(),
            ttl_seconds=options.ttl_seconds,
            source_tier=Tier.SCOPED,
            max_results=options.max_results,
        )

        if mode.includes_scoped:
            if context.scoped.put(entry):
                written.append(Tier.SCOPED)
            elif not context.closed:
                logger.debug(
                    f"Scoped tier full in context {context.context_id}, "
                    f"{key[:24]} not cached"
                )

        # ttl 0 means the entry is never persisted beyond the context
        if not mode.includes_shared or options.ttl_seconds == 0:
            return StoreAck(tiers=written)

        if self.shared_store is None:
            return StoreDegraded(tiers=written, reason="shared tier not configured")

        shared_entry = entry.model_copy(update={"source_tier": Tier.SHARED})
        try:
            blob = encode_entry(shared_entry)
            await self.shared_store.put(key, blob, options.ttl_seconds)
        except CacheDegradedError as e:
            self._degraded("write", e)
            return StoreDegraded(tiers=written, reason=e.message)
        except Exception as e:
            logger.error(f"Shared tier write failed (unexpected): {e}")
            self.recorder.record_degraded("write")
            return StoreDegraded(tiers=written, reason=str(e))

        written.append(Tier.SHARED)
        return StoreAck(tiers=written)

    async def invalidate(
        self, key: str, context: ExecutionContext | None = None
    ) -> None:
        """Drop ``key`` from the scoped tier and, best-effort, the shared tier."""
        if context is not None:
            context.scoped.remove(key)

        if self.shared_store is None:
            return

        try:
            await self.shared_store.remove(key)
        except CacheDegradedError as e:
            self._degraded("remove", e)
        except Exception as e:
            logger.error(f"Shared tier remove failed (unexpected): {e}")
            self.recorder.record_degraded("remove")

    def invalidate_all(self, context: ExecutionContext) -> None:
        """Empty the context's scoped tier.

        The shared tier has no global invalidation; its entries age out
        through their TTL.
        """
        context.scoped.clear()

    async def close(self) -> None:
        if self.shared_store is not None:
            await self.shared_store.close()

    async def _read_shared(
        self, shared_store: SharedStore, key: str
    ) -> CacheEntry | None:
        try:
            record = await shared_store.get(key)
            if record is None:
                return None
            entry = decode_entry(record.blob)
        except CacheDegradedError as e:
            self._degraded("read", e)
            return None
        except Exception as e:
            logger.error(f"Shared tier read failed (unexpected): {e}")
            self.recorder.record_degraded("read")
            return None

        # the store's write time is authoritative for expiry
        return entry.model_copy(update={"stored_at": record.stored_at})

    def _degraded(self, operation: str, error: CacheDegradedError) -> None:
        logger.warning(f"Shared tier {operation} degraded: {error.message}")
        self.recorder.record_degraded(operation)
