"""Hit/miss statistics for orchestrated queries."""

import threading

from querycache.cache.models import CacheStatistics
from querycache.core.models import Tier
from querycache.observability.metrics import (
    record_cache_degraded,
    record_cache_hit,
    record_cache_miss,
)


class StatisticsRecorder:
    """Thread-safe counters shared by every execution context.

    Each recording is mirrored to OpenTelemetry counters when telemetry
    is enabled.

    Example:
        >>> recorder = StatisticsRecorder()
        >>> recorder.record_hit(Tier.SCOPED)
        >>> recorder.record_miss()
        >>> recorder.snapshot().hit_rate_percent
        50.0
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._hits_by_tier: dict[Tier, int] = {tier: 0 for tier in Tier}
        self._misses = 0
        self._degraded = 0

    def record(self, tier: Tier | None) -> None:
        """Record one outcome: a hit served by ``tier``, or a miss if None."""
        if tier is None:
            self.record_miss()
        else:
            self.record_hit(tier)

    def record_hit(self, tier: Tier) -> None:
        with self._lock:
            self._hits_by_tier[tier] += 1
        record_cache_hit(tier.value)

    def record_miss(self) -> None:
        with self._lock:
            self._misses += 1
        record_cache_miss()

    def record_degraded(self, reason: str) -> None:
        with self._lock:
            self._degraded += 1
        record_cache_degraded(reason)

    def snapshot(self) -> CacheStatistics:
        with self._lock:
            hits_by_tier = dict(self._hits_by_tier)
            misses = self._misses
            degraded = self._degraded

        hits = sum(hits_by_tier.values())
        total = hits + misses
        return CacheStatistics(
            total_queries=total,
            hits=hits,
            misses=misses,
            hits_by_tier=hits_by_tier,
            degraded=degraded,
            hit_rate_percent=(hits / total * 100) if total > 0 else 0.0,
        )

    def reset(self) -> None:
        with self._lock:
            self._hits_by_tier = {tier: 0 for tier in Tier}
            self._misses = 0
            self._degraded = 0
