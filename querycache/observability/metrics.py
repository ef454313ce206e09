"""OpenTelemetry metrics for the query cache.

Metrics:
    - querycache.cache.hits: Counter of cache hits, tagged by tier
    - querycache.cache.misses: Counter of cache misses
    - querycache.cache.degraded: Counter of shared-tier failures
    - querycache.normalize.duration: Histogram of normalization time
"""

from typing import Any

from opentelemetry import metrics

from querycache.core.config import settings

_meter: metrics.Meter | None = None

_cache_hits_counter: metrics.Counter | None = None
_cache_misses_counter: metrics.Counter | None = None
_cache_degraded_counter: metrics.Counter | None = None
_normalize_duration_histogram: metrics.Histogram | None = None


def _enabled() -> bool:
    return settings.otel_enabled and settings.otel_metrics_enabled


def get_meter(name: str = "querycache") -> metrics.Meter:
    """Get OpenTelemetry meter instance.

    Returns:
        Meter instance (no-op if telemetry disabled)
    """
    global _meter
    if _meter is None:
        _meter = metrics.get_meter(name)
    return _meter


def _ensure_instruments() -> None:
    """Lazy initialization of metric instruments."""
    global _cache_hits_counter
    global _cache_misses_counter
    global _cache_degraded_counter
    global _normalize_duration_histogram

    meter = get_meter()

    if _cache_hits_counter is None:
        _cache_hits_counter = meter.create_counter(
            name="querycache.cache.hits",
            description="Number of cache hits",
            unit="1",
        )

    if _cache_misses_counter is None:
        _cache_misses_counter = meter.create_counter(
            name="querycache.cache.misses",
            description="Number of cache misses",
            unit="1",
        )

    if _cache_degraded_counter is None:
        _cache_degraded_counter = meter.create_counter(
            name="querycache.cache.degraded",
            description="Number of shared-tier failures absorbed by the cache",
            unit="1",
        )

    if _normalize_duration_histogram is None:
        _normalize_duration_histogram = meter.create_histogram(
            name="querycache.normalize.duration",
            description="Time spent canonicalizing query text",
            unit="ms",
        )


def record_cache_hit(tier: str) -> None:
    """Record cache hit metric."""
    if not _enabled():
        return

    _ensure_instruments()

    if _cache_hits_counter:
        _cache_hits_counter.add(1, {"tier": tier})


def record_cache_miss() -> None:
    """Record cache miss metric."""
    if not _enabled():
        return

    _ensure_instruments()

    if _cache_misses_counter:
        _cache_misses_counter.add(1)


def record_cache_degraded(reason: str) -> None:
    """Record a shared-tier failure."""
    if not _enabled():
        return

    _ensure_instruments()

    if _cache_degraded_counter:
        _cache_degraded_counter.add(1, {"reason": reason})


def record_normalize_duration(duration_ms: float, path: str) -> None:
    """Record how long normalization took and which path it used."""
    if not _enabled():
        return

    _ensure_instruments()

    if _normalize_duration_histogram:
        _normalize_duration_histogram.record(duration_ms, {"path": path})


def get_metrics_summary() -> dict[str, Any]:
    """Get current metrics configuration for debugging."""
    return {
        "otel_enabled": settings.otel_enabled,
        "metrics_enabled": settings.otel_metrics_enabled,
        "service_name": settings.otel_service_name,
        "exporter_endpoint": settings.otel_exporter_otlp_endpoint,
    }
