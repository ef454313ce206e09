"""Logging and OpenTelemetry observability for the query cache.

Instrumented Components:
    - Redis shared-tier operations (auto-instrumentation)
    - Cache hits per tier, misses and degraded shared-tier calls
    - Normalization latency per path
    - Orchestrated queries (spans)
"""

from querycache.observability.logging import (
    LogEvents,
    bind_context,
    clear_context,
    configure_logging,
    get_logger,
)
from querycache.observability.metrics import (
    get_meter,
    record_cache_degraded,
    record_cache_hit,
    record_cache_miss,
    record_normalize_duration,
)
from querycache.observability.setup import setup_telemetry, shutdown_telemetry
from querycache.observability.tracing import get_tracer, trace_operation

__all__ = [
    "configure_logging",
    "get_logger",
    "bind_context",
    "clear_context",
    "LogEvents",
    "setup_telemetry",
    "shutdown_telemetry",
    "get_tracer",
    "get_meter",
    "trace_operation",
    "record_cache_hit",
    "record_cache_miss",
    "record_cache_degraded",
    "record_normalize_duration",
]
