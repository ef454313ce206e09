"""OpenTelemetry wiring for processes that embed the query cache.

``setup_telemetry()`` installs OTLP trace and metric exporters and
instruments the Redis client used by the shared tier. Nothing happens
unless ``OTEL_ENABLED`` is set; the cache's own counters and spans are
no-ops until a provider exists.
"""

import logging

from opentelemetry import metrics, trace
from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import OTLPMetricExporter
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.redis import RedisInstrumentor
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

from querycache.core.config import settings

logger = logging.getLogger(__name__)

METRIC_EXPORT_INTERVAL_MS = 60_000

_instrumented = False


def _parse_headers(raw: str) -> dict[str, str] | None:
    """``k1=v1,k2=v2`` -> dict (None when empty)."""
    if not raw:
        return None
    return dict(item.split("=", 1) for item in raw.split(",") if "=" in item)


def _resource() -> Resource:
    from querycache import __version__

    return Resource.create(
        {
            "service.name": settings.otel_service_name,
            "service.version": __version__,
            "deployment.environment": settings.environment,
        }
    )


def _install_tracing(resource: Resource, headers: dict[str, str] | None) -> None:
    provider = TracerProvider(resource=resource)
    provider.add_span_processor(
        BatchSpanProcessor(
            OTLPSpanExporter(
                endpoint=settings.otel_exporter_otlp_endpoint, headers=headers
            )
        )
    )
    trace.set_tracer_provider(provider)
    logger.info(f"Exporting spans to {settings.otel_exporter_otlp_endpoint}")


def _install_metrics(resource: Resource, headers: dict[str, str] | None) -> None:
    reader = PeriodicExportingMetricReader(
        OTLPMetricExporter(
            endpoint=settings.otel_exporter_otlp_endpoint, headers=headers
        ),
        export_interval_millis=METRIC_EXPORT_INTERVAL_MS,
    )
    metrics.set_meter_provider(MeterProvider(resource=resource, metric_readers=[reader]))
    logger.info(f"Exporting cache metrics to {settings.otel_exporter_otlp_endpoint}")


def setup_telemetry() -> None:
    """Install exporters once per process (no-op when telemetry is off)."""
    global _instrumented

    if not settings.otel_enabled:
        logger.info("Telemetry disabled, cache metrics and spans are no-ops")
        return

    if _instrumented:
        return

    resource = _resource()
    headers = _parse_headers(settings.otel_exporter_otlp_headers)

    if settings.otel_traces_enabled:
        _install_tracing(resource, headers)

    if settings.otel_metrics_enabled:
        _install_metrics(resource, headers)

    # only the Redis backend talks to a client worth instrumenting
    if settings.shared_backend == "redis":
        RedisInstrumentor().instrument()
        logger.info("Redis client instrumented")

    _instrumented = True


def shutdown_telemetry() -> None:
    """Flush pending spans and metrics, then shut the providers down."""
    if not settings.otel_enabled:
        return

    for provider in (trace.get_tracer_provider(), metrics.get_meter_provider()):
        shutdown = getattr(provider, "shutdown", None)
        if shutdown is not None:
            shutdown()
    logger.info("Telemetry providers shut down")
