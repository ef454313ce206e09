"""Tests for observability modules (logging, tracing and metrics)."""

from unittest.mock import MagicMock, patch

import structlog

from querycache.observability.logging import (
    LogEvents,
    bind_context,
    clear_context,
    get_logger,
    unbind_context,
)


class TestLogging:
    def test_get_logger_returns_bound_logger(self):
        logger = get_logger("querycache.test")
        assert logger is not None

    def test_bind_and_unbind_context(self):
        clear_context()
        bind_context(context_id="ctx-1")
        assert structlog.contextvars.get_contextvars() == {"context_id": "ctx-1"}

        unbind_context("context_id")
        assert structlog.contextvars.get_contextvars() == {}

    def test_execution_context_binds_its_id(self):
        from querycache.cache.scoped import ExecutionContext

        clear_context()
        with ExecutionContext(context_id="req-7"):
            assert structlog.contextvars.get_contextvars()["context_id"] == "req-7"
        assert "context_id" not in structlog.contextvars.get_contextvars()

    def test_event_names(self):
        assert LogEvents.CACHE_HIT == "cache_hit"
        assert LogEvents.CACHE_DEGRADED == "cache_degraded"


class TestTracing:
    def test_get_tracer_returns_tracer(self):
        from querycache.observability.tracing import get_tracer

        assert get_tracer("test") is not None

    def test_trace_operation_disabled_returns_original_function(self):
        with patch("querycache.observability.tracing.settings") as mock_settings:
            mock_settings.otel_enabled = False
            mock_settings.otel_traces_enabled = False

            from querycache.observability.tracing import trace_operation

            def my_func():
                return "result"

            assert trace_operation("test_op")(my_func) is my_func

    async def test_trace_operation_wraps_async(self):
        with patch("querycache.observability.tracing.settings") as mock_settings:
            mock_settings.otel_enabled = True
            mock_settings.otel_traces_enabled = True

            from querycache.observability.tracing import trace_operation

            @trace_operation("cache.test")
            async def my_func(x):
                return x * 2

        assert await my_func(21) == 42

    def test_trace_operation_wraps_sync_and_reraises(self):
        with patch("querycache.observability.tracing.settings") as mock_settings:
            mock_settings.otel_enabled = True
            mock_settings.otel_traces_enabled = True

            from querycache.observability.tracing import trace_operation

            @trace_operation()
            def boom():
                raise ValueError("nope")

        try:
            boom()
        except ValueError as e:
            assert str(e) == "nope"
        else:
            raise AssertionError("expected ValueError")


class TestMetrics:
    def test_disabled_records_nothing(self):
        with (
            patch("querycache.observability.metrics.settings") as mock_settings,
            patch("querycache.observability.metrics._ensure_instruments") as ensure,
        ):
            mock_settings.otel_enabled = False

            from querycache.observability.metrics import (
                record_cache_hit,
                record_cache_miss,
                record_normalize_duration,
            )

            record_cache_hit("scoped")
            record_cache_miss()
            record_normalize_duration(1.5, "direct")

        ensure.assert_not_called()

    def test_enabled_records_hit_with_tier(self):
        counter = MagicMock()
        with (
            patch("querycache.observability.metrics.settings") as mock_settings,
            patch("querycache.observability.metrics._ensure_instruments"),
            patch("querycache.observability.metrics._cache_hits_counter", counter),
        ):
            mock_settings.otel_enabled = True
            mock_settings.otel_metrics_enabled = True

            from querycache.observability.metrics import record_cache_hit

            record_cache_hit("shared")

        counter.add.assert_called_once_with(1, {"tier": "shared"})

    def test_metrics_summary(self):
        from querycache.observability.metrics import get_metrics_summary

        summary = get_metrics_summary()

        assert summary["service_name"] == "querycache"
        assert "otel_enabled" in summary


class TestSetup:
    def test_setup_noop_when_disabled(self):
        with patch("querycache.observability.setup.settings") as mock_settings:
            mock_settings.otel_enabled = False

            from querycache.observability.setup import setup_telemetry

            with patch("querycache.observability.setup.TracerProvider") as provider:
                setup_telemetry()

            provider.assert_not_called()
