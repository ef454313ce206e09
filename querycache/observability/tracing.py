"""OpenTelemetry tracing utilities for the query cache."""

import functools
import inspect
from collections.abc import Callable
from typing import Any, TypeVar

from opentelemetry import trace

from querycache.core.config import settings

F = TypeVar("F", bound=Callable[..., Any])


def get_tracer(name: str = "querycache") -> trace.Tracer:
    """Get OpenTelemetry tracer instance (no-op if telemetry disabled)."""
    return trace.get_tracer(name)


def trace_operation(
    operation_name: str | None = None,
    attributes: dict[str, Any] | None = None,
) -> Callable[[F], F]:
    """Decorator to trace function execution.

    Args:
        operation_name: Span name (defaults to function name)
        attributes: Additional span attributes

    Example:
        >>> @trace_operation("cache.query")
        ... async def query(text: str) -> QueryResult:
        ...     ...
    """

    def decorator(func: F) -> F:
        if not settings.otel_enabled or not settings.otel_traces_enabled:
            return func

        def _start(span: trace.Span) -> None:
            if attributes:
                for key, value in attributes.items():
                    span.set_attribute(key, value)
            span.set_attribute("function.name", func.__name__)
            span.set_attribute("function.module", func.__module__)

        def _fail(span: trace.Span, exc: Exception) -> None:
            span.set_status(trace.Status(trace.StatusCode.ERROR, description=str(exc)))
            span.record_exception(exc)

        @functools.wraps(func)
        async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
            tracer = get_tracer(func.__module__)
            with tracer.start_as_current_span(operation_name or func.__name__) as span:
                _start(span)
                try:
                    result = await func(*args, **kwargs)
                except Exception as e:
                    _fail(span, e)
                    raise
                span.set_status(trace.Status(trace.StatusCode.OK))
                return result

        @functools.wraps(func)
        def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
            tracer = get_tracer(func.__module__)
            with tracer.start_as_current_span(operation_name or func.__name__) as span:
                _start(span)
                try:
                    result = func(*args, **kwargs)
                except Exception as e:
                    _fail(span, e)
                    raise
                span.set_status(trace.Status(trace.StatusCode.OK))
                return result

        if inspect.iscoroutinefunction(func):
            return async_wrapper  # type: ignore
        return sync_wrapper  # type: ignore

    return decorator
