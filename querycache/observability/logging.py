"""Structured event logging for the query cache.

Cache events (hits, misses, degraded shared calls) are emitted through
structlog so they carry the bound execution context id. Module-level
diagnostics elsewhere in the package use plain ``logging`` loggers; both
end up on the same stdlib handler.

Rendering follows the settings (``LOG_LEVEL``, ``LOG_FORMAT``,
``ENVIRONMENT``): JSON lines in production, colored console output
otherwise.

Usage:
    >>> from querycache.observability.logging import get_logger
    >>> logger = get_logger(__name__)
    >>> logger.info("cache_hit", tier="scoped", key="querycache:q:ab12")

Standard Events:
    Query:
        - query_malformed: Normalization rejected the text

    Cache:
        - cache_hit: Served from a tier
        - cache_miss: No usable entry, oracle called
        - cache_bypass: Live read requested
        - cache_degraded: Shared tier read/write failed
        - cache_invalidated: Key dropped from the tiers

    Oracle:
        - oracle_failed: Oracle raised, nothing cached

    Context:
        - context_opened: Orchestrator handed out a new context

    Named queries:
        - named_query_resolved: Template bound and executed
"""

import logging
import sys
from typing import Any

import structlog
from structlog.types import Processor

from querycache.core.config import settings

_configured = False


def _renderer(log_format: str) -> list[Processor]:
    if log_format == "json":
        return [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    return [structlog.dev.ConsoleRenderer(colors=True)]


def configure_logging(
    level: str | None = None,
    log_format: str | None = None,
    is_production: bool | None = None,
) -> None:
    """Install the structlog pipeline once per process.

    Later calls do nothing.

    Args:
        level: DEBUG, INFO, WARNING or ERROR (default: settings.log_level)
        log_format: json or console (default: settings.log_format, else
            json in production and console elsewhere)
        is_production: Override settings.is_production
    """
    global _configured
    if _configured:
        return

    level = (level or settings.log_level).upper()
    if is_production is None:
        is_production = settings.is_production
    log_format = log_format or settings.log_format or (
        "json" if is_production else "console"
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level, logging.INFO),
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.UnicodeDecoder(),
            *_renderer(log_format),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    _configured = True


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Return a structlog logger, configuring logging on first use."""
    if not _configured:
        configure_logging()

    logger: structlog.stdlib.BoundLogger = structlog.get_logger(name)
    return logger


def bind_context(**kwargs: Any) -> None:
    """Attach key/values to every event logged from the current context.

    Example:
        >>> bind_context(context_id="3f0c...")
        >>> logger.info("cache_miss")  # carries context_id
    """
    structlog.contextvars.bind_contextvars(**kwargs)


def unbind_context(*keys: str) -> None:
    structlog.contextvars.unbind_contextvars(*keys)


def clear_context() -> None:
    """Drop every bound key (end of a unit of work)."""
    structlog.contextvars.clear_contextvars()


class LogEvents:
    """Event names used by the orchestrator and resolver.

    Example:
        >>> logger.info(LogEvents.CACHE_HIT, tier="shared")
    """

    # Query events
    QUERY_MALFORMED = "query_malformed"

    # Cache events
    CACHE_HIT = "cache_hit"
    CACHE_MISS = "cache_miss"
    CACHE_BYPASS = "cache_bypass"
    CACHE_DEGRADED = "cache_degraded"
    CACHE_INVALIDATED = "cache_invalidated"

    # Oracle events
    ORACLE_FAILED = "oracle_failed"

    # Named query events
    NAMED_QUERY_RESOLVED = "named_query_resolved"

    # Context events
    CONTEXT_OPENED = "context_opened"
