"""Exception hierarchy for the query cache.

Correctness failures (malformed queries, oracle errors, named-query
resolution errors) are raised to the caller. Cache-layer failures
(CacheDegradedError and subclasses) are caught inside the tiered store
and only ever show up in logs and statistics.
"""

from typing import Any


class QueryCacheError(Exception):
    """Base exception for all query cache errors."""

    code: str = "QUERY_CACHE_ERROR"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class MalformedQueryError(QueryCacheError):
    """Query text cannot be split into clause zones (quoting, parentheses)."""

    code: str = "MALFORMED_QUERY"


class OracleError(QueryCacheError):
    """The underlying query oracle failed to execute a query."""

    code: str = "ORACLE_ERROR"


class CacheDegradedError(QueryCacheError):
    """A cache tier could not serve a read or accept a write."""

    code: str = "CACHE_DEGRADED"


class SharedStoreError(CacheDegradedError):
    """Shared store unavailable (connection, timeout, quota, open circuit)."""

    code: str = "SHARED_STORE_ERROR"


class NamedQueryError(QueryCacheError):
    """Named query could not be resolved into bound query text."""

    code: str = "NAMED_QUERY_ERROR"


class UnknownDefinitionError(NamedQueryError):
    """No named query definition is registered under the requested name."""

    code: str = "UNKNOWN_DEFINITION"


class InactiveDefinitionError(NamedQueryError):
    """Named query definition exists but is switched off."""

    code: str = "INACTIVE_DEFINITION"


class UnknownParameterError(NamedQueryError):
    """Parameter name is not in the definition's allowed set."""

    code: str = "UNKNOWN_PARAMETER"


class MissingParameterError(NamedQueryError):
    """Template references a placeholder that no parameter binds."""

    code: str = "MISSING_PARAMETER"


class ConfigurationError(QueryCacheError):
    """Configuration error (invalid backend, bad YAML, invalid settings)."""

    code: str = "CONFIGURATION_ERROR"
