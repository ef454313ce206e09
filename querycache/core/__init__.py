"""Core infrastructure for the query cache."""

from querycache.core.config import (
    Settings,
    load_cache_config,
    parse_env_value,
    settings,
)
from querycache.core.exceptions import (
    CacheDegradedError,
    ConfigurationError,
    InactiveDefinitionError,
    MalformedQueryError,
    MissingParameterError,
    NamedQueryError,
    OracleError,
    QueryCacheError,
    SharedStoreError,
    UnknownDefinitionError,
    UnknownParameterError,
)
from querycache.core.models import (
    CacheEntry,
    CacheOptions,
    FailureKind,
    FieldSpec,
    QueryFailure,
    QueryResult,
    RecordSchema,
    RowSet,
    StorageMode,
    Tier,
)

__all__ = [
    # Config
    "Settings",
    "settings",
    "load_cache_config",
    "parse_env_value",
    # Exceptions
    "QueryCacheError",
    "MalformedQueryError",
    "OracleError",
    "CacheDegradedError",
    "SharedStoreError",
    "NamedQueryError",
    "UnknownDefinitionError",
    "InactiveDefinitionError",
    "UnknownParameterError",
    "MissingParameterError",
    "ConfigurationError",
    # Models
    "StorageMode",
    "Tier",
    "CacheOptions",
    "FieldSpec",
    "RecordSchema",
    "RowSet",
    "CacheEntry",
    "QueryResult",
    "QueryFailure",
    "FailureKind",
]
