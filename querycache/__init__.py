"""QueryCache - canonicalizing read-through cache for query results.

Equivalent query texts (field order, whitespace, keyword case, AND-ed
predicate order) share one cache entry. Results are held in an
execution-scoped tier and, optionally, a shared tier with TTL expiry.

Basic usage:
    >>> from querycache import CacheOrchestrator, CacheOptions, StorageMode
    >>> orchestrator = CacheOrchestrator(oracle)
    >>> async with orchestrator.new_context() as context:
    ...     result = await orchestrator.query(
    ...         "SELECT Name, Id FROM Account",
    ...         context,
    ...         CacheOptions(storage_mode=StorageMode.BOTH, ttl_seconds=300),
    ...     )
    >>> result.outcome
    'miss'
"""

from dotenv import load_dotenv

load_dotenv()

from querycache.cache import (
    ExecutionContext,
    InMemorySharedStore,
    RedisSharedStore,
    StatisticsRecorder,
    TieredCacheStore,
)
from querycache.canonical import Canonicalizer, normalize
from querycache.core import (
    CacheDegradedError,
    CacheOptions,
    ConfigurationError,
    InactiveDefinitionError,
    MalformedQueryError,
    MissingParameterError,
    NamedQueryError,
    OracleError,
    QueryCacheError,
    QueryFailure,
    QueryResult,
    RecordSchema,
    RowSet,
    StorageMode,
    Tier,
    UnknownDefinitionError,
    UnknownParameterError,
    settings,
)
from querycache.engines import CacheOrchestrator, CallableOracle, QueryOracle
from querycache.named import (
    NamedQueryDefinition,
    NamedQueryRegistry,
    NamedQueryResolver,
    load_named_queries,
)
from querycache.utils.service_factory import create_query_cache

__version__ = "0.1.0"

__all__ = [
    # Main interface
    "CacheOrchestrator",
    "QueryOracle",
    "CallableOracle",
    "Canonicalizer",
    "normalize",
    "create_query_cache",
    # Cache
    "ExecutionContext",
    "TieredCacheStore",
    "InMemorySharedStore",
    "RedisSharedStore",
    "StatisticsRecorder",
    # Named queries
    "NamedQueryDefinition",
    "NamedQueryRegistry",
    "NamedQueryResolver",
    "load_named_queries",
    # Models
    "CacheOptions",
    "StorageMode",
    "Tier",
    "RecordSchema",
    "RowSet",
    "QueryResult",
    "QueryFailure",
    # Configuration
    "settings",
    # Exceptions
    "QueryCacheError",
    "MalformedQueryError",
    "OracleError",
    "CacheDegradedError",
    "NamedQueryError",
    "UnknownDefinitionError",
    "InactiveDefinitionError",
    "UnknownParameterError",
    "MissingParameterError",
    "ConfigurationError",
    # Version
    "__version__",
]
