"""Read-through cache orchestration.

One linear pass per call:

    normalize text -> build key -> tiered lookup
        hit  -> record hit -> enforce current cap -> return
        miss -> record miss -> oracle -> cap -> store -> return

Malformed text and oracle failures go straight back to the caller and
are never cached. Cache-layer trouble only shows up in logs and
statistics. There is no single-flight de-duplication: two contexts
missing on the same key both call the oracle and the last shared-tier
write wins.
"""

import hashlib
import json
import time
from collections.abc import Mapping
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict

from querycache.cache.models import CacheHit, CacheStatistics, StoreDegraded
from querycache.cache.scoped import DEFAULT_SCOPED_CAPACITY, ExecutionContext
from querycache.cache.stats import StatisticsRecorder
from querycache.cache.store import TieredCacheStore
from querycache.canonical.normalizer import Canonicalizer
from querycache.core.exceptions import MalformedQueryError, OracleError
from querycache.core.models import (
    CacheEntry,
    CacheOptions,
    FailureKind,
    QueryFailure,
    QueryResult,
    RowSet,
)
from querycache.engines.oracle import QueryOracle
from querycache.observability.logging import LogEvents, get_logger
from querycache.observability.metrics import record_normalize_duration
from querycache.observability.tracing import trace_operation

logger = get_logger(__name__)

KEY_NAMESPACE = "q"


def _plain(value: Any) -> Any:
    """Convert bound parameter values into a deterministic JSON shape."""
    if isinstance(value, Mapping):
        return {str(k): _plain(v) for k, v in value.items()}
    if isinstance(value, (set, frozenset)):
        return sorted((_plain(v) for v in value), key=repr)
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    return value


def parameters_digest(parameters: Mapping[str, Any] | None) -> str | None:
    """SHA256 of the bound parameters, or None when nothing is bound."""
    if not parameters:
        return None
    encoded = json.dumps(
        _plain(parameters), sort_keys=True, separators=(",", ":"), default=str
    )
    return hashlib.sha256(encoded.encode()).hexdigest()


class CacheKey(BaseModel):
    """Everything that distinguishes one cached result from another.

    Attributes:
        canonical: Canonical query text
        parameters_digest: Digest of bound parameter values (None if unbound)
        enforce_access_control: Results under access control are kept apart
    """

    model_config = ConfigDict(frozen=True)

    canonical: str
    parameters_digest: str | None = None
    enforce_access_control: bool = False

    @property
    def storage_key(self) -> str:
        """Fixed-length key used by both tiers: ``q:<sha256>``."""
        material = "\x1f".join(
            (
                self.canonical,
                self.parameters_digest or "",
                "acl" if self.enforce_access_control else "",
            )
        )
        digest = hashlib.sha256(material.encode()).hexdigest()
        return f"{KEY_NAMESPACE}:{digest}"


def _satisfies_cap(entry: CacheEntry, max_results: int | None) -> bool:
    """Whether a cached entry holds enough rows for the current cap.

    An entry cut down by a stricter cap at write time cannot answer a
    read with a looser cap (or none).
    """
    if not entry.rows.truncated:
        return True
    return max_results is not None and max_results <= len(entry.rows)


class CacheOrchestrator:
    """Public entry point: canonicalizer + tiered store + oracle.

    Example:
        >>> orchestrator = CacheOrchestrator(oracle, TieredCacheStore())
        >>> async with orchestrator.new_context() as context:
        ...     first = await orchestrator.query("SELECT Id, Name FROM T", context)
        ...     again = await orchestrator.query("select Name,Id from T", context)
        >>> (first.outcome, again.outcome)
        ('miss', 'hit')
    """

    def __init__(
        self,
        oracle: QueryOracle,
        store: TieredCacheStore | None = None,
        canonicalizer: Canonicalizer | None = None,
        default_options: CacheOptions | None = None,
        scoped_capacity: int = DEFAULT_SCOPED_CAPACITY,
    ):
        """Initialize orchestrator.

        Args:
            oracle: Query executor used on cache misses
            store: Tiered store (default: scoped tier only, no shared tier)
            canonicalizer: Query normalizer (default: Canonicalizer())
            default_options: Options applied when a call passes none
            scoped_capacity: Scoped tier size for contexts from new_context()
        """
        self.oracle = oracle
        self.store = store or TieredCacheStore()
        self.canonicalizer = canonicalizer or Canonicalizer()
        self.default_options = default_options or CacheOptions()
        self.scoped_capacity = scoped_capacity

    @property
    def recorder(self) -> StatisticsRecorder:
        return self.store.recorder

    def new_context(self, context_id: str | None = None) -> ExecutionContext:
        """Open an execution context sized for this orchestrator."""
        context = ExecutionContext(capacity=self.scoped_capacity, context_id=context_id)
        logger.debug(LogEvents.CONTEXT_OPENED, context_id=context.context_id)
        return context

    def build_key(
        self,
        text: str,
        parameters: Mapping[str, Any] | None = None,
        enforce_access_control: bool = False,
    ) -> CacheKey:
        """Normalize ``text`` and combine it with the other key material.

        Raises:
            MalformedQueryError: Text cannot be normalized
        """
        started = time.perf_counter()
        canonical = self.canonicalizer.analyze(text)
        record_normalize_duration(
            (time.perf_counter() - started) * 1000, canonical.path
        )
        return CacheKey(
            canonical=canonical.text,
            parameters_digest=parameters_digest(parameters),
            enforce_access_control=enforce_access_control,
        )

    @trace_operation("querycache.query")
    async def query(
        self,
        text: str,
        context: ExecutionContext,
        options: CacheOptions | None = None,
        parameters: Mapping[str, Any] | None = None,
    ) -> QueryResult:
        """Return rows for ``text``, from cache when an equivalent query is held.

        Args:
            text: Query text (sent to the oracle unchanged on a miss)
            context: Execution context owning the scoped tier
            options: Cache options (default: the orchestrator's defaults)
            parameters: Values already bound into ``text``, kept in the key

        Returns:
            QueryResult with rows and whether they came from cache

        Raises:
            MalformedQueryError: Text cannot be normalized (nothing cached)
            OracleError: Oracle failure, propagated untouched (nothing cached)
        """
        options = options or self.default_options

        try:
            key = self.build_key(text, parameters, options.enforce_access_control)
        except MalformedQueryError as e:
            logger.warning(LogEvents.QUERY_MALFORMED, error=e.message, **e.details)
            raise

        storage_key = key.storage_key

        if options.bypass:
            rows = await self._execute(text, options)
            logger.debug(LogEvents.CACHE_BYPASS, key=storage_key)
            return QueryResult(
                rows=rows.truncate(options.max_results),
                key=storage_key,
                canonical=key.canonical,
                outcome="bypass",
            )

        lookup = await self.store.lookup(storage_key, options, context)
        if isinstance(lookup, CacheHit):
            if _satisfies_cap(lookup.entry, options.max_results):
                self.recorder.record_hit(lookup.tier)
                logger.debug(
                    LogEvents.CACHE_HIT, key=storage_key, tier=lookup.tier.value
                )
                return QueryResult(
                    rows=lookup.entry.rows.truncate(options.max_results),
                    key=storage_key,
                    canonical=key.canonical,
                    outcome="hit",
                    tier=lookup.tier,
                )
            logger.debug(
                LogEvents.CACHE_MISS,
                key=storage_key,
                reason="cached entry truncated by a stricter cap",
            )
        else:
            logger.debug(LogEvents.CACHE_MISS, key=storage_key, reason=lookup.reason)

        self.recorder.record_miss()
        rows = (await self._execute(text, options)).truncate(options.max_results)

        stored = await self.store.store(storage_key, rows, options, context)
        if isinstance(stored, StoreDegraded):
            logger.info(
                LogEvents.CACHE_DEGRADED, key=storage_key, reason=stored.reason
            )

        return QueryResult(
            rows=rows,
            key=storage_key,
            canonical=key.canonical,
            outcome="miss",
        )

    async def try_query(
        self,
        text: str,
        context: ExecutionContext,
        options: CacheOptions | None = None,
        parameters: Mapping[str, Any] | None = None,
    ) -> QueryResult | QueryFailure:
        """Like ``query``, but malformed text and oracle errors come back as data.

        Example:
            >>> outcome = await orchestrator.try_query(text, context)
            >>> if isinstance(outcome, QueryFailure):
            ...     report(outcome.kind, outcome.message)
        """
        try:
            return await self.query(text, context, options, parameters)
        except MalformedQueryError as e:
            return QueryFailure(kind=FailureKind.MALFORMED_QUERY, error=e)
        except OracleError as e:
            return QueryFailure(kind=FailureKind.ORACLE_ERROR, error=e)

    async def invalidate(
        self,
        text: str,
        context: ExecutionContext | None = None,
        parameters: Mapping[str, Any] | None = None,
        enforce_access_control: bool = False,
    ) -> str:
        """Drop the cached result of ``text`` (shared tier best-effort).

        Returns:
            Storage key that was invalidated
        """
        key = self.build_key(text, parameters, enforce_access_control)
        storage_key = key.storage_key
        await self.store.invalidate(storage_key, context)
        logger.info(LogEvents.CACHE_INVALIDATED, key=storage_key)
        return storage_key

    def invalidate_all(self, context: ExecutionContext) -> None:
        """Empty the scoped tier of ``context``."""
        self.store.invalidate_all(context)

    def statistics(self) -> CacheStatistics:
        return self.recorder.snapshot()

    async def close(self) -> None:
        await self.store.close()

    async def _execute(self, text: str, options: CacheOptions) -> RowSet:
        try:
            return await self.oracle.execute(text, options.enforce_access_control)
        except Exception as e:
            logger.warning(
                LogEvents.ORACLE_FAILED, error=str(e), error_type=type(e).__name__
            )
            raise
