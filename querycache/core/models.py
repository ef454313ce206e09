"""Core data models for the query cache.

This module defines Pydantic models for cache options, oracle result
sets, cache entries and the outcome of an orchestrated query.
"""

from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class StorageMode(str, Enum):
    """Which cache tiers a call reads from and writes to."""

    SCOPED_ONLY = "scoped_only"
    SHARED_ONLY = "shared_only"
    BOTH = "both"

    @property
    def includes_scoped(self) -> bool:
        return self in (StorageMode.SCOPED_ONLY, StorageMode.BOTH)

    @property
    def includes_shared(self) -> bool:
        return self in (StorageMode.SHARED_ONLY, StorageMode.BOTH)


class Tier(str, Enum):
    """Cache tier an entry lives in."""

    SCOPED = "scoped"
    SHARED = "shared"


class CacheOptions(BaseModel):
    """Per-call cache configuration.

    Attributes:
        storage_mode: Tiers consulted on lookup and written on store
        ttl_seconds: Shared-tier lifetime (0 = never persisted to shared tier)
        max_results: Optional cap on the number of records returned
        enforce_access_control: Passed through to the oracle
        bypass: Skip the cache entirely (no reads, no writes)
    """

    model_config = ConfigDict(frozen=True)

    storage_mode: StorageMode = Field(
        default=StorageMode.SCOPED_ONLY, description="Tiers to read and write"
    )
    ttl_seconds: int = Field(default=0, description="Shared-tier TTL", ge=0)
    max_results: int | None = Field(
        default=None, description="Maximum records returned", gt=0
    )
    enforce_access_control: bool = Field(
        default=False, description="Ask the oracle to enforce access control"
    )
    bypass: bool = Field(default=False, description="Force a live read")


class FieldSpec(BaseModel):
    """Single column of a record schema."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Field name", min_length=1)
    type: str = Field(default="any", description="Oracle-specific type name")


class RecordSchema(BaseModel):
    """Schema descriptor supplied by the oracle for a result set."""

    model_config = ConfigDict(frozen=True)

    columns: list[FieldSpec] = Field(default_factory=list)

    @property
    def names(self) -> list[str]:
        return [column.name for column in self.columns]


class RowSet(BaseModel):
    """Structured records returned by the oracle.

    Records are plain mappings keyed by field name; their shape is
    described by ``record_schema`` and never inferred by the cache.

    Example:
        >>> rows = RowSet(
        ...     record_schema=RecordSchema(columns=[FieldSpec(name="Id")]),
        ...     records=[{"Id": "001"}, {"Id": "002"}],
        ... )
        >>> len(rows.truncate(1))
        1
    """

    record_schema: RecordSchema = Field(default_factory=RecordSchema)
    records: list[dict[str, Any]] = Field(default_factory=list)
    truncated: bool = Field(
        default=False, description="True if records were cut by a result cap"
    )

    def __len__(self) -> int:
        return len(self.records)

    def truncate(self, limit: int | None) -> "RowSet":
        """Return a copy holding at most ``limit`` records.

        Args:
            limit: Record cap (None = no cap)

        Returns:
            Self if nothing needs cutting, otherwise a truncated copy
        """
        if limit is None or len(self.records) <= limit:
            return self
        return RowSet(
            record_schema=self.record_schema,
            records=list(self.records[:limit]),
            truncated=True,
        )


class CacheEntry(BaseModel):
    """Cached result for one cache key.

    Attributes:
        key: Storage key the entry was written under
        rows: Cached result set
        stored_at: Unix timestamp of the write
        ttl_seconds: Shared-tier lifetime (ignored in the scoped tier)
        source_tier: Tier holding this entry
        max_results: Cap applied when the entry was written
    """

    key: str
    rows: RowSet
    stored_at: float = Field(..., ge=0.0)
    ttl_seconds: int = Field(default=0, ge=0)
    source_tier: Tier = Tier.SCOPED
    max_results: int | None = None

    @property
    def expires_at(self) -> float | None:
        if self.source_tier == Tier.SCOPED:
            return None
        return self.stored_at + self.ttl_seconds

    def is_expired(self, now: float) -> bool:
        """Scoped entries never expire; shared ones die at stored_at + ttl."""
        expires_at = self.expires_at
        return expires_at is not None and now >= expires_at


class QueryResult(BaseModel):
    """Rows returned by the orchestrator plus how they were obtained."""

    rows: RowSet
    key: str = Field(..., description="Storage key of the canonical query")
    canonical: str = Field(..., description="Canonical query text")
    outcome: Literal["hit", "miss", "bypass"]
    tier: Tier | None = Field(None, description="Tier that served a hit")

    @property
    def from_cache(self) -> bool:
        return self.outcome == "hit"


class FailureKind(str, Enum):
    """Reason a query produced no rows."""

    MALFORMED_QUERY = "malformed_query"
    ORACLE_ERROR = "oracle_error"


class QueryFailure(BaseModel):
    """Explicit failure value returned by ``CacheOrchestrator.try_query``."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    kind: FailureKind
    error: Exception

    @property
    def message(self) -> str:
        return str(self.error)
