"""Lookup/store results and statistics models for the tiered cache."""

from typing import Literal

from pydantic import BaseModel, Field

from querycache.core.models import CacheEntry, Tier


class CacheHit(BaseModel):
    """A usable entry was found."""

    status: Literal["hit"] = "hit"
    entry: CacheEntry
    tier: Tier


class CacheMiss(BaseModel):
    """No usable entry (absent, expired, bypassed or unreadable)."""

    status: Literal["miss"] = "miss"
    reason: str = Field(default="absent", description="Why the lookup missed")


LookupResult = CacheHit | CacheMiss


class StoreAck(BaseModel):
    """Every requested write either succeeded or was skipped by policy."""

    status: Literal["ack"] = "ack"
    tiers: list[Tier] = Field(default_factory=list, description="Tiers written")


class StoreDegraded(BaseModel):
    """The shared-tier write failed; the entry lives in the scoped tier at most."""

    status: Literal["degraded"] = "degraded"
    tiers: list[Tier] = Field(default_factory=list, description="Tiers written")
    reason: str


StoreResult = StoreAck | StoreDegraded


class SharedRecord(BaseModel):
    """Raw shared-store value: opaque payload plus the time it was written."""

    blob: bytes
    stored_at: float = Field(..., ge=0.0)


class CacheStatistics(BaseModel):
    """Cache performance statistics.

    Attributes:
        total_queries: Hits plus misses
        hits: Queries served from any tier
        misses: Queries that reached the oracle
        hits_by_tier: Hits split by serving tier
        degraded: Shared-tier failures absorbed by the cache
        hit_rate_percent: hits / total_queries * 100 (0 when no queries)
    """

    total_queries: int = 0
    hits: int = 0
    misses: int = 0
    hits_by_tier: dict[Tier, int] = Field(
        default_factory=lambda: {tier: 0 for tier in Tier}
    )
    degraded: int = 0
    hit_rate_percent: float = 0.0
