"""Tests for the execution-scoped cache tier."""

import pytest

from querycache.cache.scoped import ExecutionContext, ScopedTier
from querycache.core.models import CacheEntry, RowSet


def entry(key: str) -> CacheEntry:
    rows = RowSet(records=[{"Id": "001A"}, {"Id": "001B"}])
    return CacheEntry(key=key, rows=rows, stored_at=0.0)


class TestScopedTier:
    """Test capacity policy and lifecycle of ScopedTier."""

    def test_put_and_get(self):
        tier = ScopedTier(capacity=2)

        assert tier.put(entry("q:a")) is True
        assert tier.get("q:a").key == "q:a"
        assert tier.get("q:missing") is None
        assert "q:a" in tier
        assert len(tier) == 1

    def test_full_tier_rejects_new_keys(self):
        tier = ScopedTier(capacity=2)
        tier.put(entry("q:a"))
        tier.put(entry("q:b"))

        assert tier.is_full
        assert tier.put(entry("q:c")) is False
        assert tier.get("q:c") is None
        assert tier.rejected == 1

    def test_full_tier_keeps_existing_entries(self):
        tier = ScopedTier(capacity=1)
        tier.put(entry("q:a"))
        tier.put(entry("q:b"))

        assert tier.get("q:a") is not None

    def test_overwrite_allowed_when_full(self):
        tier = ScopedTier(capacity=1)
        tier.put(entry("q:a"))

        rows = RowSet(records=[{"Id": "001A"}])
        replacement = CacheEntry(key="q:a", rows=rows, stored_at=5.0)
        assert tier.put(replacement) is True
        assert tier.get("q:a").stored_at == 5.0

    def test_remove_and_clear(self):
        tier = ScopedTier(capacity=3)
        tier.put(entry("q:a"))
        tier.put(entry("q:b"))

        assert tier.remove("q:a") is True
        assert tier.remove("q:a") is False
        tier.clear()
        assert len(tier) == 0

    def test_invalid_capacity(self):
        with pytest.raises(ValueError):
            ScopedTier(capacity=0)

    def test_closed_tier_misses_and_rejects(self):
        tier = ScopedTier(capacity=3)
        tier.put(entry("q:a"))
        tier.close()

        assert tier.get("q:a") is None
        assert tier.put(entry("q:b")) is False
        assert len(tier) == 0


class TestExecutionContext:
    """Test the context lifetime boundary."""

    def test_context_ids_are_unique(self):
        assert ExecutionContext().context_id != ExecutionContext().context_id

    def test_explicit_context_id(self):
        assert ExecutionContext(context_id="req-42").context_id == "req-42"

    def test_with_block_closes_context(self):
        with ExecutionContext(capacity=5) as context:
            context.scoped.put(entry("q:a"))
            assert not context.closed

        assert context.closed
        assert context.scoped.get("q:a") is None

    async def test_async_with_block_closes_context(self):
        async with ExecutionContext(capacity=5) as context:
            context.scoped.put(entry("q:a"))

        assert context.closed

    def test_contexts_do_not_share_entries(self):
        first = ExecutionContext()
        second = ExecutionContext()
        first.scoped.put(entry("q:a"))

        assert second.scoped.get("q:a") is None

    def test_close_is_idempotent(self):
        context = ExecutionContext()
        context.close()
        context.close()
        assert context.closed

    def test_repr(self):
        context = ExecutionContext(capacity=7, context_id="abc")
        assert repr(context) == "ExecutionContext(id='abc', open, entries=0/7)"
