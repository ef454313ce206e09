"""Execution-scoped cache tier.

An ExecutionContext owns one ScopedTier for the lifetime of a logical unit
of work (a request, a transaction, a job). Entries never outlive the
context: closing it drops them all. A context is owned by a single unit of
work, so the tier takes no locks.

Example:
    >>> with ExecutionContext(capacity=100) as context:
    ...     result = await orchestrator.query(text, context)
    >>> context.closed
    True
"""

import logging
from types import TracebackType
from uuid import uuid4

from querycache.core.models import CacheEntry
from querycache.observability.logging import bind_context, unbind_context

logger = logging.getLogger(__name__)

DEFAULT_SCOPED_CAPACITY = 100


class ScopedTier:
    """Bounded in-memory tier that rejects inserts once full.

    Existing entries are never evicted to make room; a full tier keeps
    serving what it already holds. Overwriting a key already present is
    always allowed.
    """

    def __init__(self, capacity: int = DEFAULT_SCOPED_CAPACITY):
        if capacity < 1:
            raise ValueError(f"Scoped tier capacity must be >= 1, got {capacity}")
        self.capacity = capacity
        self.closed = False
        self.rejected = 0
        self._entries: dict[str, CacheEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    @property
    def is_full(self) -> bool:
        return len(self._entries) >= self.capacity

    def get(self, key: str) -> CacheEntry | None:
        if self.closed:
            return None
        return self._entries.get(key)

    def put(self, entry: CacheEntry) -> bool:
        """Insert or replace an entry.

        Returns:
            False if the tier is closed or full and ``entry.key`` is new
        """
        if self.closed:
            return False
        if entry.key not in self._entries and self.is_full:
            self.rejected += 1
            logger.debug(
                f"Scoped tier full ({self.capacity} entries), rejected {entry.key[:24]}"
            )
            return False
        self._entries[entry.key] = entry
        return True

    def remove(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        self._entries.clear()

    def close(self) -> None:
        self._entries.clear()
        self.closed = True


class ExecutionContext:
    """Lifetime boundary of one scoped tier.

    Usable as a sync or async context manager; leaving the block closes
    the context. A closed context misses on every read and rejects every
    write, so an oracle call that finishes after teardown leaves nothing
    behind.
    """

    def __init__(
        self,
        capacity: int = DEFAULT_SCOPED_CAPACITY,
        context_id: str | None = None,
    ):
        self.context_id = context_id or uuid4().hex
        self.scoped = ScopedTier(capacity)

    def __repr__(self) -> str:
        state = "closed" if self.closed else "open"
        return (
            f"ExecutionContext(id={self.context_id!r}, {state}, "
            f"entries={len(self.scoped)}/{self.scoped.capacity})"
        )

    @property
    def closed(self) -> bool:
        return self.scoped.closed

    def close(self) -> None:
        if self.closed:
            return
        dropped = len(self.scoped)
        self.scoped.close()
        logger.debug(f"Execution context {self.context_id} closed, dropped {dropped}")

    def __enter__(self) -> "ExecutionContext":
        bind_context(context_id=self.context_id)
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()
        unbind_context("context_id")

    async def __aenter__(self) -> "ExecutionContext":
        return self.__enter__()

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.__exit__(exc_type, exc, tb)
