"""Pytest configuration and fixtures for QueryCache tests."""

import pytest

from querycache.cache.scoped import ExecutionContext
from querycache.cache.shared import InMemorySharedStore
from querycache.cache.store import TieredCacheStore
from querycache.core.models import FieldSpec, RecordSchema, RowSet
from querycache.engines.oracle import QueryOracle
from querycache.engines.orchestrator import CacheOrchestrator

ACCOUNT_SCHEMA = RecordSchema(
    columns=[FieldSpec(name="Id", type="id"), FieldSpec(name="Name", type="string")]
)

ACCOUNT_RECORDS = [
    {"Id": "001A", "Name": "Acme"},
    {"Id": "001B", "Name": "Globex"},
    {"Id": "001C", "Name": "Initech"},
    {"Id": "001D", "Name": "Umbrella"},
    {"Id": "001E", "Name": "Hooli"},
]


class FakeOracle(QueryOracle):
    """Oracle double that records every call it receives."""

    def __init__(self, records: list[dict] | None = None, error: Exception | None = None):
        self.records = ACCOUNT_RECORDS if records is None else records
        self.error = error
        self.calls: list[tuple[str, bool]] = []

    @property
    def call_count(self) -> int:
        return len(self.calls)

    async def execute(self, text: str, enforce_access_control: bool = False) -> RowSet:
        self.calls.append((text, enforce_access_control))
        if self.error is not None:
            raise self.error
        return RowSet(
            record_schema=ACCOUNT_SCHEMA,
            records=[dict(record) for record in self.records],
        )


class FakeClock:
    """Manually advanced time source."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def oracle() -> FakeOracle:
    return FakeOracle()


@pytest.fixture
def shared_store(clock) -> InMemorySharedStore:
    return InMemorySharedStore(max_entries=100, clock=clock)


@pytest.fixture
def store(shared_store, clock) -> TieredCacheStore:
    return TieredCacheStore(shared_store=shared_store, clock=clock)


@pytest.fixture
def orchestrator(oracle, store) -> CacheOrchestrator:
    return CacheOrchestrator(oracle, store, scoped_capacity=10)


@pytest.fixture
def context():
    context = ExecutionContext(capacity=10)
    yield context
    context.close()
