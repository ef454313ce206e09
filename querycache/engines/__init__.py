"""Query execution: the oracle interface and the read-through orchestrator."""

from querycache.engines.oracle import CallableOracle, QueryOracle
from querycache.engines.orchestrator import (
    CacheKey,
    CacheOrchestrator,
    parameters_digest,
)

__all__ = [
    "QueryOracle",
    "CallableOracle",
    "CacheOrchestrator",
    "CacheKey",
    "parameters_digest",
]
