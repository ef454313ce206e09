"""Query oracle interface.

The oracle is the engine that actually executes query text and returns
rows. The cache never rewrites the text it hands to the oracle and never
retries a failed call.
"""

import inspect
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable

from querycache.core.models import RowSet


class QueryOracle(ABC):
    """Executes read-only queries against the underlying data engine.

    Implementations raise OracleError (or a subclass) on failure and are
    assumed idempotent for read queries.
    """

    @abstractmethod
    async def execute(self, text: str, enforce_access_control: bool = False) -> RowSet:
        """Run ``text`` and return its rows.

        Args:
            text: Query text exactly as the caller supplied it
            enforce_access_control: Apply the caller's record-level access rules

        Returns:
            Result rows with the oracle's schema descriptor
        """
        pass


class CallableOracle(QueryOracle):
    """Adapts a plain function (sync or async) to the oracle interface.

    Example:
        >>> async def run(text: str, enforce_access_control: bool) -> RowSet:
        ...     return await client.fetch(text, secure=enforce_access_control)
        >>> oracle = CallableOracle(run)
    """

    def __init__(
        self, func: Callable[[str, bool], RowSet | Awaitable[RowSet]]
    ):
        self.func = func

    async def execute(self, text: str, enforce_access_control: bool = False) -> RowSet:
        result = self.func(text, enforce_access_control)
        if inspect.isawaitable(result):
            result = await result
        return result
