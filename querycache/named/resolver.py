"""Named query resolution.

Resolving checks the definition and the caller's parameters, binds each
``:name`` placeholder to an escaped literal, and hands the bound text to
the orchestrator with the definition's cache options. Every resolution
error is raised before the oracle is called.
"""

import re
from collections.abc import Mapping
from typing import Any

from querycache.cache.scoped import ExecutionContext
from querycache.canonical.tokenizer import TokenKind, tokenize
from querycache.core.exceptions import (
    InactiveDefinitionError,
    MissingParameterError,
    NamedQueryError,
    UnknownParameterError,
)
from querycache.core.models import CacheOptions, QueryResult
from querycache.engines.orchestrator import CacheOrchestrator
from querycache.named.models import NamedQueryDefinition
from querycache.named.registry import NamedQueryRegistry
from querycache.named.sanitize import escape_literal
from querycache.observability.logging import LogEvents, get_logger

logger = get_logger(__name__)

_PLACEHOLDER = re.compile(r":([A-Za-z_][A-Za-z0-9_]*)")


def bind_parameters(template: str, parameters: Mapping[str, Any]) -> str:
    """Substitute ``:name`` placeholders in ``template``.

    Placeholders inside quoted literals are left alone.

    Raises:
        MissingParameterError: A placeholder has no value in ``parameters``
        NamedQueryError: A value has no literal form
        MalformedQueryError: Template quoting or parentheses are broken
    """
    spans: list[tuple[int, int, str]] = []
    for token in tokenize(template):
        if token.kind is not TokenKind.WORD:
            continue
        match = _PLACEHOLDER.fullmatch(token.text)
        if match is None:
            continue
        name = match.group(1)
        if name not in parameters:
            raise MissingParameterError(
                f"No value bound for placeholder :{name}", details={"parameter": name}
            )
        try:
            literal = escape_literal(parameters[name])
        except (TypeError, ValueError) as e:
            raise NamedQueryError(
                f"Cannot bind parameter {name}: {e}", details={"parameter": name}
            ) from e
        spans.append((token.start, token.end, literal))

    bound = template
    for start, end, literal in reversed(spans):
        bound = bound[:start] + literal + bound[end:]
    return bound


def bind_definition(
    definition: NamedQueryDefinition, parameters: Mapping[str, Any] | None = None
) -> str:
    """Check a definition against the caller's parameters and bind it.

    Raises:
        InactiveDefinitionError: Definition is switched off
        UnknownParameterError: A parameter is not in the allowed set
        MissingParameterError: A placeholder is left unbound
    """
    parameters = parameters or {}
    name = definition.name

    if not definition.active:
        raise InactiveDefinitionError(
            f"Named query {name} is inactive", details={"name": name}
        )

    unknown = sorted(set(parameters) - definition.allowed_parameter_names)
    if unknown:
        raise UnknownParameterError(
            f"Named query {name} does not accept: {', '.join(unknown)}",
            details={"name": name, "parameters": unknown},
        )

    return bind_parameters(definition.parameterized_text, parameters)


class NamedQueryResolver:
    """Runs named queries through the read-through cache.

    Example:
        >>> resolver = NamedQueryResolver(registry, orchestrator)
        >>> result = await resolver.resolve(
        ...     "Get_High_Value_Accounts",
        ...     {"minRevenue": 1000000, "industry": "Technology"},
        ...     context,
        ... )
    """

    def __init__(self, registry: NamedQueryRegistry, orchestrator: CacheOrchestrator):
        self.registry = registry
        self.orchestrator = orchestrator

    def bind(
        self, name: str, parameters: Mapping[str, Any] | None = None
    ) -> tuple[str, CacheOptions]:
        """Produce bound query text and cache options for a definition.

        Raises:
            UnknownDefinitionError: No definition named ``name``
            InactiveDefinitionError: Definition is switched off
            UnknownParameterError: A parameter is not in the allowed set
            MissingParameterError: A placeholder is left unbound
        """
        definition = self.registry.get(name)
        return bind_definition(definition, parameters), definition.options

    async def resolve(
        self,
        name: str,
        parameters: Mapping[str, Any] | None,
        context: ExecutionContext,
    ) -> QueryResult:
        """Bind a named query and run it through the orchestrator."""
        text, options = self.bind(name, parameters)
        logger.debug(LogEvents.NAMED_QUERY_RESOLVED, name=name)
        return await self.orchestrator.query(text, context, options, parameters)
