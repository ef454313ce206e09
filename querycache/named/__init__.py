"""Named query definitions, registry and resolver."""

from querycache.named.models import NamedQueryDefinition
from querycache.named.registry import NamedQueryRegistry, load_named_queries
from querycache.named.resolver import (
    NamedQueryResolver,
    bind_definition,
    bind_parameters,
)
from querycache.named.sanitize import escape_literal, escape_string

__all__ = [
    "NamedQueryDefinition",
    "NamedQueryRegistry",
    "NamedQueryResolver",
    "load_named_queries",
    "bind_definition",
    "bind_parameters",
    "escape_literal",
    "escape_string",
]
