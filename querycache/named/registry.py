"""In-process registry of named query definitions."""

import logging
import threading
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from querycache.core.exceptions import ConfigurationError, UnknownDefinitionError
from querycache.named.models import NamedQueryDefinition

logger = logging.getLogger(__name__)


class NamedQueryRegistry:
    """Definitions by name. Re-registering a name replaces the definition."""

    def __init__(self, definitions: list[NamedQueryDefinition] | None = None):
        self._lock = threading.Lock()
        self._definitions: dict[str, NamedQueryDefinition] = {}
        for definition in definitions or []:
            self.register(definition)

    def register(self, definition: NamedQueryDefinition) -> None:
        with self._lock:
            replaced = definition.name in self._definitions
            self._definitions[definition.name] = definition
        if replaced:
            logger.info(f"Replaced named query definition {definition.name}")

    def get(self, name: str) -> NamedQueryDefinition:
        """Look up a definition.

        Raises:
            UnknownDefinitionError: Nothing registered under ``name``
        """
        with self._lock:
            definition = self._definitions.get(name)
        if definition is None:
            raise UnknownDefinitionError(
                f"Unknown named query: {name}", details={"name": name}
            )
        return definition

    def names(self) -> list[str]:
        with self._lock:
            return sorted(self._definitions)

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._definitions

    def __len__(self) -> int:
        with self._lock:
            return len(self._definitions)


def _definition_from_config(entry: dict[str, Any]) -> NamedQueryDefinition:
    return NamedQueryDefinition(
        name=entry.get("name", ""),
        parameterized_text=entry.get("text", ""),
        allowed_parameter_names=frozenset(entry.get("parameters") or []),
        default_options=entry.get("options") or {},
        active=entry.get("active", True),
        max_results=entry.get("max_results"),
    )


def load_named_queries(
    path: Path, registry: NamedQueryRegistry | None = None
) -> NamedQueryRegistry:
    """Load definitions from a YAML file into a registry.

    File layout:

        queries:
          - name: Get_High_Value_Accounts
            text: >
              SELECT Id, Name FROM Account
              WHERE AnnualRevenue >= :minRevenue AND Industry = :industry
            parameters: [minRevenue, industry]
            max_results: 200
            options:
              storage_mode: both
              ttl_seconds: 300

    Args:
        path: YAML file
        registry: Registry to add to (default: a new one)

    Raises:
        ConfigurationError: File unreadable, not YAML, or an invalid entry
    """
    registry = registry if registry is not None else NamedQueryRegistry()

    try:
        with open(path) as f:
            config = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError(
            f"Cannot read named queries from {path}: {e}", details={"path": str(path)}
        ) from e

    entries = config.get("queries", []) if isinstance(config, dict) else None
    if not isinstance(entries, list):
        raise ConfigurationError(
            f"{path}: 'queries' must be a list", details={"path": str(path)}
        )

    for index, entry in enumerate(entries):
        if not isinstance(entry, dict):
            raise ConfigurationError(
                f"{path}: query #{index} must be a mapping",
                details={"path": str(path), "index": index},
            )
        try:
            registry.register(_definition_from_config(entry))
        except ValidationError as e:
            raise ConfigurationError(
                f"{path}: invalid query #{index}: {e}",
                details={"path": str(path), "index": index},
            ) from e

    logger.info(f"Loaded {len(entries)} named queries from {path}")
    return registry
