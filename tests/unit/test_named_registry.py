"""Tests for the named query registry and its YAML loader."""

import pytest
import yaml

from querycache.core.exceptions import ConfigurationError, UnknownDefinitionError
from querycache.core.models import StorageMode
from querycache.named.models import NamedQueryDefinition
from querycache.named.registry import NamedQueryRegistry, load_named_queries


def definition(name: str = "Accounts", **kwargs) -> NamedQueryDefinition:
    return NamedQueryDefinition(
        name=name, parameterized_text="SELECT Id FROM Account", **kwargs
    )


class TestNamedQueryRegistry:
    def test_register_and_get(self):
        registry = NamedQueryRegistry([definition()])

        assert registry.get("Accounts").name == "Accounts"
        assert "Accounts" in registry
        assert len(registry) == 1

    def test_unknown_name(self):
        with pytest.raises(UnknownDefinitionError) as exc_info:
            NamedQueryRegistry().get("Nope")
        assert exc_info.value.details["name"] == "Nope"

    def test_reregister_replaces(self):
        registry = NamedQueryRegistry([definition(active=True)])
        registry.register(definition(active=False))

        assert registry.get("Accounts").active is False
        assert len(registry) == 1

    def test_names_sorted(self):
        registry = NamedQueryRegistry([definition("b"), definition("a")])
        assert registry.names() == ["a", "b"]

    def test_definitions_are_immutable(self):
        with pytest.raises(Exception):
            definition().active = False

    def test_max_results_overrides_options(self):
        options = definition(max_results=25).options
        assert options.max_results == 25

    def test_options_without_max_results(self):
        assert definition().options.max_results is None


class TestLoadNamedQueries:
    def test_load_yaml(self, tmp_path):
        path = tmp_path / "queries.yaml"
        path.write_text(
            yaml.dump(
                {
                    "queries": [
                        {
                            "name": "Get_High_Value_Accounts",
                            "text": "SELECT Id FROM Account WHERE AnnualRevenue >= :min",
                            "parameters": ["min"],
                            "max_results": 100,
                            "options": {"storage_mode": "both", "ttl_seconds": 300},
                        },
                        {
                            "name": "Retired",
                            "text": "SELECT Id FROM Lead",
                            "active": False,
                        },
                    ]
                }
            )
        )

        registry = load_named_queries(path)

        loaded = registry.get("Get_High_Value_Accounts")
        assert loaded.allowed_parameter_names == frozenset({"min"})
        assert loaded.default_options.storage_mode == StorageMode.BOTH
        assert loaded.default_options.ttl_seconds == 300
        assert loaded.max_results == 100
        assert registry.get("Retired").active is False

    def test_adds_to_existing_registry(self, tmp_path):
        path = tmp_path / "queries.yaml"
        path.write_text("queries:\n  - name: Leads\n    text: SELECT Id FROM Lead\n")
        registry = NamedQueryRegistry([definition()])

        load_named_queries(path, registry)

        assert registry.names() == ["Accounts", "Leads"]

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError):
            load_named_queries(tmp_path / "missing.yaml")

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "queries.yaml"
        path.write_text("queries: [unclosed")

        with pytest.raises(ConfigurationError):
            load_named_queries(path)

    def test_queries_not_a_list(self, tmp_path):
        path = tmp_path / "queries.yaml"
        path.write_text("queries: nope\n")

        with pytest.raises(ConfigurationError):
            load_named_queries(path)

    def test_invalid_entry(self, tmp_path):
        path = tmp_path / "queries.yaml"
        path.write_text("queries:\n  - name: NoText\n")

        with pytest.raises(ConfigurationError) as exc_info:
            load_named_queries(path)
        assert exc_info.value.details["index"] == 0

    def test_empty_file(self, tmp_path):
        path = tmp_path / "queries.yaml"
        path.write_text("")

        assert len(load_named_queries(path)) == 0
