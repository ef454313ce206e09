"""Tests for named query binding and resolution."""

import pytest

from querycache.core.exceptions import (
    InactiveDefinitionError,
    MalformedQueryError,
    MissingParameterError,
    NamedQueryError,
    UnknownDefinitionError,
    UnknownParameterError,
)
from querycache.core.models import CacheOptions, StorageMode
from querycache.named.models import NamedQueryDefinition
from querycache.named.registry import NamedQueryRegistry
from querycache.named.resolver import (
    NamedQueryResolver,
    bind_definition,
    bind_parameters,
)

HIGH_VALUE = NamedQueryDefinition(
    name="Get_High_Value_Accounts",
    parameterized_text=(
        "SELECT Id, Name, AnnualRevenue FROM Account "
        "WHERE AnnualRevenue >= :minRevenue AND Industry = :industry"
    ),
    allowed_parameter_names=frozenset({"minRevenue", "industry"}),
    default_options=CacheOptions(storage_mode=StorageMode.BOTH, ttl_seconds=300),
)

PARAMS = {"minRevenue": 1000000, "industry": "Technology"}


@pytest.fixture
def registry():
    return NamedQueryRegistry(
        [
            HIGH_VALUE,
            NamedQueryDefinition(
                name="Old_Report",
                parameterized_text="SELECT Id FROM Account",
                active=False,
            ),
            NamedQueryDefinition(
                name="Top_Accounts",
                parameterized_text="SELECT Id, Name FROM Account",
                max_results=2,
            ),
        ]
    )


@pytest.fixture
def resolver(registry, orchestrator):
    return NamedQueryResolver(registry, orchestrator)


class TestBindDefinition:
    """Validation shared by the resolver and the CLI."""

    def test_binds_active_definition(self):
        assert bind_definition(HIGH_VALUE, PARAMS).endswith(
            "AnnualRevenue >= 1000000 AND Industry = 'Technology'"
        )

    def test_inactive_rejected_before_binding(self):
        retired = HIGH_VALUE.model_copy(update={"active": False})
        with pytest.raises(InactiveDefinitionError):
            bind_definition(retired, PARAMS)

    def test_unknown_parameters_reported_sorted(self):
        with pytest.raises(UnknownParameterError) as exc_info:
            bind_definition(HIGH_VALUE, {**PARAMS, "zone": 1, "evil": 1})
        assert exc_info.value.details["parameters"] == ["evil", "zone"]


class TestBindParameters:
    def test_substitutes_escaped_literals(self):
        bound = bind_parameters(
            "SELECT Id FROM Contact WHERE LastName = :name", {"name": "O'Brien"}
        )
        assert bound == "SELECT Id FROM Contact WHERE LastName = 'O\\'Brien'"

    def test_placeholder_in_literal_left_alone(self):
        bound = bind_parameters(
            "SELECT Id FROM Account WHERE Name = ':industry' AND Industry = :industry",
            {"industry": "Retail"},
        )
        assert bound == (
            "SELECT Id FROM Account WHERE Name = ':industry' AND Industry = 'Retail'"
        )

    def test_repeated_placeholder(self):
        bound = bind_parameters("SELECT Id FROM T WHERE a = :x OR b = :x", {"x": 1})
        assert bound == "SELECT Id FROM T WHERE a = 1 OR b = 1"

    def test_list_value(self):
        bound = bind_parameters("SELECT Id FROM T WHERE Id IN :ids", {"ids": ["1", "2"]})
        assert bound == "SELECT Id FROM T WHERE Id IN ('1', '2')"

    def test_missing_placeholder_value(self):
        with pytest.raises(MissingParameterError) as exc_info:
            bind_parameters("SELECT Id FROM T WHERE a = :x", {})
        assert exc_info.value.details["parameter"] == "x"

    def test_unbindable_value(self):
        with pytest.raises(NamedQueryError):
            bind_parameters("SELECT Id FROM T WHERE a = :x", {"x": float("nan")})

    def test_broken_template(self):
        with pytest.raises(MalformedQueryError):
            bind_parameters("SELECT Id FROM T WHERE a = ':x", {"x": 1})


class TestNamedQueryResolver:
    def test_bind_high_value_accounts(self, resolver):
        text, options = resolver.bind("Get_High_Value_Accounts", PARAMS)

        assert text == (
            "SELECT Id, Name, AnnualRevenue FROM Account "
            "WHERE AnnualRevenue >= 1000000 AND Industry = 'Technology'"
        )
        assert options.storage_mode == StorageMode.BOTH
        assert ":" not in text

    async def test_resolve_reads_through_cache(self, resolver, oracle, context):
        first = await resolver.resolve("Get_High_Value_Accounts", PARAMS, context)
        second = await resolver.resolve("Get_High_Value_Accounts", dict(PARAMS), context)

        assert first.outcome == "miss"
        assert second.outcome == "hit"
        assert oracle.call_count == 1
        assert "'Technology'" in oracle.calls[0][0]

    async def test_different_parameters_miss(self, resolver, oracle, context):
        await resolver.resolve("Get_High_Value_Accounts", PARAMS, context)
        await resolver.resolve(
            "Get_High_Value_Accounts",
            {"minRevenue": 5, "industry": "Technology"},
            context,
        )

        assert oracle.call_count == 2

    async def test_definition_cap_applied(self, resolver, context):
        result = await resolver.resolve("Top_Accounts", None, context)

        assert len(result.rows) == 2

    async def test_unknown_parameter(self, resolver, oracle, context):
        with pytest.raises(UnknownParameterError) as exc_info:
            await resolver.resolve(
                "Get_High_Value_Accounts", {**PARAMS, "region": "EMEA"}, context
            )

        assert exc_info.value.details["parameters"] == ["region"]
        assert oracle.call_count == 0

    async def test_missing_parameter(self, resolver, oracle, context):
        with pytest.raises(MissingParameterError):
            await resolver.resolve(
                "Get_High_Value_Accounts", {"industry": "Technology"}, context
            )
        assert oracle.call_count == 0

    async def test_inactive_definition(self, resolver, oracle, context):
        with pytest.raises(InactiveDefinitionError):
            await resolver.resolve("Old_Report", {}, context)
        assert oracle.call_count == 0

    async def test_unknown_definition(self, resolver, oracle, context):
        with pytest.raises(UnknownDefinitionError):
            await resolver.resolve("Nope", {}, context)
        assert oracle.call_count == 0
