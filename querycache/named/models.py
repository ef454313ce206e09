"""Named query definitions."""

from pydantic import BaseModel, ConfigDict, Field

from querycache.core.models import CacheOptions


class NamedQueryDefinition(BaseModel):
    """Stored, reusable query template with its own cache configuration.

    Placeholders in ``parameterized_text`` are written ``:name``.

    Attributes:
        name: Registry key
        parameterized_text: Query template
        allowed_parameter_names: Names a caller may bind
        default_options: Cache options for every resolution
        active: Inactive definitions refuse to resolve
        max_results: Row cap, overrides default_options.max_results when set
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1)
    parameterized_text: str = Field(..., min_length=1)
    allowed_parameter_names: frozenset[str] = Field(default_factory=frozenset)
    default_options: CacheOptions = Field(default_factory=CacheOptions)
    active: bool = True
    max_results: int | None = Field(default=None, gt=0)

    @property
    def options(self) -> CacheOptions:
        """Cache options with the definition's row cap applied."""
        if self.max_results is None:
            return self.default_options
        return self.default_options.model_copy(
            update={"max_results": self.max_results}
        )
