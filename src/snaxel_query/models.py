"""Data models for queries, per-source outcomes and aggregated results."""

from datetime import UTC, datetime
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class QueryOptions(BaseModel):
    """Per-call query options.

    Unknown keys are kept so individual sources can read their own flags.
    """

    model_config = ConfigDict(frozen=True, extra="allow")

    limit: int | None = Field(default=None, ge=0, description="Maximum results per source (source default when unset)")
    safe_search: bool = True
    recent: bool = True

    def resolve_limit(self, default: int) -> int:
        """Return the explicit limit or the source default."""
        return default if self.limit is None else self.limit

    def extra(self, key: str, default: Any = None) -> Any:
        """Read a source-specific option."""
        return (self.model_extra or {}).get(key, default)


class ResultRecord(BaseModel):
    """A single normalized search result."""

    model_config = ConfigDict(frozen=True)

    title: str
    url: str
    snippet: str | None = None
    thumbnail: str | None = None
    meta: dict[str, Any] = Field(default_factory=dict)


class SourceSuccess(BaseModel):
    """Results returned by one source."""

    model_config = ConfigDict(frozen=True)

    status: Literal["success"] = "success"
    source: str  # upstream provider tag, e.g. duckduckgo
    query: str
    results: list[ResultRecord] = Field(default_factory=list)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))


class SourceFailure(BaseModel):
    """A source whose fetch chain raised."""

    model_config = ConfigDict(frozen=True)

    status: Literal["failure"] = "failure"
    reason: str


SourceOutcome = Annotated[SourceSuccess | SourceFailure, Field(discriminator="status")]


class AggregateResult(BaseModel):
    """Outcome of querying several sources for the same query."""

    model_config = ConfigDict(frozen=True)

    query: str
    timestamp: datetime
    by_source: dict[str, SourceOutcome]

    @property
    def succeeded(self) -> list[str]:
        """Names of sources that returned results."""
        return [name for name, outcome in self.by_source.items() if isinstance(outcome, SourceSuccess)]

    @property
    def failed(self) -> list[str]:
        """Names of sources that failed."""
        return [name for name, outcome in self.by_source.items() if isinstance(outcome, SourceFailure)]


class TopHit(BaseModel):
    title: str
    url: str


class SourceTop(BaseModel):
    source: str
    top: list[TopHit]


class Summary(BaseModel):
    """Counts and previews over an aggregate result."""

    query: str
    total_results: int = 0
    top_results: list[SourceTop] = Field(default_factory=list)
