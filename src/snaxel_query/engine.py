"""Query engine: single-source queries and bounded fan-out across sources."""

import asyncio
import logging
import uuid
from collections.abc import Iterable, Mapping
from datetime import UTC, datetime
from typing import Any, Optional, Protocol

from pydantic import ValidationError

from .config import AppSettings
from .exceptions import AggregateCallError
from .gate import ConcurrencyGate
from .models import AggregateResult, QueryOptions, SourceFailure, SourceOutcome, SourceSuccess
from .observability.logging import bind_query_context, clear_query_context, get_query_logger
from .renderer import BrowserRenderer, PageRenderer
from .sources import build_default_fetchers

logger = logging.getLogger(__name__)

OptionsLike = QueryOptions | Mapping[str, Any] | None


class SourceFetcher(Protocol):
    """Anything that can fetch one source's results for a query."""

    async def fetch(self, query: str, options: QueryOptions | None = None) -> SourceSuccess: ...


def failure_reason(error: BaseException) -> str:
    """Human-readable reason for a failed source."""
    if isinstance(error, asyncio.CancelledError):
        return "cancelled"
    return str(error) or type(error).__name__


class QueryEngine:
    """Runs queries against registered sources.

    All fan-out calls on one engine share a single ``ConcurrencyGate``, so
    ``concurrency`` bounds the number of fetches in flight across the engine.

    Usage:
        engine = QueryEngine.from_settings(settings)
        try:
            aggregate = await engine.query_all_sources("machine learning", {"limit": 3})
        finally:
            await engine.close()
    """

    def __init__(
        self,
        fetchers: Mapping[str, SourceFetcher],
        concurrency: int = 3,
        renderer: Optional[PageRenderer] = None,
    ):
        """Initialize engine.

        Args:
            fetchers: Source name to fetcher, in fan-out order
            concurrency: Maximum number of fetches running at once
            renderer: Renderer shared by the fetchers, closed by ``close()``
        """
        if not fetchers:
            raise ValueError("At least one source fetcher is required")
        self.fetchers: dict[str, SourceFetcher] = dict(fetchers)
        self.gate = ConcurrencyGate(concurrency)
        self.renderer = renderer

    @classmethod
    def from_settings(cls, app_settings: AppSettings, renderer: Optional[PageRenderer] = None) -> "QueryEngine":
        """Build an engine with the five built-in sources."""
        if renderer is None:
            renderer = BrowserRenderer(app_settings.browser)
        fetchers = build_default_fetchers(renderer, app_settings.fanout)
        return cls(fetchers, concurrency=app_settings.fanout.concurrency, renderer=renderer)

    @property
    def source_names(self) -> list[str]:
        return list(self.fetchers)

    async def close(self) -> None:
        if self.renderer is not None:
            await self.renderer.close()

    async def __aenter__(self) -> "QueryEngine":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    # --- Input validation ---

    def _validate_query(self, query: Any) -> str:
        if not isinstance(query, str) or not query.strip():
            raise AggregateCallError(f"Query must be a non-empty string, got {query!r}")
        return query

    def _coerce_options(self, options: OptionsLike) -> QueryOptions:
        if options is None:
            return QueryOptions()
        if isinstance(options, QueryOptions):
            return options
        try:
            return QueryOptions(**dict(options))
        except (TypeError, ValidationError) as e:
            raise AggregateCallError(f"Invalid query options: {e}") from e

    def _resolve_sources(self, sources: Iterable[str] | None) -> list[str]:
        if sources is None:
            return self.source_names
        names = list(dict.fromkeys(sources))
        if not names:
            raise AggregateCallError("At least one source must be selected")
        unknown = [name for name in names if name not in self.fetchers]
        if unknown:
            raise AggregateCallError(f"Unknown source(s): {', '.join(unknown)}. Available: {', '.join(self.fetchers)}")
        return names

    # --- Single-source queries ---

    async def get_results(self, source: str, query: str, options: OptionsLike = None) -> SourceSuccess:
        """Query one source directly, without the gate.

        Raises:
            AggregateCallError: If the query, options or source name are invalid.
            ExhaustedRetryError: If every attempt for the source failed.
        """
        query = self._validate_query(query)
        (name,) = self._resolve_sources([source])
        return await self.fetchers[name].fetch(query, self._coerce_options(options))

    async def get_web_results(self, query: str, options: OptionsLike = None) -> SourceSuccess:
        return await self.get_results("web", query, options)

    async def get_image_results(self, query: str, options: OptionsLike = None) -> SourceSuccess:
        return await self.get_results("images", query, options)

    async def get_video_results(self, query: str, options: OptionsLike = None) -> SourceSuccess:
        return await self.get_results("videos", query, options)

    async def get_news_results(self, query: str, options: OptionsLike = None) -> SourceSuccess:
        return await self.get_results("news", query, options)

    async def get_book_results(self, query: str, options: OptionsLike = None) -> SourceSuccess:
        return await self.get_results("books", query, options)

    # --- Fan-out ---

    async def _run_source(self, query_id: str, name: str, query: str, options: QueryOptions) -> SourceOutcome:
        """Fetch one source through the gate, converting any failure into a SourceFailure."""
        bind_query_context(query_id, name)
        task_logger = get_query_logger()
        fetcher = self.fetchers[name]
        try:
            outcome = await self.gate.run(lambda: fetcher.fetch(query, options))
            task_logger.info("source_completed", results=len(outcome.results))
            return outcome
        except Exception as e:
            task_logger.warning("source_failed", error=failure_reason(e))
            return SourceFailure(reason=failure_reason(e))
        finally:
            clear_query_context()

    async def query_all_sources(
        self,
        query: str,
        options: OptionsLike = None,
        sources: Iterable[str] | None = None,
    ) -> AggregateResult:
        """Query every selected source concurrently and collect all outcomes.

        Each source runs as its own task behind the engine's gate. A failing
        source becomes a ``SourceFailure`` entry and never cancels or hides
        the others; the call waits for the slowest source.

        Args:
            query: Search query
            options: Query options shared by all sources
            sources: Source names to query (default: all registered sources)

        Returns:
            AggregateResult with exactly one outcome per selected source

        Raises:
            AggregateCallError: For malformed input, before any source is queried.
        """
        query = self._validate_query(query)
        query_options = self._coerce_options(options)
        names = self._resolve_sources(sources)
        query_id = uuid.uuid4().hex[:12]

        logger.info(f"Querying {len(names)} source(s) for '{query}' (concurrency={self.gate.capacity})")

        settled = await asyncio.gather(
            *(self._run_source(query_id, name, query, query_options) for name in names),
            return_exceptions=True,
        )

        by_source: dict[str, SourceOutcome] = {}
        for name, value in zip(names, settled, strict=True):
            if isinstance(value, BaseException):
                by_source[name] = SourceFailure(reason=failure_reason(value))
            else:
                by_source[name] = value

        aggregate = AggregateResult(query=query, timestamp=datetime.now(UTC), by_source=by_source)
        logger.info(f"Query '{query}' finished: {len(aggregate.succeeded)} succeeded, {len(aggregate.failed)} failed")
        return aggregate
