"""Tests for the query engine and its bounded fan-out."""

import asyncio
import time
from datetime import UTC, datetime

import pytest
from fakes import ActivityTracker, FakeRenderer, StubFetcher, make_records

from snaxel_query.config import AppSettings, FanoutSettings
from snaxel_query.engine import QueryEngine
from snaxel_query.exceptions import AggregateCallError, BrowserError, ExhaustedRetryError
from snaxel_query.models import QueryOptions, SourceFailure, SourceSuccess
from snaxel_query.observability.logging import get_current_source

SOURCES = ["web", "images", "videos", "news", "books"]


def make_engine(fetchers: dict, concurrency: int = 3) -> QueryEngine:
    return QueryEngine(fetchers, concurrency=concurrency)


class TestQueryAllSources:
    @pytest.mark.anyio
    async def test_one_outcome_per_source(self):
        engine = make_engine({name: StubFetcher(name) for name in SOURCES})

        aggregate = await engine.query_all_sources("python", {"limit": 2})

        assert aggregate.query == "python"
        assert list(aggregate.by_source) == SOURCES
        assert all(isinstance(outcome, SourceSuccess) for outcome in aggregate.by_source.values())

    @pytest.mark.anyio
    async def test_all_sources_failing_still_complete(self):
        engine = make_engine({name: StubFetcher(name, error=RuntimeError(f"{name} down")) for name in SOURCES})

        aggregate = await engine.query_all_sources("python")

        assert list(aggregate.by_source) == SOURCES
        assert aggregate.failed == SOURCES
        assert aggregate.by_source["news"] == SourceFailure(reason="news down")

    @pytest.mark.anyio
    async def test_failing_source_is_isolated(self):
        fetchers = {name: StubFetcher(name, delay=0.01) for name in SOURCES}
        fetchers["images"] = StubFetcher("images", error=ValueError("bad html"))
        engine = make_engine(fetchers)

        aggregate = await engine.query_all_sources("python")

        assert aggregate.failed == ["images"]
        assert aggregate.succeeded == ["web", "videos", "news", "books"]
        assert aggregate.by_source["images"].reason == "bad html"
        for name in aggregate.succeeded:
            assert fetchers[name].calls == 1

    @pytest.mark.anyio
    async def test_concurrency_bound_respected(self, tracker: ActivityTracker):
        fetchers = {name: StubFetcher(name, delay=0.02, tracker=tracker) for name in SOURCES}
        engine = make_engine(fetchers, concurrency=2)

        await engine.query_all_sources("python")

        assert tracker.max_active == 2
        assert tracker.started == SOURCES

    @pytest.mark.anyio
    async def test_bound_shared_across_calls(self, tracker: ActivityTracker):
        fetchers = {name: StubFetcher(name, delay=0.02, tracker=tracker) for name in SOURCES}
        engine = make_engine(fetchers, concurrency=3)

        first, second = await asyncio.gather(engine.query_all_sources("a"), engine.query_all_sources("b"))

        assert tracker.max_active == 3
        assert first.query == "a" and second.query == "b"

    @pytest.mark.anyio
    async def test_capacity_one_serializes_sources(self):
        fetchers = {"web": StubFetcher("web", delay=0.01), "news": StubFetcher("news", delay=0.01)}
        engine = make_engine(fetchers, concurrency=1)

        started = time.monotonic()
        aggregate = await engine.query_all_sources("python")
        elapsed = time.monotonic() - started

        assert elapsed >= 0.02 - 0.002
        assert aggregate.succeeded == ["web", "news"]

    @pytest.mark.anyio
    async def test_timestamp_taken_after_all_sources_settle(self):
        engine = make_engine({"web": StubFetcher("web"), "books": StubFetcher("books", delay=0.02)})

        before = datetime.now(UTC)
        aggregate = await engine.query_all_sources("python")

        assert aggregate.timestamp >= aggregate.by_source["books"].timestamp
        assert aggregate.timestamp >= before

    @pytest.mark.anyio
    async def test_subset_of_sources(self):
        fetchers = {name: StubFetcher(name) for name in SOURCES}
        engine = make_engine(fetchers)

        aggregate = await engine.query_all_sources("python", sources=["books", "web"])

        assert list(aggregate.by_source) == ["books", "web"]
        assert fetchers["images"].calls == 0

    @pytest.mark.anyio
    async def test_each_task_binds_its_own_source_context(self):
        seen: dict[str, str | None] = {}

        class ContextFetcher(StubFetcher):
            async def fetch(self, query, options=None):
                await asyncio.sleep(0)
                seen[self.source] = get_current_source()
                return await super().fetch(query, options)

        engine = make_engine({name: ContextFetcher(name) for name in SOURCES}, concurrency=5)
        await engine.query_all_sources("python")

        assert seen == {name: name for name in SOURCES}
        assert get_current_source() is None

    @pytest.mark.anyio
    async def test_exhausted_retries_become_failure(self):
        from snaxel_query.retry import RetryPolicy
        from snaxel_query.sources import WebFetcher

        renderer = FakeRenderer(error=BrowserError("Navigation failed: net::ERR_NAME_NOT_RESOLVED"))
        web = WebFetcher(renderer, RetryPolicy(max_attempts=2, base_delay=0.001))
        engine = make_engine({"web": web, "books": StubFetcher("books")})

        aggregate = await engine.query_all_sources("python")

        failure = aggregate.by_source["web"]
        assert isinstance(failure, SourceFailure)
        assert "failed after 2 attempt(s)" in failure.reason
        assert "ERR_NAME_NOT_RESOLVED" in failure.reason
        assert len(renderer.calls) == 2
        assert isinstance(aggregate.by_source["books"], SourceSuccess)

    @pytest.mark.anyio
    async def test_result_is_json_serializable(self):
        fetchers = {"web": StubFetcher("web", results=make_records(1)), "news": StubFetcher("news", error=RuntimeError("x"))}
        engine = make_engine(fetchers)

        data = (await engine.query_all_sources("python")).model_dump(mode="json")

        assert data["by_source"]["web"]["status"] == "success"
        assert data["by_source"]["web"]["results"][0]["title"] == "r1"
        assert data["by_source"]["news"] == {"status": "failure", "reason": "x"}


class TestInputValidation:
    @pytest.mark.anyio
    @pytest.mark.parametrize("query", ["", "   ", None, 42])
    async def test_malformed_query_raises_before_fan_out(self, query):
        fetchers = {name: StubFetcher(name) for name in SOURCES}
        engine = make_engine(fetchers)

        with pytest.raises(AggregateCallError):
            await engine.query_all_sources(query)

        assert all(f.calls == 0 for f in fetchers.values())

    @pytest.mark.anyio
    async def test_unknown_source(self):
        engine = make_engine({"web": StubFetcher("web")})
        with pytest.raises(AggregateCallError, match="Unknown source"):
            await engine.query_all_sources("python", sources=["web", "podcasts"])

    @pytest.mark.anyio
    async def test_empty_source_selection(self):
        engine = make_engine({"web": StubFetcher("web")})
        with pytest.raises(AggregateCallError, match="At least one source"):
            await engine.query_all_sources("python", sources=[])

    @pytest.mark.anyio
    async def test_invalid_options(self):
        engine = make_engine({"web": StubFetcher("web")})
        with pytest.raises(AggregateCallError, match="Invalid query options"):
            await engine.query_all_sources("python", {"limit": -1})

    def test_requires_fetchers(self):
        with pytest.raises(ValueError):
            QueryEngine({})

    def test_aggregate_call_error_is_value_error(self):
        assert issubclass(AggregateCallError, ValueError)


class TestSingleSource:
    @pytest.mark.anyio
    @pytest.mark.parametrize(
        ("method", "source"),
        [
            ("get_web_results", "web"),
            ("get_image_results", "images"),
            ("get_video_results", "videos"),
            ("get_news_results", "news"),
            ("get_book_results", "books"),
        ],
    )
    async def test_named_operations(self, method, source):
        fetchers = {name: StubFetcher(name) for name in SOURCES}
        engine = make_engine(fetchers)

        outcome = await getattr(engine, method)("python", QueryOptions(limit=2))

        assert outcome.source == source
        assert outcome.query == "python"
        assert fetchers[source].calls == 1
        assert sum(f.calls for f in fetchers.values()) == 1

    @pytest.mark.anyio
    async def test_single_source_raises_on_failure(self):
        from snaxel_query.retry import RetryPolicy
        from snaxel_query.sources import BookFetcher

        renderer = FakeRenderer(error=BrowserError("timeout"))
        engine = make_engine({"books": BookFetcher(renderer, RetryPolicy(max_attempts=3, base_delay=0.001))})

        with pytest.raises(ExhaustedRetryError) as exc_info:
            await engine.get_book_results("dune")

        assert exc_info.value.attempts == 3
        assert isinstance(exc_info.value.__cause__, BrowserError)

    @pytest.mark.anyio
    async def test_unknown_single_source(self):
        engine = make_engine({"web": StubFetcher("web")})
        with pytest.raises(AggregateCallError):
            await engine.get_results("maps", "python")


class TestLifecycle:
    @pytest.mark.anyio
    async def test_from_settings_registers_five_sources(self):
        renderer = FakeRenderer()
        app_settings = AppSettings(fanout=FanoutSettings(concurrency=2, max_retries=4, retry_delay=0.5))

        engine = QueryEngine.from_settings(app_settings, renderer=renderer)

        assert engine.source_names == SOURCES
        assert engine.gate.capacity == 2
        assert engine.fetchers["web"].retry_policy.max_attempts == 4
        assert engine.fetchers["news"].renderer is renderer

    @pytest.mark.anyio
    async def test_close_releases_renderer(self):
        renderer = FakeRenderer()
        async with QueryEngine({"web": StubFetcher("web")}, renderer=renderer):
            pass
        assert renderer.closed
