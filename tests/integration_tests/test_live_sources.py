"""End-to-end tests against the real sites.

These tests require:
- Chromium available to browser-use
- Network access

Enable with SNAXEL_E2E=1. Mark: @pytest.mark.e2e
"""

import os

import pytest

from snaxel_query.config import AppSettings
from snaxel_query.engine import QueryEngine
from snaxel_query.models import SourceSuccess
from snaxel_query.summary import summarize

pytestmark = [
    pytest.mark.e2e,
    pytest.mark.skipif(os.environ.get("SNAXEL_E2E") != "1", reason="Set SNAXEL_E2E=1 to run live browser tests"),
]


@pytest.fixture
async def engine():
    engine = QueryEngine.from_settings(AppSettings())
    try:
        yield engine
    finally:
        await engine.close()


@pytest.mark.anyio
@pytest.mark.slow
async def test_web_search(engine: QueryEngine):
    outcome = await engine.get_web_results("python programming", {"limit": 5})

    assert outcome.source == "duckduckgo"
    assert outcome.query == "python programming"
    assert outcome.results
    assert outcome.results[0].title
    assert outcome.results[0].url.startswith("http")


@pytest.mark.anyio
@pytest.mark.slow
async def test_query_all_sources(engine: QueryEngine):
    aggregate = await engine.query_all_sources("machine learning", {"limit": 2})

    assert list(aggregate.by_source) == ["web", "images", "videos", "news", "books"]
    # Individual sites may block automated browsers; at least one should answer
    assert any(isinstance(outcome, SourceSuccess) for outcome in aggregate.by_source.values())

    summary = summarize(aggregate)
    assert summary.query == "machine learning"
    assert summary.total_results >= 0
