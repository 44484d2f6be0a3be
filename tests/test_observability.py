"""Tests for per-query logging context."""

import asyncio

import pytest

from snaxel_query.observability import bind_query_context, clear_query_context, get_current_query_id, get_current_source


@pytest.mark.anyio
async def test_query_context_isolated_between_tasks():
    """Each async task should see only its own bound source."""

    async def worker(source: str) -> None:
        bind_query_context("q-1", source)
        await asyncio.sleep(0)
        assert get_current_source() == source
        assert get_current_query_id() == "q-1"
        clear_query_context()
        await asyncio.sleep(0)
        assert get_current_source() is None

    await asyncio.gather(worker("web"), worker("books"))
    assert get_current_query_id() is None
