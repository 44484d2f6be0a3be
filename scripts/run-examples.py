#!/usr/bin/env python3
"""
Live walkthrough of every query operation.
Runs each source once, then a fan-out with summary.
Logs results to ~/.config/snaxel-query/example-runs.log
"""

import asyncio
import json
from datetime import datetime
from pathlib import Path

from snaxel_query import QueryEngine, settings, summarize
from snaxel_query.exceptions import SnaxelQueryError

LOG_FILE = Path.home() / ".config" / "snaxel-query" / "example-runs.log"

EXAMPLES = [
    {"name": "web", "query": "Python best practices", "limit": 5},
    {"name": "images", "query": "sunset mountains", "limit": 5},
    {"name": "videos", "query": "python tutorial", "limit": 3},
    {"name": "news", "query": "artificial intelligence", "limit": 5},
    {"name": "books", "query": "clean code", "limit": 3},
]


def log(line: str) -> None:
    LOG_FILE.parent.mkdir(parents=True, exist_ok=True)
    with open(LOG_FILE, "a") as f:
        f.write(f"{datetime.now().isoformat()} {line}\n")
    print(line)


async def run_example(engine: QueryEngine, case: dict) -> bool:
    log(f"{case['name']}:start query={case['query']!r}")
    try:
        outcome = await engine.get_results(case["name"], case["query"], {"limit": case["limit"]})
    except SnaxelQueryError as e:
        log(f"{case['name']}:error {e}")
        return False

    top = outcome.results[0].title if outcome.results else "(none)"
    log(f"{case['name']}:ok results={len(outcome.results)} top={top!r}")
    return True


async def main() -> None:
    passed = 0
    async with QueryEngine.from_settings(settings) as engine:
        for case in EXAMPLES:
            if await run_example(engine, case):
                passed += 1

        log("all:start query='machine learning'")
        aggregate = await engine.query_all_sources("machine learning", {"limit": 3})
        log(f"all:done succeeded={aggregate.succeeded} failed={aggregate.failed}")
        print(json.dumps(summarize(aggregate).model_dump(mode="json"), indent=2))

    log(f"summary: {passed}/{len(EXAMPLES)} single-source examples succeeded")


if __name__ == "__main__":
    asyncio.run(main())
