"""Utilities for persisting query results."""

import json
import logging
import re
from datetime import datetime
from pathlib import Path

from pydantic import BaseModel

from .config import settings

logger = logging.getLogger(__name__)


def save_query_result(
    result: BaseModel,
    query: str,
    prefix: str = "query",
    results_dir: Path | None = None,
) -> Path:
    """Save a query result as JSON in the results directory.

    Args:
        result: Any result model (AggregateResult, SourceSuccess, Summary).
        query: The query, used in the filename.
        prefix: Filename prefix (e.g., 'all', 'web').
        results_dir: Target directory (defaults to the configured results directory).

    Returns:
        Path to the saved file.
    """
    if results_dir is None:
        results_dir = settings.get_results_dir()
    results_dir.mkdir(parents=True, exist_ok=True)

    # Include microseconds to avoid collisions when called multiple times per second.
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")

    # Sanitize for filesystem
    safe_prefix = re.sub(r"[^\w\-]", "_", prefix)[:30]
    safe_query = re.sub(r"[^\w\-]", "_", query)[:40]
    base = f"{timestamp}_{safe_prefix}_{safe_query}"
    file_path = results_dir / f"{base}.json"
    if file_path.exists():
        for i in range(1, 10_000):
            candidate = results_dir / f"{base}_{i}.json"
            if not candidate.exists():
                file_path = candidate
                break
        else:
            raise RuntimeError("Failed to allocate a unique result filename after 10,000 attempts")

    file_path.write_text(json.dumps(result.model_dump(mode="json"), indent=2, ensure_ascii=False), encoding="utf-8")

    logger.info(f"Saved result to {file_path}")
    return file_path
