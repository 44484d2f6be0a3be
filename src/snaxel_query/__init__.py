"""Multi-source web scraping with bounded concurrent fan-out."""

from .config import settings
from .engine import QueryEngine
from .exceptions import AggregateCallError, BrowserError, ExhaustedRetryError, SnaxelQueryError, TransientFetchError
from .gate import ConcurrencyGate
from .models import AggregateResult, QueryOptions, ResultRecord, SourceFailure, SourceSuccess, Summary
from .renderer import BrowserRenderer, PageRenderer
from .retry import RetryPolicy, retry_with_backoff
from .summary import summarize

__all__ = [
    "settings",
    "QueryEngine",
    "ConcurrencyGate",
    "RetryPolicy",
    "retry_with_backoff",
    "summarize",
    "BrowserRenderer",
    "PageRenderer",
    "QueryOptions",
    "ResultRecord",
    "SourceSuccess",
    "SourceFailure",
    "AggregateResult",
    "Summary",
    "SnaxelQueryError",
    "TransientFetchError",
    "ExhaustedRetryError",
    "AggregateCallError",
    "BrowserError",
]
