"""Base class for per-source fetchers."""

import logging
from abc import ABC, abstractmethod
from datetime import UTC, datetime
from urllib.parse import quote_plus

from bs4 import BeautifulSoup, Tag

from ..exceptions import ExhaustedRetryError, TransientFetchError
from ..models import QueryOptions, ResultRecord, SourceSuccess
from ..renderer import PageRenderer
from ..retry import RetryPolicy

logger = logging.getLogger(__name__)


def encode_query(query: str) -> str:
    """URL-encode a query for use as a query-string value."""
    return quote_plus(query)


def text_of(node: Tag | None) -> str:
    """Whitespace-trimmed text of ``node``, empty when missing."""
    if node is None:
        return ""
    return node.get_text(" ", strip=True)


def attr_of(node: Tag | None, name: str) -> str:
    """String value of an attribute, empty when missing."""
    if node is None:
        return ""
    value = node.get(name)
    if isinstance(value, list):
        return " ".join(value)
    return value or ""


class Fetcher(ABC):
    """Turns a query into normalized results for one upstream site.

    Subclasses provide the search URL and the HTML parsing; ``fetch`` adds
    rendering and retry-with-backoff around them.
    """

    name: str  # registry key, e.g. "web"
    source: str  # upstream provider tag, e.g. "duckduckgo"
    default_limit: int = 10
    allow_images: bool = False
    settle_seconds: float = 0.0

    def __init__(self, renderer: PageRenderer, retry_policy: RetryPolicy | None = None):
        self.renderer = renderer
        self.retry_policy = retry_policy or RetryPolicy()

    @abstractmethod
    def build_url(self, query: str, options: QueryOptions) -> str:
        """Search URL for ``query``."""

    @abstractmethod
    def parse(self, html: str, limit: int) -> list[ResultRecord]:
        """Extract at most ``limit`` results from rendered HTML."""

    def soup(self, html: str) -> BeautifulSoup:
        return BeautifulSoup(html, "html.parser")

    async def fetch_once(self, query: str, options: QueryOptions) -> SourceSuccess:
        """Single attempt: render the search page and parse it."""
        url = self.build_url(query, options)
        html = await self.renderer.render(url, allow_images=self.allow_images, settle_seconds=self.settle_seconds)
        results = self.parse(html, options.resolve_limit(self.default_limit))
        logger.debug(f"{self.name}: parsed {len(results)} results from {url}")
        return SourceSuccess(source=self.source, query=query, results=results, timestamp=datetime.now(UTC))

    async def fetch(self, query: str, options: QueryOptions | None = None) -> SourceSuccess:
        """Fetch results, retrying failed attempts with exponential backoff.

        Raises:
            ExhaustedRetryError: If every attempt failed, chained from the last failure.
        """
        options = options or QueryOptions()
        attempt = 0

        async def attempt_once() -> SourceSuccess:
            nonlocal attempt
            attempt += 1
            try:
                return await self.fetch_once(query, options)
            except Exception as e:
                raise TransientFetchError(self.name, attempt, e) from e

        try:
            return await self.retry_policy.run(attempt_once)
        except TransientFetchError as e:
            raise ExhaustedRetryError(self.name, attempt, e.cause) from e.cause
