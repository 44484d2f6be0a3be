"""Per-source fetchers.

Every fetcher renders one site's search page through an injected
``PageRenderer`` and normalizes it into ``ResultRecord``s:

- web: DuckDuckGo HTML results
- images: Bing Images
- videos: YouTube
- news: Bing News
- books: Goodreads
"""

from ..config import FanoutSettings
from ..renderer import PageRenderer
from ..retry import RetryPolicy
from .base import Fetcher
from .books import BookFetcher
from .images import ImageFetcher
from .news import NewsFetcher
from .videos import VideoFetcher
from .web import WebFetcher

FETCHER_CLASSES: list[type[Fetcher]] = [WebFetcher, ImageFetcher, VideoFetcher, NewsFetcher, BookFetcher]

SOURCE_NAMES: tuple[str, ...] = tuple(cls.name for cls in FETCHER_CLASSES)


def retry_policy_from_settings(fanout: FanoutSettings) -> RetryPolicy:
    return RetryPolicy(
        max_attempts=fanout.max_retries,
        base_delay=fanout.retry_delay,
        max_delay=fanout.max_retry_delay,
    )


def build_default_fetchers(renderer: PageRenderer, fanout: FanoutSettings) -> dict[str, Fetcher]:
    """Create the five built-in fetchers sharing one renderer, keyed by source name."""
    policy = retry_policy_from_settings(fanout)
    return {cls.name: cls(renderer, policy) for cls in FETCHER_CLASSES}


__all__ = [
    "Fetcher",
    "WebFetcher",
    "ImageFetcher",
    "VideoFetcher",
    "NewsFetcher",
    "BookFetcher",
    "FETCHER_CLASSES",
    "SOURCE_NAMES",
    "build_default_fetchers",
    "retry_policy_from_settings",
]
