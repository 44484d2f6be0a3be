"""YouTube video search, read from the rendered ``ytd-video-renderer`` elements."""

from ..models import QueryOptions, ResultRecord
from .base import Fetcher, attr_of, encode_query, text_of

YOUTUBE_ORIGIN = "https://www.youtube.com"


class VideoFetcher(Fetcher):
    name = "videos"
    source = "youtube"
    default_limit = 10
    settle_seconds = 2.0

    def build_url(self, query: str, options: QueryOptions) -> str:
        return f"{YOUTUBE_ORIGIN}/results?search_query={encode_query(query)}"

    def parse(self, html: str, limit: int) -> list[ResultRecord]:
        results: list[ResultRecord] = []
        for item in self.soup(html).select("ytd-video-renderer")[:limit]:
            title_node = item.select_one("#video-title")
            if title_node is None:
                continue
            title = attr_of(title_node, "title") or text_of(title_node)
            channel = text_of(item.select_one("#channel-name a"))
            duration = text_of(item.select_one("span.ytd-thumbnail-overlay-time-status-renderer"))
            results.append(
                ResultRecord(
                    title=title,
                    url=YOUTUBE_ORIGIN + attr_of(title_node, "href"),
                    snippet=f"Channel: {channel}",
                    thumbnail=attr_of(item.select_one("img"), "src"),
                    meta={"channel": channel, "duration": duration, "position": len(results) + 1},
                )
            )
        return results
