"""Bing News search."""

from ..models import QueryOptions, ResultRecord
from .base import Fetcher, attr_of, encode_query, text_of

BING_ORIGIN = "https://www.bing.com"


class NewsFetcher(Fetcher):
    name = "news"
    source = "bing_news"
    default_limit = 10

    def build_url(self, query: str, options: QueryOptions) -> str:
        url = f"{BING_ORIGIN}/news/search?q={encode_query(query)}"
        if options.recent:
            url += "&qft=sortbydate%3d%221%22"
        return url

    def parse(self, html: str, limit: int) -> list[ResultRecord]:
        results: list[ResultRecord] = []
        for position, card in enumerate(self.soup(html).select(".news-card")[:limit], start=1):
            title = text_of(card.select_one(".title"))
            url = attr_of(card.select_one("a.title"), "href")
            if not title or not url:
                continue
            published = card.select(".source span")
            results.append(
                ResultRecord(
                    title=title,
                    url=url if url.startswith("http") else f"{BING_ORIGIN}{url}",
                    snippet=text_of(card.select_one(".snippet")),
                    meta={
                        "source": text_of(card.select_one(".source")),
                        "timestamp": text_of(published[-1]) if published else "",
                        "position": position,
                    },
                )
            )
        return results
