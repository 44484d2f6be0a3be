"""DuckDuckGo HTML web search."""

from ..models import QueryOptions, ResultRecord
from .base import Fetcher, attr_of, encode_query, text_of


class WebFetcher(Fetcher):
    name = "web"
    source = "duckduckgo"
    default_limit = 10

    def build_url(self, query: str, options: QueryOptions) -> str:
        return f"https://html.duckduckgo.com/html/?q={encode_query(query)}"

    def parse(self, html: str, limit: int) -> list[ResultRecord]:
        results: list[ResultRecord] = []
        for position, item in enumerate(self.soup(html).select(".result")[:limit], start=1):
            title = text_of(item.select_one(".result__title"))
            url = attr_of(item.select_one(".result__url"), "href").strip()
            if not title or not url:
                continue
            results.append(
                ResultRecord(
                    title=title,
                    url=url if url.startswith("http") else f"https://{url}",
                    snippet=text_of(item.select_one(".result__snippet")),
                    meta={"position": position},
                )
            )
        return results
