"""Goodreads book search."""

from ..models import QueryOptions, ResultRecord
from .base import Fetcher, attr_of, encode_query, text_of

GOODREADS_ORIGIN = "https://www.goodreads.com"


class BookFetcher(Fetcher):
    name = "books"
    source = "goodreads"
    default_limit = 10

    def build_url(self, query: str, options: QueryOptions) -> str:
        return f"{GOODREADS_ORIGIN}/search?q={encode_query(query)}"

    def parse(self, html: str, limit: int) -> list[ResultRecord]:
        results: list[ResultRecord] = []
        rows = self.soup(html).select('tr[itemtype="http://schema.org/Book"]')
        for position, row in enumerate(rows[:limit], start=1):
            title = text_of(row.select_one(".bookTitle span"))
            if not title:
                continue
            author = text_of(row.select_one(".authorName span"))
            rating = text_of(row.select_one(".minirating"))
            results.append(
                ResultRecord(
                    title=title,
                    url=GOODREADS_ORIGIN + attr_of(row.select_one(".bookTitle"), "href"),
                    snippet=f"By {author} • {rating}",
                    thumbnail=attr_of(row.select_one("img.bookCover"), "src"),
                    meta={"author": author, "rating": rating, "position": position},
                )
            )
        return results
