"""Bing image search.

Each ``.iusc`` tile carries its metadata as JSON in the ``m`` attribute.
"""

import json
import logging

from ..models import QueryOptions, ResultRecord
from .base import Fetcher, encode_query

logger = logging.getLogger(__name__)


class ImageFetcher(Fetcher):
    name = "images"
    source = "bing_images"
    default_limit = 20
    allow_images = True
    settle_seconds = 2.0

    def build_url(self, query: str, options: QueryOptions) -> str:
        url = f"https://www.bing.com/images/search?q={encode_query(query)}&first=1"
        if not options.safe_search:
            url += "&adlt=off"
        return url

    def parse(self, html: str, limit: int) -> list[ResultRecord]:
        results: list[ResultRecord] = []
        for tile in self.soup(html).select(".iusc")[:limit]:
            raw = tile.get("m")
            if not raw:
                continue
            try:
                data = json.loads(raw)
            except json.JSONDecodeError:
                logger.debug("Skipping image tile with malformed metadata")
                continue
            if not isinstance(data, dict):
                continue

            url = data.get("murl") or data.get("turl")
            if not url:
                continue
            width, height = data.get("mw"), data.get("mh")
            results.append(
                ResultRecord(
                    title=data.get("t") or "",
                    url=url,
                    thumbnail=data.get("turl"),
                    snippet=f"{width}x{height}",
                    meta={
                        "source": data.get("purl") or "",
                        "dimensions": {"width": width, "height": height},
                        "position": len(results) + 1,
                    },
                )
            )
        return results
