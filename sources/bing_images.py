"""
================================================================================
Image Search Aggregator - Bing Images Source
================================================================================
Scrapes bing.com/images/search. Every result tile is an `.iusc` anchor whose
`m` attribute (sometimes `mad` or `data-m`) holds a JSON blob:

    {"murl": full image, "turl": thumbnail, "purl": host page,
     "t": title, "w": width, "h": height, ...}

Tiles without parseable metadata fall back to their inner <img>.
================================================================================
"""

import json
from typing import List, Optional, Dict, Any, Set

from bs4 import BeautifulSoup

from .base import BaseSource, RawResult, UNKNOWN_COPYRIGHT


METADATA_ATTRIBUTES = ('mad', 'm', 'data-m')


def parse_tile_metadata(element) -> Optional[Dict[str, Any]]:
    """First attribute that parses as a JSON object, or None."""
    for attr in METADATA_ATTRIBUTES:
        raw = element.get(attr)
        if not raw:
            continue
        try:
            data = json.loads(raw)
        except ValueError:
            continue
        if isinstance(data, dict):
            return data
    return None


class BingImagesSource(BaseSource):
    """Bing Images (scraping)."""

    id = "bing"
    name = "Bing Images"
    kind = "scraping"
    quota_tier = "heavy"
    request_timeout = 15.0

    SEARCH_URL = "https://www.bing.com/images/search"

    def _search(self, query: str, limit: int) -> List[RawResult]:
        html = self._fetch_text(
            self.SEARCH_URL,
            params={"q": query, "form": "HDRSC2", "first": 1, "count": 150},
        )
        return self.parse_results(html, limit)

    def parse_results(self, html: str, limit: int) -> List[RawResult]:
        soup = BeautifulSoup(html or "", 'html.parser')
        results: List[RawResult] = []
        seen: Set[str] = set()

        for element in soup.select('.iusc'):
            if len(results) >= limit:
                break

            data = parse_tile_metadata(element)
            if data and (data.get('murl') or data.get('mediaurl') or data.get('turl')):
                image_url = data.get('murl') or data.get('mediaurl') or data.get('turl')
                if not image_url.startswith('http') or image_url in seen:
                    continue
                seen.add(image_url)
                results.append(RawResult(
                    image_url=image_url,
                    thumbnail_url=data.get('turl'),
                    source=self.name,
                    title=(data.get('t') or data.get('alt') or data.get('desc')
                           or f"Bing Image {len(results) + 1}"),
                    width=self._to_int(data.get('w') or data.get('width')),
                    height=self._to_int(data.get('h') or data.get('height')),
                    source_page_url=data.get('purl') or data.get('hostPageUrl'),
                    photographer="Various",
                    copyright=dict(UNKNOWN_COPYRIGHT),
                ))
                continue

            if data is None:
                img = element.select_one('img')
                src = (img.get('src') or '') if img else ''
                if not src.startswith('http') or src in seen:
                    continue
                seen.add(src)
                results.append(RawResult(
                    image_url=src,
                    source=self.name,
                    title=(img.get('alt') or f"Bing Image {len(results) + 1}"),
                    photographer="Various",
                    copyright=dict(UNKNOWN_COPYRIGHT),
                ))

        return results
