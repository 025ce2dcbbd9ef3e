"""
================================================================================
Image Search Aggregator - Google Images Source
================================================================================
Scrapes the static Google Images results page (tbm=isch).

Two extraction passes over the same HTML:
  1. <a href="/imgres?imgurl=...&imgrefurl=...&w=...&h=..."> links
  2. Inline script data of the form ["https://full.jpg",<height>,<width>]

Thumbnails served from Google's own CDN (encrypted-tbn, gstatic) are skipped;
we want the original image on the publisher's site.
================================================================================
"""

import re
import json
from typing import List, Set
from urllib.parse import urlparse, parse_qs

from bs4 import BeautifulSoup

from .base import BaseSource, RawResult, UNKNOWN_COPYRIGHT


LOW_QUALITY_PATTERNS = (
    'encrypted-tbn',
    'gstatic.com/images?q=tbn',
    'fonts.gstatic.com',
    'ssl.gstatic.com/ui',
)

# ["https://example.com/cat.jpg",1080,1920]  -> url, height, width
SCRIPT_IMAGE_PATTERN = re.compile(
    r'\["(https?://[^"]+?\.(?:jpe?g|png|webp|gif)[^"]*)",(\d+),(\d+)\]',
    re.IGNORECASE,
)


def is_high_quality_url(url: str) -> bool:
    if not url or not url.startswith('http'):
        return False
    return not any(pattern in url for pattern in LOW_QUALITY_PATTERNS)


class GoogleImagesSource(BaseSource):
    """Google Images (scraping)."""

    id = "google"
    name = "Google Images"
    kind = "scraping"
    quota_tier = "heavy"
    request_timeout = 15.0

    SEARCH_URL = "https://www.google.com/search"

    def _search(self, query: str, limit: int) -> List[RawResult]:
        html = self._fetch_text(
            self.SEARCH_URL,
            params={"q": query, "tbm": "isch", "hl": "en", "safe": "off"},
        )
        return self.parse_results(html, query, limit)

    def parse_results(self, html: str, query: str, limit: int) -> List[RawResult]:
        """Extract candidates from a results page."""
        soup = BeautifulSoup(html or "", 'html.parser')
        results: List[RawResult] = []
        seen: Set[str] = set()

        # Pass 1: /imgres links
        for link in soup.select('a[href*="/imgres"]'):
            if len(results) >= limit:
                return results

            qs = parse_qs(urlparse(link.get('href', '')).query)
            image_url = (qs.get('imgurl') or [''])[0]
            if not is_high_quality_url(image_url) or image_url in seen:
                continue
            seen.add(image_url)

            img = link.select_one('img')
            alt = (img.get('alt') or '').strip() if img else ''
            results.append(self._make_result(
                image_url,
                title=f"{alt} - {query}" if alt else query,
                width=self._to_int((qs.get('w') or [None])[0]),
                height=self._to_int((qs.get('h') or [None])[0]),
                page_url=(qs.get('imgrefurl') or [None])[0],
                thumbnail=img.get('src') if img else None,
            ))

        # Pass 2: inline script data
        for script in soup.find_all('script'):
            text = script.string or ''
            for match in SCRIPT_IMAGE_PATTERN.finditer(text):
                if len(results) >= limit:
                    return results
                image_url = self._decode_js_string(match.group(1))
                if not is_high_quality_url(image_url) or image_url in seen:
                    continue
                seen.add(image_url)
                results.append(self._make_result(
                    image_url,
                    title=query,
                    width=self._to_int(match.group(3)),
                    height=self._to_int(match.group(2)),
                ))

        return results

    def _make_result(self, image_url, title, width=None, height=None,
                     page_url=None, thumbnail=None) -> RawResult:
        return RawResult(
            image_url=image_url,
            thumbnail_url=thumbnail if thumbnail and thumbnail.startswith('http') else None,
            source=self.name,
            title=title,
            width=width,
            height=height,
            source_page_url=page_url,
            photographer="Various",
            copyright=dict(UNKNOWN_COPYRIGHT),
        )

    @staticmethod
    def _decode_js_string(value: str) -> str:
        """Undo \\u003d-style escapes in script literals."""
        try:
            return json.loads(f'"{value}"')
        except ValueError:
            return value
