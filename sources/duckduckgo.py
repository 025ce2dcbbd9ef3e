"""
================================================================================
Image Search Aggregator - DuckDuckGo Images Source
================================================================================
Two-step scrape:
  1. GET duckduckgo.com/?q=... and pull the `vqd` anti-bot token out of the
     page (its position in the markup moves around, so several patterns)
  2. GET duckduckgo.com/i.js with that token, which returns JSON

Copyright of results is unknown; the image lives on a third-party site.
================================================================================
"""

import re
from typing import List, Optional

from .base import BaseSource, RawResult, UNKNOWN_COPYRIGHT


VQD_PATTERNS = [
    re.compile(r'vqd=[\'"]([^\'"]*)[\'"]'),
    re.compile(r'vqd=([a-zA-Z0-9\-_]+)'),
    re.compile(r'"vqd":"([^"]*?)"'),
    re.compile(r'vqd:\s*[\'"]([^\'"]*)[\'"]'),
]


def extract_vqd(html: str) -> Optional[str]:
    """First non-empty vqd token in the landing page, or None."""
    for pattern in VQD_PATTERNS:
        match = pattern.search(html or "")
        if match and match.group(1):
            return match.group(1)
    return None


class DuckDuckGoSource(BaseSource):
    """DuckDuckGo image search (scraping)."""

    id = "duckduckgo"
    name = "DuckDuckGo"
    kind = "scraping"
    quota_tier = "baseline"
    request_timeout = 15.0

    BASE_URL = "https://duckduckgo.com/"
    IMAGES_URL = "https://duckduckgo.com/i.js"

    def _search(self, query: str, limit: int) -> List[RawResult]:
        html = self._fetch_text(self.BASE_URL, params={"q": query})
        vqd = extract_vqd(html)
        if not vqd:
            raise RuntimeError("Could not extract vqd token")

        data = self._fetch_json(
            self.IMAGES_URL,
            params={
                "l": "us-en",
                "o": "json",
                "q": query,
                "vqd": vqd,
                "f": ",,,",
                "p": "1",
            },
            headers={
                "Accept": "application/json, text/javascript, */*; q=0.01",
                "Referer": self.BASE_URL,
                "X-Requested-With": "XMLHttpRequest",
            },
        )

        results = []
        for item in (data.get("results") or [])[:limit]:
            image_url = item.get("image")
            if not image_url:
                continue
            results.append(RawResult(
                image_url=image_url,
                thumbnail_url=item.get("thumbnail"),
                source=self.name,
                title=item.get("title") or query,
                width=self._to_int(item.get("width")),
                height=self._to_int(item.get("height")),
                source_page_url=item.get("url"),
                photographer="Various",
                copyright=dict(UNKNOWN_COPYRIGHT),
            ))
        return results
