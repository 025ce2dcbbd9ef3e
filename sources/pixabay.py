"""
================================================================================
Image Search Aggregator - Pixabay Source
================================================================================
Pixabay REST API (https://pixabay.com/api/docs/).

Auth: `key` query parameter. Only photos, safesearch on.
================================================================================
"""

from typing import List

from .base import BaseSource, RawResult, free_license


class PixabaySource(BaseSource):
    """Pixabay stock photos."""

    id = "pixabay"
    name = "Pixabay"
    kind = "api"
    quota_tier = "baseline"
    request_timeout = 10.0
    requires_key = True

    API_URL = "https://pixabay.com/api/"
    MAX_PER_PAGE = 200

    def _search(self, query: str, limit: int) -> List[RawResult]:
        data = self._fetch_json(
            self.API_URL,
            params={
                "key": self.api_key,
                "q": query,
                "image_type": "photo",
                # Pixabay rejects per_page < 3
                "per_page": max(3, min(limit, self.MAX_PER_PAGE)),
                "safesearch": "true",
            },
        )

        results = []
        for hit in (data.get("hits") or [])[:limit]:
            image_url = hit.get("fullHDURL") or hit.get("largeImageURL")
            if not image_url:
                continue

            tags = [t.strip() for t in (hit.get("tags") or "").split(",") if t.strip()]
            results.append(RawResult(
                image_url=image_url,
                thumbnail_url=hit.get("webformatURL"),
                source=self.name,
                title=hit.get("tags") or "",
                width=self._to_int(hit.get("imageWidth")),
                height=self._to_int(hit.get("imageHeight")),
                source_page_url=hit.get("pageURL"),
                native_id=str(hit.get("id")) if hit.get("id") is not None else None,
                photographer=hit.get("user") or "Unknown",
                tags=tags,
                copyright=free_license("Pixabay License"),
                byte_size=self._to_int(hit.get("imageSize")),
            ))
        return results
