"""
================================================================================
Image Search Aggregator - Unsplash Source
================================================================================
Unsplash REST API (https://unsplash.com/documentation).

Auth: `Authorization: Client-ID <access key>`. Page size capped at 50.
================================================================================
"""

from typing import List

from .base import BaseSource, RawResult, free_license


class UnsplashSource(BaseSource):
    """Unsplash stock photos."""

    id = "unsplash"
    name = "Unsplash"
    kind = "api"
    quota_tier = "baseline"
    request_timeout = 10.0
    requires_key = True

    API_URL = "https://api.unsplash.com/search/photos"
    MAX_PER_PAGE = 50

    def _search(self, query: str, limit: int) -> List[RawResult]:
        data = self._fetch_json(
            self.API_URL,
            params={"query": query, "per_page": min(limit, self.MAX_PER_PAGE)},
            headers={
                "Authorization": f"Client-ID {self.api_key}",
                "Accept-Version": "v1",
                "Accept": "application/json",
            },
        )

        results = []
        for photo in (data.get("results") or [])[:limit]:
            urls = photo.get("urls") or {}
            image_url = urls.get("full") or urls.get("raw") or urls.get("regular")
            if not image_url:
                continue

            user = photo.get("user") or {}
            photographer = user.get("name") or "Unknown"
            tags = [t.get("title") for t in (photo.get("tags") or [])
                    if isinstance(t, dict) and t.get("title")]
            results.append(RawResult(
                image_url=image_url,
                thumbnail_url=urls.get("small"),
                source=self.name,
                title=(photo.get("description") or photo.get("alt_description")
                       or f"Photo by {photographer}"),
                width=self._to_int(photo.get("width")),
                height=self._to_int(photo.get("height")),
                source_page_url=(photo.get("links") or {}).get("html"),
                native_id=photo.get("id"),
                photographer=photographer,
                tags=tags,
                copyright=free_license("Unsplash License"),
            ))
        return results
