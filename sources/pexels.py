"""
================================================================================
Image Search Aggregator - Pexels Source
================================================================================
Pexels REST API (https://www.pexels.com/api/).

Auth: API key in the `Authorization` header (no "Bearer" prefix).
Page size is capped at 80 by the API.
================================================================================
"""

from typing import List

from .base import BaseSource, RawResult, free_license


class PexelsSource(BaseSource):
    """Pexels stock photos."""

    id = "pexels"
    name = "Pexels"
    kind = "api"
    quota_tier = "baseline"
    request_timeout = 10.0
    requires_key = True

    API_URL = "https://api.pexels.com/v1/search"
    MAX_PER_PAGE = 80

    def _search(self, query: str, limit: int) -> List[RawResult]:
        data = self._fetch_json(
            self.API_URL,
            params={"query": query, "per_page": min(limit, self.MAX_PER_PAGE)},
            headers={"Authorization": self.api_key, "Accept": "application/json"},
        )

        results = []
        for photo in (data.get("photos") or [])[:limit]:
            src = photo.get("src") or {}
            image_url = src.get("original") or src.get("large2x") or src.get("large")
            if not image_url:
                continue

            photographer = photo.get("photographer") or "Unknown"
            results.append(RawResult(
                image_url=image_url,
                thumbnail_url=src.get("medium"),
                source=self.name,
                title=photo.get("alt") or f"Photo by {photographer}",
                width=self._to_int(photo.get("width")),
                height=self._to_int(photo.get("height")),
                source_page_url=f"https://www.pexels.com/photo/{photo.get('id')}/",
                native_id=str(photo.get("id")) if photo.get("id") is not None else None,
                photographer=photographer,
                copyright=free_license("Pexels License"),
            ))
        return results
