"""
================================================================================
Image Search Aggregator - Wikimedia Commons Source
================================================================================
MediaWiki action API on commons.wikimedia.org. No key required.

Searches the File: namespace (6) with generator=search and pulls
imageinfo (url, size, mime, 300px thumbnail) in the same request.
================================================================================
"""

from typing import List

from .base import BaseSource, RawResult, free_license


class WikimediaSource(BaseSource):
    """Wikimedia Commons media search."""

    id = "wikimedia"
    name = "Wikimedia Commons"
    kind = "api"
    quota_tier = "baseline"
    request_timeout = 10.0
    requires_key = False

    API_URL = "https://commons.wikimedia.org/w/api.php"
    # MediaWiki etiquette: identify the client
    USER_AGENT = "ImageSearchAggregator/1.0 (image search aggregator)"

    def _search(self, query: str, limit: int) -> List[RawResult]:
        data = self._fetch_json(
            self.API_URL,
            params={
                "action": "query",
                "format": "json",
                "generator": "search",
                "gsrnamespace": 6,
                "gsrsearch": query,
                "gsrlimit": min(limit, 50),
                "prop": "imageinfo",
                "iiprop": "url|size|mime",
                "iiurlwidth": 300,
            },
            headers={"User-Agent": self.USER_AGENT},
        )

        pages = ((data.get("query") or {}).get("pages") or {}).values()
        results = []
        for page in pages:
            infos = page.get("imageinfo") or []
            if not infos:
                continue
            info = infos[0]
            image_url = info.get("url")
            if not image_url:
                continue

            mime = info.get("mime") or ""
            if mime and not mime.startswith("image/"):
                continue

            title = (page.get("title") or "").replace("File:", "", 1)
            results.append(RawResult(
                image_url=image_url,
                thumbnail_url=info.get("thumburl") or image_url,
                source=self.name,
                title=title,
                width=self._to_int(info.get("width")),
                height=self._to_int(info.get("height")),
                source_page_url=info.get("descriptionurl"),
                native_id=str(page.get("pageid")) if page.get("pageid") is not None else None,
                photographer="Wikimedia Contributors",
                copyright=free_license(
                    "Creative Commons / Public Domain",
                    requires_attribution=True,
                    description="Free to use. Check the file page for the exact license.",
                ),
                byte_size=self._to_int(info.get("size")),
            ))
            if len(results) >= limit:
                break
        return results
