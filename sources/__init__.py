"""
================================================================================
Image Search Aggregator - Source Registry
================================================================================
Explicit registry of image source adapters.

Adapters are listed in SOURCE_CLASSES and built once per app by
build_default_sources(). Registration order matters: the orchestrator
concatenates candidates in this order before deduplication, so an earlier
adapter wins the "first contributor" slot when two sources find the same image.
================================================================================
"""

import threading
from typing import List, Dict, Optional, Any, Iterable

from .base import BaseSource, RawResult, SourceResult, SourceStatus, set_log_callback, source_log
from .http_client import ResilientFetcher, FetchError, FetchPolicy
from .pexels import PexelsSource
from .pixabay import PixabaySource
from .unsplash import UnsplashSource
from .wikimedia import WikimediaSource
from .duckduckgo import DuckDuckGoSource
from .google_images import GoogleImagesSource
from .bing_images import BingImagesSource


SOURCE_CLASSES = [
    PexelsSource,
    PixabaySource,
    UnsplashSource,
    WikimediaSource,
    DuckDuckGoSource,
    GoogleImagesSource,
    BingImagesSource,
]


class SourceRegistry:
    """
    Ordered collection of adapters.

    Usage:
        registry = SourceRegistry([PexelsSource(fetcher, key), ...])
        registry.get_source("pexels").safe_search("cats", 10)
    """

    def __init__(self, sources: Iterable[BaseSource] = ()):
        self._sources: Dict[str, BaseSource] = {}
        self._lock = threading.Lock()
        for source in sources:
            self.register(source)

    def register(self, source: BaseSource) -> None:
        with self._lock:
            if source.id in self._sources:
                raise ValueError(f"Duplicate source id: {source.id}")
            self._sources[source.id] = source

    @property
    def sources(self) -> List[BaseSource]:
        """Adapters in registration order."""
        return list(self._sources.values())

    def get_source(self, source_id: str) -> Optional[BaseSource]:
        return self._sources.get((source_id or "").lower())

    def __len__(self) -> int:
        return len(self._sources)

    def __iter__(self):
        return iter(self.sources)

    def get_available_sources(self) -> Dict[str, List[str]]:
        """Source display names grouped by kind ("api" / "scraping")."""
        grouped: Dict[str, List[str]] = {}
        for source in self._sources.values():
            grouped.setdefault(source.kind, []).append(source.name)
        return grouped

    def get_health_report(self) -> Dict[str, Any]:
        return {
            "sources": [s.get_health_info() for s in self._sources.values()],
            "available_count": sum(1 for s in self._sources.values() if s.is_configured),
            "total_count": len(self._sources),
        }


def build_default_sources(config, fetcher: ResilientFetcher) -> SourceRegistry:
    """Build every shipped adapter with the keys from `config`."""
    keys = {
        PexelsSource.id: config.pexels_key,
        PixabaySource.id: config.pixabay_key,
        UnsplashSource.id: config.unsplash_access_key,
    }
    registry = SourceRegistry(
        cls(fetcher=fetcher, api_key=keys.get(cls.id, "")) for cls in SOURCE_CLASSES
    )
    source_log(f"📚 Registered {len(registry)} image sources")
    return registry


__all__ = [
    "BaseSource", "RawResult", "SourceResult", "SourceStatus",
    "ResilientFetcher", "FetchError", "FetchPolicy",
    "SourceRegistry", "SOURCE_CLASSES", "build_default_sources",
    "set_log_callback", "source_log",
    "PexelsSource", "PixabaySource", "UnsplashSource", "WikimediaSource",
    "DuckDuckGoSource", "GoogleImagesSource", "BingImagesSource",
]
