"""
================================================================================
Image Search Aggregator - Base Source
================================================================================
Abstract base class for all image source adapters.

Every provider (stock-photo REST API or search-engine scraper) implements a
single method:
  _search(query, limit) -> List[RawResult]

The public boundary is safe_search(), which NEVER raises: any failure
(missing API key, network error, blocked by the remote site) is caught,
logged and reported as a SourceResult with an error and no results.

STATUS TRACKING:
  - Each adapter remembers its last error and failure count
  - /health reports them so operators can spot a broken provider
================================================================================
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Optional, Dict, Any, Callable
from enum import Enum
import re
import threading


# =============================================================================
# LOGGING CALLBACK (avoids circular imports)
# =============================================================================

# Global logger callback - set by create_app() on startup
_log_callback: Optional[Callable[[str], None]] = None


def set_log_callback(callback: Callable[[str], None]) -> None:
    """Set the logging callback function. Called by create_app() on startup."""
    global _log_callback
    _log_callback = callback


def source_log(msg: str) -> None:
    """Log a message using the registered callback or fallback to print."""
    if _log_callback:
        _log_callback(msg)
    else:
        print(msg)


# =============================================================================
# ENUMS & DATA CLASSES
# =============================================================================

class SourceStatus(Enum):
    """Current operational status of a source."""
    ONLINE = "online"
    UNCONFIGURED = "unconfigured"
    OFFLINE = "offline"
    UNKNOWN = "unknown"


@dataclass
class RawResult:
    """
    One candidate image exactly as a provider reported it.

    Ephemeral: the Normalizer turns it into an ImageResult and drops it.
    """
    image_url: str                          # Full-size image URL
    source: str                             # Provider display name ("Pexels")
    title: str = ""
    width: Optional[int] = None
    height: Optional[int] = None
    source_page_url: Optional[str] = None   # Page the image lives on
    thumbnail_url: Optional[str] = None     # Smaller rendition for display
    native_id: Optional[str] = None         # Provider's own id
    photographer: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    copyright: Optional[Dict[str, Any]] = None
    byte_size: Optional[int] = None


@dataclass
class SourceResult:
    """Outcome of one adapter run: results, or an error, never an exception."""
    source: str
    results: List[RawResult] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


# =============================================================================
# LICENSE PRESETS
# =============================================================================

UNKNOWN_COPYRIGHT: Dict[str, Any] = {
    "status": "unknown",
    "license": "Various",
    "description": "Copyright varies. Check source.",
    "can_use_commercially": False,
    "requires_attribution": True,
}


def free_license(name: str, requires_attribution: bool = False,
                 description: str = "Free for commercial use. No attribution required.") -> Dict[str, Any]:
    """Copyright block for providers that grant a free license."""
    return {
        "status": "free",
        "license": name,
        "description": description,
        "can_use_commercially": True,
        "requires_attribution": requires_attribution,
    }


# =============================================================================
# BASE SOURCE CLASS
# =============================================================================

class BaseSource(ABC):
    """
    Abstract base class for image source adapters.

    Example:
        class PexelsSource(BaseSource):
            id = "pexels"
            name = "Pexels"
            quota_tier = "baseline"

            def _search(self, query, limit):
                ...
    """

    # =========================================================================
    # SOURCE CONFIGURATION (Override in subclass)
    # =========================================================================

    id: str = "base"                 # Unique identifier used in URLs
    name: str = "Base Source"        # Display name, also the provenance tag
    kind: str = "api"                # "api" or "scraping"
    quota_tier: str = "baseline"     # "baseline" or "heavy"
    request_timeout: float = 10.0    # Adapter-level timeout in seconds
    requires_key: bool = False

    def __init__(self, fetcher=None, api_key: str = ""):
        self.fetcher = fetcher
        self.api_key = api_key or ""

        self._status = SourceStatus.UNKNOWN
        self._last_error: Optional[str] = None
        self._failure_count = 0
        self._lock = threading.Lock()

    # =========================================================================
    # STATUS MANAGEMENT
    # =========================================================================

    def _handle_success(self) -> None:
        with self._lock:
            self._status = SourceStatus.ONLINE
            self._failure_count = 0

    def _handle_error(self, error: str) -> None:
        with self._lock:
            self._last_error = error
            self._failure_count += 1
            if self._failure_count >= 5:
                self._status = SourceStatus.OFFLINE

    @property
    def is_configured(self) -> bool:
        return not self.requires_key or bool(self.api_key)

    @property
    def status(self) -> SourceStatus:
        if not self.is_configured:
            return SourceStatus.UNCONFIGURED
        return self._status

    def get_health_info(self) -> Dict[str, Any]:
        """Get health info for status display."""
        return {
            "id": self.id,
            "name": self.name,
            "kind": self.kind,
            "status": self.status.value,
            "configured": self.is_configured,
            "failure_count": self._failure_count,
            "last_error": self._last_error,
        }

    # =========================================================================
    # SEARCH
    # =========================================================================

    @abstractmethod
    def _search(self, query: str, limit: int) -> List[RawResult]:
        """
        Provider-specific search. May raise; safe_search() catches.

        Args:
            query: Search term
            limit: Maximum number of candidates wanted

        Returns:
            List of RawResult, at most `limit` long
        """
        pass

    def safe_search(self, query: str, limit: int) -> SourceResult:
        """Run the adapter and turn every failure into an error result."""
        if not self.is_configured:
            message = f"{self.name} API key not configured"
            source_log(f"⚠️ {message}, skipping")
            return SourceResult(source=self.name, error=message)

        try:
            source_log(f"🔍 Searching {self.name} for: {query} (limit: {limit})")
            results = self._search(query, limit)[:max(limit, 0)]
        except Exception as e:
            message = str(e) or e.__class__.__name__
            self._handle_error(message)
            source_log(f"❌ {self.name} search error: {message}")
            return SourceResult(source=self.name, error=message)

        self._handle_success()
        source_log(f"✅ {self.name} search completed: {len(results)} results")
        return SourceResult(source=self.name, results=results)

    def search(self, query: str, limit: int) -> List[RawResult]:
        """Adapter contract: candidates for a query, empty list on failure."""
        return self.safe_search(query, limit).results

    # =========================================================================
    # UTILITY METHODS
    # =========================================================================

    def _fetch_json(self, url: str, **kwargs) -> Any:
        response = self.fetcher.fetch_page(url, timeout=self.request_timeout, **kwargs)
        try:
            return response.json()
        finally:
            response.close()

    def _fetch_text(self, url: str, **kwargs) -> str:
        response = self.fetcher.fetch_page(url, timeout=self.request_timeout, **kwargs)
        try:
            return response.text
        finally:
            response.close()

    @staticmethod
    def _to_int(value: Any) -> Optional[int]:
        """parseInt-style coercion: leading digits or None."""
        if value is None:
            return None
        if isinstance(value, bool):
            return None
        if isinstance(value, (int, float)):
            return int(value)
        match = re.match(r'\s*(\d+)', str(value))
        return int(match.group(1)) if match else None

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} id='{self.id}' status={self.status.value}>"
