"""
================================================================================
Image Search Aggregator - Normalizer
================================================================================
Turns provider-specific RawResults into uniform ImageResults:
  - validates the image URL (scheme, host, no internal targets)
  - builds the proxied display URL
  - fills in default dimensions and a human-readable size estimate
  - assigns a source-prefixed id

Invalid candidates are dropped silently; only the debug log sees them.
================================================================================
"""

import ipaddress
import logging
import math
import re
import uuid
from typing import Iterable, List, Optional
from urllib.parse import urlparse, quote

from sources.base import RawResult
from .models import CopyrightInfo, ImageResult

logger = logging.getLogger(__name__)

URL_PATTERN = re.compile(r'^https?://.+', re.IGNORECASE)

# Substrings that disqualify a hostname
BLOCKED_HOST_PATTERNS = (
    'localhost',
    '127.0.0.1',
    '0.0.0.0',
    '10.',
    '192.168.',
    '172.16.',
)

# Prefixes that disqualify the URL itself
BLOCKED_URL_PREFIXES = ('data:', 'javascript:', 'file:')

DEFAULT_WIDTH = 800
DEFAULT_HEIGHT = 600

PROXY_PATH = "/api/proxy-image"


# =============================================================================
# URL VALIDATION
# =============================================================================

def _is_internal_ip(hostname: str) -> bool:
    try:
        ip = ipaddress.ip_address(hostname.strip('[]'))
    except ValueError:
        return False
    return ip.is_private or ip.is_loopback or ip.is_link_local or ip.is_reserved or ip.is_unspecified


def validate_and_clean_url(url) -> Optional[str]:
    """
    Return `url` when it is safe to fetch and hand to clients, else None.

    Args:
        url: Candidate URL from a provider

    Returns:
        The URL unchanged, or None
    """
    if not url or not isinstance(url, str):
        return None

    url = url.strip()
    if url.lower().startswith(BLOCKED_URL_PREFIXES):
        return None
    if not URL_PATTERN.match(url):
        return None

    try:
        hostname = (urlparse(url).hostname or '').lower()
    except ValueError:
        return None

    if not hostname:
        return None
    if any(pattern in hostname for pattern in BLOCKED_HOST_PATTERNS):
        return None
    if _is_internal_ip(hostname):
        return None

    return url


def proxy_url(url: str) -> str:
    """Same-origin URL that streams `url` through the image proxy."""
    return f"{PROXY_PATH}?url={quote(url, safe='')}"


# =============================================================================
# SIZE FORMATTING
# =============================================================================

def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def format_file_size(num_bytes: float) -> str:
    """
    Human-readable size.

    >>> format_file_size(512)
    '512 B'
    >>> format_file_size(1536)
    '2 KB'
    >>> format_file_size(1024 * 1024 * 1.25)
    '1.3 MB'
    """
    if num_bytes < 1024:
        return f"{_round_half_up(num_bytes)} B"
    if num_bytes < 1024 * 1024:
        return f"{_round_half_up(num_bytes / 1024)} KB"
    return f"{_round_half_up(num_bytes / (1024 * 1024) * 10) / 10:.1f} MB"


def estimate_file_size(width: int, height: int) -> str:
    """Rough JPEG-ish estimate: 3 bytes per pixel at 70%."""
    return format_file_size(width * height * 3 * 0.7)


# =============================================================================
# NORMALIZER
# =============================================================================

def source_slug(source: str) -> str:
    return re.sub(r'[^a-z0-9]+', '-', (source or 'image').lower()).strip('-') or 'image'


class Normalizer:
    """RawResult -> ImageResult."""

    def __init__(self, default_width: int = DEFAULT_WIDTH, default_height: int = DEFAULT_HEIGHT):
        self.default_width = default_width
        self.default_height = default_height

    def make_id(self, raw: RawResult) -> str:
        suffix = raw.native_id if raw.native_id else uuid.uuid4().hex[:12]
        return f"{source_slug(raw.source)}_{suffix}"

    def normalize(self, raw: RawResult) -> Optional[ImageResult]:
        download_url = validate_and_clean_url(raw.image_url)
        if not download_url:
            logger.debug("Dropping %s candidate with invalid URL: %r", raw.source, raw.image_url)
            return None

        display_source = validate_and_clean_url(raw.thumbnail_url) or download_url
        width = raw.width if raw.width and raw.width > 0 else self.default_width
        height = raw.height if raw.height and raw.height > 0 else self.default_height

        if raw.byte_size and raw.byte_size > 0:
            size = format_file_size(raw.byte_size)
        else:
            size = estimate_file_size(width, height)

        title = (raw.title or '').strip() or f"{raw.source} image"

        return ImageResult(
            id=self.make_id(raw),
            title=title,
            display_url=proxy_url(display_source),
            download_url=download_url,
            source_page_url=validate_and_clean_url(raw.source_page_url),
            source=raw.source,
            width=width,
            height=height,
            size_estimate=size,
            copyright=CopyrightInfo.from_dict(raw.copyright),
            photographer=raw.photographer or "Unknown",
            tags=list(raw.tags or []),
        )

    def normalize_all(self, raws: Iterable[RawResult]) -> List[ImageResult]:
        results = []
        for raw in raws:
            result = self.normalize(raw)
            if result is not None:
                results.append(result)
        return results
