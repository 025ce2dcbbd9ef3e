"""
================================================================================
Image Search Aggregator - Deduplicator / Merger
================================================================================
Collapses the same image found by several sources into one record.

Problem:
  Searching "cats" returns the same Unsplash photo from Unsplash itself,
  Google Images and Bing, with slightly different URLs:
    https://images.unsplash.com/photo-123?w=1080&q=80
    https://images.unsplash.com/photo-123_800x600.jpg

Solution (single pass, first-seen order):
  1. Build a comparison key from the download URL (normalize_url)
  2. Exact key hit                   -> merge into that record
  3. Otherwise scan known keys:
       key similarity > 0.95         -> merge
       same originating source AND
       title similarity > 0.95       -> merge
  4. No hit -> new record

Merging never loses provenance: `sources` only grows, the title is
regenerated as "<original title> (<src1>, <src2>, ...)", and the record
upgrades to the larger image (or to any premium stock source's copy).
================================================================================
"""

import logging
import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from .models import ImageResult

logger = logging.getLogger(__name__)

PREMIUM_SOURCES = ('Pexels', 'Unsplash', 'Pixabay')

PLACEHOLDER_PHOTOGRAPHER = 'Various'

MIN_KEY_LENGTH = 5
MIN_TITLE_LENGTH = 15


# =============================================================================
# KEY NORMALIZATION & SIMILARITY
# =============================================================================

_SCHEME = re.compile(r'^https?://')
_WWW = re.compile(r'^www\.')
_QUERY = re.compile(r'\?.*$', re.DOTALL)
_AMP = re.compile(r'&.*$', re.DOTALL)
_SIZE_SUFFIX = re.compile(r'_\d+x\d+\.(jpg|jpeg|png|webp|gif)$')
_THUMB_SEGMENT = re.compile(r'/thumb/.*?/')


def _normalize_once(key: str) -> str:
    key = _SCHEME.sub('', key)
    key = _WWW.sub('', key)
    key = _QUERY.sub('', key)
    key = _AMP.sub('', key)
    key = _SIZE_SUFFIX.sub(r'.\1', key)
    key = _THUMB_SEGMENT.sub('/', key, count=1)
    return key.strip()


def normalize_url(url: Optional[str]) -> str:
    """
    Comparison key for a URL.

    Rules are re-applied until the key stops changing, so
    normalize_url(normalize_url(u)) == normalize_url(u).
    """
    if not url:
        return ''
    key = url.lower()
    while True:
        next_key = _normalize_once(key)
        if next_key == key:
            return key
        key = next_key


def similarity_ratio(a: Optional[str], b: Optional[str]) -> float:
    """
    Positional character-match ratio in [0, 1].

    Counts equal characters at equal positions over the shorter length and
    divides by the longer length. Cheap on purpose: it runs O(n*u) times.
    """
    s1 = (a or '').lower()
    s2 = (b or '').lower()
    if s1 == s2:
        return 1.0
    if not s1 or not s2:
        return 0.0

    matches = sum(1 for c1, c2 in zip(s1, s2) if c1 == c2)
    return matches / max(len(s1), len(s2))


def normalize_title(title: Optional[str]) -> str:
    return (title or '').lower().strip()[:100]


def is_premium_source(source: str) -> bool:
    return any(name in (source or '') for name in PREMIUM_SOURCES)


# =============================================================================
# DEDUPLICATOR
# =============================================================================

@dataclass
class DedupStats:
    before: int = 0
    after: int = 0
    merged: int = 0
    same_source_dropped: int = 0
    skipped: int = 0

    @property
    def duplicates_removed(self) -> int:
        return self.before - self.after


class Deduplicator:
    """
    Single-pass merge of normalized results.

    Usage:
        dedup = Deduplicator()
        unique = dedup.deduplicate(results)
        dedup.last_stats.duplicates_removed
    """

    def __init__(self, url_threshold: float = 0.95, title_threshold: float = 0.95):
        self.url_threshold = url_threshold
        self.title_threshold = title_threshold
        self.last_stats = DedupStats()

    def _find_match(self, key: str, result: ImageResult,
                    key_index: Dict[str, ImageResult]) -> Optional[ImageResult]:
        if key in key_index:
            return key_index[key]

        title = normalize_title(result.title)
        for existing_key, existing in key_index.items():
            if similarity_ratio(key, existing_key) > self.url_threshold:
                logger.debug("URL similarity match: %s ~ %s", key[:50], existing_key[:50])
                return existing

            if result.source != existing.original_source:
                continue
            existing_title = normalize_title(existing.title)
            if len(title) > MIN_TITLE_LENGTH and len(existing_title) > MIN_TITLE_LENGTH:
                if similarity_ratio(title, existing_title) > self.title_threshold:
                    logger.debug("Title similarity match: %r ~ %r", title, existing_title)
                    return existing
        return None

    @staticmethod
    def merge(existing: ImageResult, incoming: ImageResult) -> bool:
        """
        Fold `incoming` into `existing`. Returns False for a same-source
        duplicate, which is dropped without touching the record.
        """
        if incoming.source in existing.sources:
            return False

        existing.sources.append(incoming.source)
        existing.source_count = len(existing.sources)
        existing.title = f"{existing.original_title} ({', '.join(existing.sources)})"

        if incoming.area > existing.area or is_premium_source(incoming.source):
            existing.download_url = incoming.download_url
            existing.display_url = incoming.display_url
            existing.width = incoming.width
            existing.height = incoming.height
            existing.size_estimate = incoming.size_estimate

        if incoming.copyright.is_free and not existing.copyright.is_free:
            existing.copyright = incoming.copyright

        if (incoming.photographer and incoming.photographer != PLACEHOLDER_PHOTOGRAPHER
                and existing.photographer == PLACEHOLDER_PHOTOGRAPHER):
            existing.photographer = incoming.photographer

        return True

    def deduplicate(self, results: List[ImageResult]) -> List[ImageResult]:
        """Merge duplicates; output keeps first-seen order."""
        unique, stats = self.deduplicate_with_stats(results)
        self.last_stats = stats
        return unique

    def deduplicate_with_stats(self, results: List[ImageResult]) -> Tuple[List[ImageResult], DedupStats]:
        stats = DedupStats(before=len(results))
        key_index: Dict[str, ImageResult] = {}
        unique: List[ImageResult] = []

        for result in results:
            key = normalize_url(result.download_url)
            if len(key) < MIN_KEY_LENGTH:
                stats.skipped += 1
                logger.debug("Skipping result with unusable URL: %r", result.download_url)
                continue

            existing = self._find_match(key, result, key_index)
            if existing is not None:
                if self.merge(existing, result):
                    stats.merged += 1
                    logger.debug("Merged %s into record from %s", result.source, existing.original_source)
                else:
                    stats.same_source_dropped += 1
                continue

            key_index[key] = result
            unique.append(result)

        stats.after = len(unique)
        logger.info(
            f"Deduplicated {stats.before} results into {stats.after} "
            f"({stats.merged} cross-source merges)"
        )
        return unique, stats
