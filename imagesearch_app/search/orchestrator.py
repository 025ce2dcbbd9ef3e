"""
================================================================================
Image Search Aggregator - Search Orchestrator
================================================================================
Fans one query out to every registered source and assembles the response.

Flow:
  1. Work out each adapter's quota from the requested limit
  2. Run all adapters concurrently, wait for ALL of them (no early cut-off,
     a slow or failing source never cancels the others)
  3. Concatenate candidates in registration order
  4. Normalize -> deduplicate/merge -> attach opaque tokens -> shuffle
  5. Build the summary (timings, per-source outcome, dedup counts)

Quotas:
  baseline sources get ceil(limit / 6), the two general web-search scrapers
  (Google, Bing) get ceil(limit * 0.3). The sum can exceed `limit`; the
  overshoot absorbs what deduplication removes.
================================================================================
"""

import logging
import math
import random
import time
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from typing import List, Optional, Dict, Any, Sequence

from sources.base import BaseSource, RawResult, SourceResult
from .deduplicator import Deduplicator
from .models import ImageResult
from .normalizer import Normalizer

logger = logging.getLogger(__name__)

SEARCH_STRATEGY = "Concurrent equal-priority search with per-source limits"

BASELINE_DIVISOR = 6
HEAVY_SHARE = 0.3


def baseline_quota(limit: int) -> int:
    return math.ceil(limit / BASELINE_DIVISOR)


def heavy_quota(limit: int) -> int:
    return math.ceil(limit * HEAVY_SHARE)


def quota_for(source: BaseSource, limit: int) -> int:
    if source.quota_tier == "heavy":
        return heavy_quota(limit)
    return baseline_quota(limit)


@dataclass
class SourceRun:
    """One adapter's outcome inside a search."""
    source: str
    quota: int
    results: List[RawResult] = field(default_factory=list)
    duration_ms: int = 0
    success: bool = True
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "duration": self.duration_ms,
            "success": self.success,
            "resultCount": len(self.results),
            "error": self.error,
            "quota": self.quota,
        }


@dataclass
class SearchOutcome:
    results: List[ImageResult]
    summary: Dict[str, Any]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "results": [r.to_dict() for r in self.results],
            "summary": self.summary,
        }


class SearchOrchestrator:
    """
    Concurrent multi-source image search.

    Usage:
        orchestrator = SearchOrchestrator(registry.sources, codec=codec)
        outcome = orchestrator.search("cats", 60)
        outcome.summary["total"]
    """

    def __init__(self, sources: Sequence[BaseSource], codec=None,
                 normalizer: Optional[Normalizer] = None,
                 deduplicator: Optional[Deduplicator] = None,
                 rng: Optional[random.Random] = None):
        self.sources = list(sources)
        self.codec = codec
        self.normalizer = normalizer or Normalizer()
        self.deduplicator = deduplicator or Deduplicator()
        self.rng = rng or random.Random()

    # =========================================================================
    # FAN-OUT
    # =========================================================================

    @staticmethod
    def _run_source(source: BaseSource, query: str, quota: int) -> SourceRun:
        started = time.perf_counter()
        outcome: SourceResult = source.safe_search(query, quota)
        duration_ms = int((time.perf_counter() - started) * 1000)
        return SourceRun(
            source=source.name,
            quota=quota,
            results=outcome.results,
            duration_ms=duration_ms,
            success=outcome.ok,
            error=outcome.error,
        )

    def run_sources(self, query: str, limit: int) -> List[SourceRun]:
        """Run every adapter concurrently; returned in registration order."""
        if not self.sources:
            return []

        with ThreadPoolExecutor(max_workers=len(self.sources),
                                thread_name_prefix="image-source") as executor:
            futures = [
                executor.submit(self._run_source, source, query, quota_for(source, limit))
                for source in self.sources
            ]
            wait(futures)
        return [future.result() for future in futures]

    # =========================================================================
    # PIPELINE
    # =========================================================================

    def search(self, query: str, limit: int) -> SearchOutcome:
        logger.info(f"🔍 Searching {len(self.sources)} sources for '{query}' (limit {limit})")
        runs = self.run_sources(query, limit)

        candidates: List[RawResult] = []
        for run in runs:
            candidates.extend(run.results)

        normalized = self.normalizer.normalize_all(candidates)
        unique, stats = self.deduplicator.deduplicate_with_stats(normalized)
        self._attach_tokens(unique)
        self.rng.shuffle(unique)

        summary = self._build_summary(query, limit, runs, unique, len(normalized))
        logger.info(
            f"✅ Search '{query}': {len(candidates)} candidates, "
            f"{stats.after} unique in {summary['performance']['totalTime']}"
        )
        return SearchOutcome(results=unique, summary=summary)

    def _attach_tokens(self, results: List[ImageResult]) -> None:
        if self.codec is None:
            return
        for result in results:
            result.hashed_id = self.codec.encode(result.token_payload())

    def _build_summary(self, query: str, limit: int, runs: List[SourceRun],
                       results: List[ImageResult], before_dedup: int) -> Dict[str, Any]:
        per_source_limit = baseline_quota(limit)
        durations = [run.duration_ms for run in runs]
        total_time = max(durations) if durations else 0
        average_time = round(sum(durations) / len(durations)) if durations else 0

        by_source: Dict[str, int] = {}
        for result in results:
            by_source[result.source] = by_source.get(result.source, 0) + 1

        return {
            "total": len(results),
            "perSourceLimit": per_source_limit,
            "maxPossible": sum(run.quota for run in runs),
            "sources": by_source,
            "searchStrategy": SEARCH_STRATEGY,
            "performance": {
                "totalTime": f"{total_time}ms",
                "averageTime": f"{average_time}ms",
                "concurrentSources": len(runs),
                "perSourceLimit": per_source_limit,
            },
            "sourceDetails": {run.source: run.to_dict() for run in runs},
            "deduplication": {
                "beforeDedup": before_dedup,
                "afterDedup": len(results),
                "duplicatesRemoved": before_dedup - len(results),
                "finalCount": len(results),
                "multiSourceCount": sum(1 for r in results if r.source_count > 1),
            },
            "query": query,
        }
