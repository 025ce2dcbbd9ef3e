"""
================================================================================
Image Search Aggregator - Search Package
================================================================================
Components:
  - models.py       - ImageResult / CopyrightInfo and their JSON shape
  - normalizer.py   - RawResult -> ImageResult, URL validation, size estimates
  - deduplicator.py - cross-source duplicate merging
  - orchestrator.py - concurrent fan-out and response summary
================================================================================
"""

from .models import ImageResult, CopyrightInfo
from .normalizer import Normalizer, validate_and_clean_url, format_file_size, estimate_file_size
from .deduplicator import Deduplicator, normalize_url, similarity_ratio
from .orchestrator import SearchOrchestrator, SearchOutcome, quota_for

__all__ = [
    'ImageResult', 'CopyrightInfo',
    'Normalizer', 'validate_and_clean_url', 'format_file_size', 'estimate_file_size',
    'Deduplicator', 'normalize_url', 'similarity_ratio',
    'SearchOrchestrator', 'SearchOutcome', 'quota_for',
]
