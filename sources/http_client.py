"""
================================================================================
Image Search Aggregator - Resilient Fetch Layer
================================================================================
Retrying HTTP fetcher shared by the image proxy, the download endpoint and the
source adapters.

POLICY:
  - Target must look like http(s)://... before any attempt is made
  - Up to `max_retries` attempts, each bounded by the policy timeout
  - 404 / 403 / malformed URL are terminal, everything else is retried
  - Capped exponential (or fixed) backoff between attempts
  - Image fetches must come back with an image/* Content-Type
  - Hosts with notoriously broken certificate chains (museums, .edu, .gov,
    academic mirrors) go through a session with relaxed TLS verification
  - The attempt timeout is requests' connect/read timeout: it bounds the
    connect and each socket read, not the whole attempt, so a server that
    trickles bytes can keep one attempt alive past the policy timeout
================================================================================
"""

import random
import re
import time
from dataclasses import dataclass
from typing import Optional, Dict, Any, Callable
from urllib.parse import urlparse

import requests
from requests.adapters import HTTPAdapter

from .base import source_log


URL_PATTERN = re.compile(r'^https?://.+', re.IGNORECASE)

# Terminal HTTP statuses: retrying will not change the answer
TERMINAL_STATUSES = (403, 404)

# Hostname fragments that get relaxed certificate verification
RELAXED_TLS_MARKERS = ('museum.', 'edu', 'gov', 'academic')

USER_AGENTS = [
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/119.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 14_2) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:121.0) Gecko/20100101 Firefox/121.0",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.0 Safari/605.1.15",
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
]

IMAGE_HEADERS = {
    "Accept": "image/webp,image/apng,image/*,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
    "Cache-Control": "no-cache",
    "Pragma": "no-cache",
    "Referer": "https://www.google.com/",
}

PAGE_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/json;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
}


def random_user_agent() -> str:
    return random.choice(USER_AGENTS)


def needs_relaxed_tls(url: str) -> bool:
    """True when the target host matches the broken-certificate heuristics."""
    try:
        host = (urlparse(url).hostname or "").lower()
    except ValueError:
        return False
    return any(marker in host for marker in RELAXED_TLS_MARKERS)


class FetchError(Exception):
    """A fetch that did not produce a usable response."""

    def __init__(self, message: str, kind: str = "network", status: Optional[int] = None,
                 attempts: int = 0, url: str = ""):
        self.kind = kind            # invalid_url | http | timeout | tls | network | content_type
        self.status = status
        self.attempts = attempts
        self.url = url
        super().__init__(message)

    @property
    def terminal(self) -> bool:
        return self.kind == "invalid_url" or self.status in TERMINAL_STATUSES


@dataclass(frozen=True)
class FetchPolicy:
    """Retry budget for one logical fetch."""
    max_retries: int
    timeout: float
    backoff_base: float = 1.0
    backoff_max: float = 5.0
    exponential: bool = True

    def delay_for(self, attempt: int) -> float:
        """Delay after a failed attempt (1-indexed); never decreases."""
        if not self.exponential:
            return self.backoff_base
        return min(self.backoff_base * (2 ** (attempt - 1)), self.backoff_max)


# Interactive proxying: 3 attempts, 20s each, 1s -> 2s backoff (capped at 5s)
PROXY_POLICY = FetchPolicy(max_retries=3, timeout=20.0, backoff_base=1.0, backoff_max=5.0)

# Attachment download: 2 attempts, 45s each, fixed 2s pause
DOWNLOAD_POLICY = FetchPolicy(max_retries=2, timeout=45.0, backoff_base=2.0,
                              backoff_max=2.0, exponential=False)

# Adapter page/API fetches
PAGE_POLICY = FetchPolicy(max_retries=2, timeout=15.0, backoff_base=0.5, backoff_max=4.0)


class ResilientFetcher:
    """
    Streams remote resources with retry, TLS fallback and content checks.

    Usage:
        fetcher = ResilientFetcher()
        response = fetcher.fetch_image("https://images.pexels.com/...jpg")
        for chunk in response.iter_content(65536):
            ...

    Every failure surfaces as FetchError; callers decide between a
    placeholder, a JSON error or an empty adapter result.
    """

    def __init__(self, session: Optional[requests.Session] = None,
                 relaxed_session: Optional[requests.Session] = None,
                 sleep: Callable[[float], None] = time.sleep):
        self._session = session or self._create_session(verify=True)
        self._relaxed_session = relaxed_session or self._create_session(verify=False)
        self._sleep = sleep

    @staticmethod
    def _create_session(verify: bool) -> requests.Session:
        """Create a session with connection pooling."""
        session = requests.Session()
        session.verify = verify
        adapter = HTTPAdapter(pool_connections=10, pool_maxsize=20)
        session.mount("http://", adapter)
        session.mount("https://", adapter)
        return session

    def session_for(self, url: str) -> requests.Session:
        return self._relaxed_session if needs_relaxed_tls(url) else self._session

    def _merge_headers(self, defaults: Dict[str, str], headers: Optional[Dict[str, str]]) -> Dict[str, str]:
        merged = {"User-Agent": random_user_agent()}
        merged.update(defaults)
        if headers:
            merged.update(headers)
        return merged

    # =========================================================================
    # CORE RETRY LOOP
    # =========================================================================

    def fetch(self, url: str, policy: FetchPolicy, headers: Optional[Dict[str, str]] = None,
              params: Optional[Dict[str, Any]] = None, require_image: bool = True,
              timeout: Optional[float] = None) -> requests.Response:
        """
        Fetch `url` under `policy`, returning an open streaming response.

        The caller owns the returned response and must close it.

        Raises:
            FetchError: invalid URL, terminal status, or retries exhausted.
        """
        if not url or not URL_PATTERN.match(url):
            raise FetchError("Invalid URL format", kind="invalid_url", url=url or "")

        session = self.session_for(url)
        # Passed per request: REQUESTS_CA_BUNDLE overrides session.verify
        verify = not needs_relaxed_tls(url)
        defaults = IMAGE_HEADERS if require_image else PAGE_HEADERS
        attempt_timeout = timeout if timeout is not None else policy.timeout
        last_error: Optional[FetchError] = None

        for attempt in range(1, policy.max_retries + 1):
            try:
                response = session.get(
                    url,
                    params=params,
                    headers=self._merge_headers(defaults, headers),
                    timeout=attempt_timeout,
                    stream=True,
                    allow_redirects=True,
                    verify=verify,
                )
            except (requests.exceptions.InvalidURL,
                    requests.exceptions.MissingSchema,
                    requests.exceptions.InvalidSchema) as exc:
                raise FetchError(f"Malformed URL: {exc}", kind="invalid_url",
                                 attempts=attempt, url=url) from exc
            except requests.exceptions.Timeout as exc:
                last_error = FetchError(f"Timed out after {attempt_timeout}s: {exc}",
                                        kind="timeout", attempts=attempt, url=url)
            except requests.exceptions.SSLError as exc:
                last_error = FetchError(f"TLS error: {exc}", kind="tls", attempts=attempt, url=url)
            except requests.RequestException as exc:
                last_error = FetchError(f"Request failed: {exc}", kind="network",
                                        attempts=attempt, url=url)
            else:
                status = response.status_code
                content_type = (response.headers.get("Content-Type") or "").lower()

                if status in TERMINAL_STATUSES:
                    response.close()
                    raise FetchError(f"HTTP {status}", kind="http", status=status,
                                     attempts=attempt, url=url)
                if status >= 400:
                    response.close()
                    last_error = FetchError(f"HTTP {status}", kind="http", status=status,
                                            attempts=attempt, url=url)
                elif require_image and not content_type.startswith("image/"):
                    response.close()
                    last_error = FetchError(f"Invalid content type: {content_type or 'missing'}",
                                            kind="content_type", status=status,
                                            attempts=attempt, url=url)
                else:
                    return response

            source_log(f"⚠️ Attempt {attempt}/{policy.max_retries} failed for "
                       f"{url[:100]}: {last_error}")

            if attempt < policy.max_retries:
                self._sleep(policy.delay_for(attempt))

        source_log(f"❌ All {policy.max_retries} attempts failed for {url[:100]}")
        raise last_error

    # =========================================================================
    # CONVENIENCE WRAPPERS
    # =========================================================================

    def fetch_image(self, url: str, policy: FetchPolicy = PROXY_POLICY,
                    headers: Optional[Dict[str, str]] = None) -> requests.Response:
        return self.fetch(url, policy, headers=headers, require_image=True)

    def fetch_page(self, url: str, params: Optional[Dict[str, Any]] = None,
                   headers: Optional[Dict[str, str]] = None,
                   timeout: Optional[float] = None,
                   policy: FetchPolicy = PAGE_POLICY) -> requests.Response:
        return self.fetch(url, policy, headers=headers, params=params,
                          require_image=False, timeout=timeout)

    def close(self) -> None:
        for session in (self._session, self._relaxed_session):
            session.close()
