import random
from unittest.mock import MagicMock

import pytest

from imagesearch_app import create_app
from imagesearch_app.config import AppConfig
from sources import SourceRegistry, ResilientFetcher
from sources.base import BaseSource, RawResult


class FakeSource(BaseSource):
    """Adapter returning canned candidates (or failing) without any I/O."""

    def __init__(self, source_id, name, results=None, quota_tier="baseline",
                 kind="api", error=None):
        super().__init__()
        self.id = source_id
        self.name = name
        self.kind = kind
        self.quota_tier = quota_tier
        self._results = list(results or [])
        self._error = error
        self.calls = []

    def _search(self, query, limit):
        self.calls.append((query, limit))
        if self._error:
            raise RuntimeError(self._error)
        return list(self._results)


def raw(source, url, title="", width=None, height=None, **kwargs):
    return RawResult(image_url=url, source=source, title=title,
                     width=width, height=height, **kwargs)


def fake_response(status=200, content_type="image/jpeg", chunks=(b"abc",), url="https://img.example.com/a.jpg"):
    response = MagicMock()
    response.status_code = status
    response.headers = {"Content-Type": content_type} if content_type else {}
    response.url = url
    response.iter_content.return_value = iter(list(chunks))
    return response


@pytest.fixture
def config(tmp_path):
    return AppConfig(
        encryption_key="test-secret",
        env="development",
        disable_rate_limiting=True,
        log_dir=str(tmp_path / "logs"),
    )


@pytest.fixture
def http_session():
    return MagicMock()


@pytest.fixture
def fetcher(http_session):
    sleeps = []
    fetcher = ResilientFetcher(session=http_session, relaxed_session=http_session,
                               sleep=sleeps.append)
    fetcher.sleeps = sleeps
    return fetcher


@pytest.fixture
def fake_sources():
    return SourceRegistry([
        FakeSource("pexels", "Pexels", [
            raw("Pexels", "https://images.pexels.com/photos/1/cat.jpg", "A fluffy cat", 4000, 3000,
                native_id="1", photographer="Jane", copyright={"status": "free", "license": "Pexels License"}),
        ]),
        FakeSource("google", "Google Images", [
            raw("Google Images", "https://images.pexels.com/photos/1/cat_800x600.jpg", "cat - cats", 800, 600,
                photographer="Various"),
            raw("Google Images", "https://example.org/dog.png", "dog - cats", 640, 480,
                photographer="Various"),
        ], quota_tier="heavy", kind="scraping"),
        FakeSource("bing", "Bing Images", error="blocked", quota_tier="heavy", kind="scraping"),
    ])


@pytest.fixture
def app(config, fake_sources, fetcher):
    app = create_app(config, sources=fake_sources, fetcher=fetcher, rng=random.Random(7))
    app.config.update(TESTING=True)
    return app


@pytest.fixture
def client(app):
    with app.test_client() as client:
        yield client
