import io

import pytest
import requests
from requests.adapters import HTTPAdapter

from sources.http_client import (
    FetchError, FetchPolicy, PROXY_POLICY, DOWNLOAD_POLICY, ResilientFetcher, needs_relaxed_tls,
)
from conftest import fake_response


def test_proxy_policy_backoff_is_capped_exponential():
    assert [PROXY_POLICY.delay_for(a) for a in (1, 2, 3, 4, 5)] == [1.0, 2.0, 4.0, 5.0, 5.0]
    assert PROXY_POLICY.max_retries == 3
    assert PROXY_POLICY.timeout == 20.0


def test_download_policy_is_fixed():
    assert DOWNLOAD_POLICY.max_retries == 2
    assert DOWNLOAD_POLICY.timeout == 45.0
    assert [DOWNLOAD_POLICY.delay_for(a) for a in (1, 2, 3)] == [2.0, 2.0, 2.0]


def test_success_returns_open_response(fetcher, http_session):
    response = fake_response()
    http_session.get.return_value = response

    assert fetcher.fetch_image("https://img.example.com/a.jpg") is response
    assert http_session.get.call_count == 1
    kwargs = http_session.get.call_args.kwargs
    assert kwargs["stream"] is True
    assert kwargs["timeout"] == PROXY_POLICY.timeout
    assert kwargs["headers"]["Referer"] == "https://www.google.com/"
    assert "User-Agent" in kwargs["headers"]


def test_invalid_url_makes_no_attempt(fetcher, http_session):
    with pytest.raises(FetchError) as info:
        fetcher.fetch_image("ftp://example.com/a.jpg")
    assert info.value.kind == "invalid_url"
    assert info.value.attempts == 0
    http_session.get.assert_not_called()


@pytest.mark.parametrize("status", [403, 404])
def test_terminal_status_attempted_once(fetcher, http_session, status):
    http_session.get.return_value = fake_response(status=status, content_type="text/html")

    with pytest.raises(FetchError) as info:
        fetcher.fetch_image("https://img.example.com/missing.jpg")

    assert http_session.get.call_count == 1
    assert info.value.status == status
    assert info.value.attempts == 1
    assert info.value.terminal
    assert fetcher.sleeps == []


def test_malformed_url_error_is_terminal(fetcher, http_session):
    http_session.get.side_effect = requests.exceptions.InvalidURL("bad host")
    with pytest.raises(FetchError) as info:
        fetcher.fetch_image("https://exa mple.com/a.jpg")
    assert info.value.kind == "invalid_url"
    assert http_session.get.call_count == 1


def test_timeouts_retry_max_times_with_non_decreasing_delay(fetcher, http_session):
    http_session.get.side_effect = requests.exceptions.ReadTimeout("slow")

    with pytest.raises(FetchError) as info:
        fetcher.fetch_image("https://img.example.com/slow.jpg", PROXY_POLICY)

    assert http_session.get.call_count == PROXY_POLICY.max_retries
    assert info.value.kind == "timeout"
    assert info.value.attempts == PROXY_POLICY.max_retries
    assert len(fetcher.sleeps) == PROXY_POLICY.max_retries - 1
    assert fetcher.sleeps == sorted(fetcher.sleeps)


def test_server_error_then_success(fetcher, http_session):
    good = fake_response()
    http_session.get.side_effect = [fake_response(status=503, content_type="text/html"), good]

    assert fetcher.fetch_image("https://img.example.com/a.jpg") is good
    assert http_session.get.call_count == 2
    assert fetcher.sleeps == [1.0]


def test_non_image_content_type_is_retried_then_fails(fetcher, http_session):
    http_session.get.side_effect = lambda *a, **kw: fake_response(content_type="text/html")

    with pytest.raises(FetchError) as info:
        fetcher.fetch_image("https://img.example.com/page", DOWNLOAD_POLICY)

    assert info.value.kind == "content_type"
    assert http_session.get.call_count == DOWNLOAD_POLICY.max_retries
    assert fetcher.sleeps == [2.0]


def test_page_fetch_does_not_require_image(fetcher, http_session):
    page = fake_response(content_type="application/json")
    http_session.get.return_value = page
    assert fetcher.fetch_page("https://api.example.com/search", params={"q": "cat"}, timeout=10) is page
    assert http_session.get.call_args.kwargs["params"] == {"q": "cat"}
    assert http_session.get.call_args.kwargs["timeout"] == 10


def test_relaxed_tls_session_selected_by_hostname():
    strict, relaxed = object(), object()
    fetcher = ResilientFetcher(session=strict, relaxed_session=relaxed, sleep=lambda s: None)
    assert fetcher.session_for("https://collections.museum.example/a.jpg") is relaxed
    assert fetcher.session_for("https://library.stanford.edu/a.jpg") is relaxed
    assert fetcher.session_for("https://images.pexels.com/a.jpg") is strict


def test_needs_relaxed_tls_heuristics():
    assert needs_relaxed_tls("https://www.nasa.gov/x.jpg")
    assert needs_relaxed_tls("https://academic.example.org/x.jpg")
    assert not needs_relaxed_tls("https://cdn.pixabay.com/x.jpg")


def test_custom_policy():
    policy = FetchPolicy(max_retries=4, timeout=1.0, backoff_base=0.5, backoff_max=1.5)
    assert [policy.delay_for(a) for a in (1, 2, 3)] == [0.5, 1.0, 1.5]


class RecordingAdapter(HTTPAdapter):
    """Transport that records the TLS setting instead of opening a socket."""

    def __init__(self):
        super().__init__()
        self.verify_seen = []

    def send(self, request, stream=False, timeout=None, verify=True, cert=None, proxies=None):
        self.verify_seen.append(verify)
        response = requests.Response()
        response.status_code = 200
        response.headers["Content-Type"] = "image/jpeg"
        response.raw = io.BytesIO(b"img")
        response.url = request.url
        response.request = request
        return response


def test_relaxed_tls_survives_ca_bundle_env(monkeypatch, tmp_path):
    bundle = tmp_path / "ca.pem"
    bundle.write_text("")
    monkeypatch.setenv("REQUESTS_CA_BUNDLE", str(bundle))

    adapter = RecordingAdapter()
    session = requests.Session()
    session.mount("https://", adapter)
    fetcher = ResilientFetcher(session=session, relaxed_session=session, sleep=lambda s: None)

    fetcher.fetch_image("https://collections.museum.example/a.jpg").close()
    fetcher.fetch_image("https://images.pexels.com/a.jpg").close()

    assert adapter.verify_seen[0] is False
    assert adapter.verify_seen[1] == str(bundle)


def test_fetch_passes_verify_per_request(fetcher, http_session):
    http_session.get.return_value = fake_response()
    fetcher.fetch_image("https://library.stanford.edu/a.jpg")
    assert http_session.get.call_args.kwargs["verify"] is False

    fetcher.fetch_image("https://images.pexels.com/a.jpg")
    assert http_session.get.call_args.kwargs["verify"] is True
