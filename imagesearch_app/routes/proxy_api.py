"""Image proxy and download API.

Both endpoints stream the upstream body through the resilient fetcher:
- /api/proxy-image      inline, SVG placeholder on any failure
- /api/download/<id>    attachment, JSON error on failure

The first chunk is read before any header is sent, so an upstream that dies
immediately still gets the placeholder / JSON error instead of a truncated 200.
"""

from typing import Iterator, Optional

import requests
from flask import Blueprint, Response, jsonify, request, stream_with_context
from markupsafe import escape

from imagesearch_app.extensions import get_services
from imagesearch_app.log import log
from imagesearch_app.rate_limit import limit_burst, limit_download
from sources.http_client import FetchError, PROXY_POLICY, DOWNLOAD_POLICY, URL_PATTERN
from .validators import sanitize_filename, guess_extension

proxy_bp = Blueprint('proxy_api', __name__, url_prefix='/api')

CHUNK_SIZE = 64 * 1024

PLACEHOLDER_TEMPLATE = """<svg width="320" height="220" viewBox="0 0 320 220" fill="none" xmlns="http://www.w3.org/2000/svg">
    <rect width="320" height="220" fill="#F3F4F6" stroke="#E5E7EB" stroke-width="2"/>
    <circle cx="160" cy="85" r="20" fill="#9CA3AF"/>
    <path d="M130 130L160 100L190 130H130Z" fill="#9CA3AF"/>
    <text x="160" y="160" text-anchor="middle" fill="#6B7280" font-family="Arial" font-size="12">{caption}</text>
    <text x="160" y="180" text-anchor="middle" fill="#9CA3AF" font-family="Arial" font-size="10">Placeholder Image</text>
</svg>"""


def placeholder_image(caption: str = 'Image not available') -> Response:
    """320x220 grey placeholder with `caption`."""
    svg = PLACEHOLDER_TEMPLATE.format(caption=escape(caption))
    response = Response(svg, mimetype='image/svg+xml')
    response.headers['Cache-Control'] = 'public, max-age=300'
    return response


def _start_stream(upstream: requests.Response) -> Optional[Iterator[bytes]]:
    """
    Read the first chunk eagerly.

    Returns an iterator over the whole body, or None when the body failed
    before producing any bytes.
    """
    chunks = upstream.iter_content(CHUNK_SIZE)
    try:
        first = next(chunks, b'')
    except requests.RequestException as exc:
        log(f"❌ Upstream body failed before first byte: {exc}")
        upstream.close()
        return None

    def generate():
        try:
            if first:
                yield first
            for chunk in chunks:
                if chunk:
                    yield chunk
        except requests.RequestException as exc:
            # Headers are gone already; all we can do is cut the stream
            log(f"❌ Stream interrupted for {upstream.url[:100]}: {exc}")
        finally:
            upstream.close()

    return generate()


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------

@proxy_bp.route('/proxy-image', methods=['GET'])
@limit_burst
def proxy_image():
    url = request.args.get('url', '')
    if not url:
        return jsonify({'error': 'URL parameter is required'}), 400

    if not URL_PATTERN.match(url):
        log(f"⚠️ Invalid proxy URL format: {url[:100]}")
        return placeholder_image('Invalid URL format')

    fetcher = get_services().fetcher
    try:
        upstream = fetcher.fetch_image(url, PROXY_POLICY)
    except FetchError as exc:
        log(f"❌ Image proxy failed after {exc.attempts} attempt(s): {url[:100]} ({exc})")
        return placeholder_image('Invalid content type' if exc.kind == 'content_type'
                                 else 'Image not available')

    body = _start_stream(upstream)
    if body is None:
        return placeholder_image('Stream error')

    response = Response(stream_with_context(body),
                        content_type=upstream.headers.get('Content-Type'))
    response.headers['Cache-Control'] = 'public, max-age=3600'
    response.headers['Access-Control-Allow-Origin'] = '*'
    return response


@proxy_bp.route('/download/<image_id>', methods=['GET'])
@limit_download
def download_image(image_id: str):
    url = request.args.get('url', '')
    if not url:
        return jsonify({'error': 'URL parameter is required'}), 400
    if not URL_PATTERN.match(url):
        return jsonify({'error': 'Invalid URL format'}), 400

    log(f"⬇️ Download request: {image_id} ({url[:100]})")

    fetcher = get_services().fetcher
    try:
        upstream = fetcher.fetch_image(
            url, DOWNLOAD_POLICY,
            headers={'Accept': 'image/*,*/*', 'Referer': 'https://www.google.com/'},
        )
    except FetchError as exc:
        log(f"❌ Download failed for {image_id}: {exc}")
        if exc.kind == 'invalid_url':
            return jsonify({'error': 'Invalid URL format'}), 400
        if exc.kind == 'content_type':
            return jsonify({'error': 'Invalid file type'}), 400
        return jsonify({'error': 'Failed to download image after retries'}), 500

    content_type = upstream.headers.get('Content-Type')
    extension = sanitize_filename(guess_extension(content_type, url))

    body = _start_stream(upstream)
    if body is None:
        return jsonify({'error': 'Download stream failed'}), 500

    response = Response(stream_with_context(body), content_type=content_type)
    response.headers['Content-Disposition'] = (
        f'attachment; filename="{sanitize_filename(image_id)}.{extension}"'
    )
    response.headers['Cache-Control'] = 'no-cache'
    return response
