"""
Rate limiting configuration for the image search API.

Uses Flask-Limiter to protect API endpoints from abuse.

Rate Limit Tiers:
- Heavy: /api/search, /api/test/<source> (fans out to every provider)
- Burst: /api/proxy-image (one request per thumbnail on a results page)
- Download: /api/download (large transfers)
"""

from flask import request, jsonify, make_response
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

# Initialize limiter (will be attached to app in create_app)
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=["200 per 15 minutes"],
    strategy="fixed-window",
    headers_enabled=True,  # Add X-RateLimit-* headers to responses
)


# ==============================================================================
# RATE LIMIT TIERS
# ==============================================================================

# Heavy operations - seven upstream providers per call
HEAVY_LIMIT = "30 per minute"

# Burst operations - a results page loads up to a few hundred thumbnails
BURST_LIMIT = "1200 per minute"

# Download operations - resource intensive
DOWNLOAD_LIMIT = "20 per minute"


# ==============================================================================
# RATE LIMIT DECORATORS
# ==============================================================================

def limit_heavy(f):
    """Apply heavy rate limit to expensive operations like search."""
    return limiter.limit(HEAVY_LIMIT)(f)


def limit_burst(f):
    """Apply burst rate limit to high-volume operations (image proxy)."""
    return limiter.limit(BURST_LIMIT)(f)


def limit_download(f):
    """Apply strict rate limit to download operations."""
    return limiter.limit(DOWNLOAD_LIMIT)(f)


# ==============================================================================
# ERROR HANDLER
# ==============================================================================

def rate_limit_exceeded_handler(e):
    """
    Custom handler for rate limit exceeded errors.

    JSON for API requests, a short plain page for browser navigations
    (the /view page).
    """
    retry_after = getattr(e, 'retry_after', None) or 60

    is_api_request = (
        request.path.startswith('/api/') or
        'application/json' in request.headers.get('Accept', '')
    )

    if is_api_request:
        response = jsonify({
            "error": "Too many requests, please try again later.",
            "message": str(e.description),
            "retry_after": retry_after
        })
        response.status_code = 429
    else:
        response = make_response(
            "<!DOCTYPE html><html><head><title>Rate Limited</title></head>"
            "<body><h1>Rate Limited</h1>"
            f"<p>Too many requests. Retry after {retry_after} seconds.</p>"
            "</body></html>",
            429,
        )
        response.headers['Content-Type'] = 'text/html; charset=utf-8'

    response.headers['Retry-After'] = str(retry_after)
    return response


# ==============================================================================
# INITIALIZATION
# ==============================================================================

def init_rate_limiting(app):
    """
    Initialize rate limiting for a Flask app.

    Call this in create_app() after app configuration.
    """
    disabled = bool(app.config.get('DISABLE_RATE_LIMITING'))
    app.config['RATELIMIT_ENABLED'] = not disabled
    app.config.setdefault('RATELIMIT_STORAGE_URI', 'memory://')

    limiter.init_app(app)

    # Register custom error handler
    app.errorhandler(429)(rate_limit_exceeded_handler)

    limiter.enabled = not disabled

    return limiter
