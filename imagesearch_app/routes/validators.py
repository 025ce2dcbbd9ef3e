"""Lightweight request validation helpers."""

import re
from typing import Any, Tuple, Optional


# Limit bounds
DEFAULT_LIMIT = 100
MAX_LIMIT = 500

MAX_QUERY_LENGTH = 200
MAX_FILENAME_LENGTH = 100

# Control characters except tab/newline/carriage return
_CONTROL_CHARS = re.compile(r'[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]')
_UNSAFE_FILENAME_CHARS = re.compile(r'[^a-zA-Z0-9\-_.]')
_EXTENSION_IN_URL = re.compile(r'\.(jpg|jpeg|png|webp|gif)(\?|$)', re.IGNORECASE)


def validate_limit(limit: Any, default: int = DEFAULT_LIMIT,
                   max_limit: int = MAX_LIMIT) -> Tuple[int, Optional[str]]:
    """
    Parse a `limit` query parameter.

    Missing or unparseable values fall back to `default`; values above
    `max_limit` are capped rather than rejected.

    Returns:
        Tuple of (sanitized_limit, error_or_none)
    """
    if limit is None or limit == '':
        return min(default, max_limit), None

    try:
        limit_int = int(limit)
    except (ValueError, TypeError):
        return min(default, max_limit), None

    if limit_int < 1:
        return min(default, max_limit), "Limit must be a positive integer"
    if limit_int > max_limit:
        limit_int = max_limit  # Cap at max instead of error

    return limit_int, None


def sanitize_string(value: str, max_length: int = 500, allow_newlines: bool = False) -> str:
    """
    Sanitize a string by removing control characters and limiting length.

    Args:
        value: String to sanitize
        max_length: Maximum allowed length
        allow_newlines: Whether to allow newlines

    Returns:
        Sanitized string
    """
    if not isinstance(value, str):
        return ""

    value = _CONTROL_CHARS.sub('', value)
    if not allow_newlines:
        value = value.replace('\r', ' ').replace('\n', ' ')

    return value.strip()[:max_length]


def sanitize_filename(value: str) -> str:
    """Keep [A-Za-z0-9-_.], replace the rest with '_', max 100 chars."""
    return _UNSAFE_FILENAME_CHARS.sub('_', value or '')[:MAX_FILENAME_LENGTH]


def guess_extension(content_type: Optional[str], url: str) -> str:
    """Content-Type subtype, else extension in the URL, else jpg."""
    if content_type and '/' in content_type:
        subtype = content_type.split('/', 1)[1].split(';')[0].strip().split('+')[0]
        if subtype:
            return subtype
    match = _EXTENSION_IN_URL.search(url or '')
    if match:
        return match.group(1)
    return 'jpg'
