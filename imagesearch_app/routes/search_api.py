"""Search API Blueprint.

/api/search          - concurrent search across every registered source
/api/test/<source>   - run a single adapter (operator diagnostics)
"""

from typing import Optional

from flask import Blueprint, jsonify, request

from imagesearch_app.extensions import get_services
from imagesearch_app.log import log, debug_log_event
from imagesearch_app.rate_limit import limit_heavy
from .validators import validate_limit, sanitize_string, MAX_QUERY_LENGTH


search_bp = Blueprint('search_api', __name__, url_prefix='/api')

TEST_DEFAULT_QUERY = 'cats'
TEST_DEFAULT_LIMIT = 10


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _error(message: str, detail: Optional[str] = None, code: str = 'invalid_request', status: int = 400):
    payload = {'error': message, 'code': code}
    if detail:
        payload['detail'] = detail
    return jsonify(payload), status


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------

@search_bp.route('/search', methods=['GET'])
@limit_heavy
def search_images():
    services = get_services()
    config = services.config

    query = sanitize_string(request.args.get('query', ''), max_length=MAX_QUERY_LENGTH)
    if not query:
        return _error('Query parameter is required', code='missing_query')

    limit, error = validate_limit(request.args.get('limit'), config.default_limit, config.max_limit)
    if error:
        return _error(error, code='invalid_limit')

    log(f"🔍 Search request: '{query}' (limit {limit})")
    outcome = services.orchestrator.search(query, limit)
    summary = outcome.summary

    debug_log_event({
        'event': 'search',
        'query': query,
        'limit': limit,
        'total': summary['total'],
        'before_dedup': summary['deduplication']['beforeDedup'],
        'total_time': summary['performance']['totalTime'],
        'failed_sources': [name for name, detail in summary['sourceDetails'].items()
                           if not detail['success']],
    })
    log(f"✅ Returning {summary['total']} results for '{query}'")
    return jsonify(outcome.to_dict())


@search_bp.route('/test/<source_id>', methods=['GET'])
@limit_heavy
def test_source(source_id: str):
    services = get_services()
    source = services.registry.get_source(source_id)
    if source is None:
        return _error(f"Unknown source: {source_id}", detail=f"Available: "
                      f"{', '.join(s.id for s in services.registry.sources)}",
                      code='unknown_source')

    query = sanitize_string(request.args.get('query', ''), max_length=MAX_QUERY_LENGTH) or TEST_DEFAULT_QUERY
    limit, error = validate_limit(request.args.get('limit'), TEST_DEFAULT_LIMIT, services.config.max_limit)
    if error:
        return _error(error, code='invalid_limit')

    log(f"🧪 Testing {source.name} with '{query}' (limit {limit})")
    outcome = source.safe_search(query, limit)
    normalized = services.orchestrator.normalizer.normalize_all(outcome.results)

    return jsonify({
        'source': source.name,
        'query': query,
        'requested': limit,
        'found': len(normalized),
        'results': [r.to_dict() for r in normalized],
        'error': outcome.error,
    })
