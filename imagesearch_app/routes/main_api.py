from datetime import datetime, timezone

from flask import Blueprint, jsonify, render_template

from imagesearch_app.extensions import get_services
from imagesearch_app.log import log

main_bp = Blueprint('main_api', __name__)

MIN_TOKEN_LENGTH = 10


@main_bp.route('/view/<hashed_id>')
def view_image(hashed_id: str):
    """Serve the viewer page; it fetches /api/image-data/<token> itself."""
    if len(hashed_id) < MIN_TOKEN_LENGTH:
        return jsonify({'error': 'Invalid image ID'}), 400
    return render_template('viewer.html', hashed_id=hashed_id)


@main_bp.route('/api/image-data/<hashed_id>')
def image_data(hashed_id: str):
    """Decode an opaque token back into its image fields."""
    data = get_services().codec.decode(hashed_id)
    if data is None:
        log(f"⚠️ Undecodable image token ({len(hashed_id)} chars)")
        return jsonify({'error': 'Image not found'}), 404
    return jsonify(data)


@main_bp.route('/health')
def health():
    """Liveness plus a per-source status report."""
    services = get_services()
    report = services.registry.get_health_report()
    return jsonify({
        'status': 'OK',
        'timestamp': datetime.now(timezone.utc).isoformat(),
        'sources': services.registry.get_available_sources(),
        'apiKeys': services.config.api_key_status(),
        'sourceHealth': report['sources'],
        'configuredSources': report['available_count'],
        'totalSources': report['total_count'],
    })
