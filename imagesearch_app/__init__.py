import time
import uuid
import random
from typing import Optional

from flask import Flask, jsonify, request, g
from werkzeug.exceptions import HTTPException

from .config import AppConfig


def create_app(config: Optional[AppConfig] = None, sources=None, fetcher=None,
               rng: Optional[random.Random] = None):
    """
    Create and configure an instance of the Flask application.

    Args:
        config: Explicit configuration; AppConfig.from_env() when omitted
        sources: SourceRegistry to use instead of the shipped adapters
        fetcher: ResilientFetcher shared by adapters and the proxy
        rng: Random instance used to shuffle results (seed it in tests)
    """
    config = config or AppConfig.from_env()

    app = Flask(__name__, instance_relative_config=True)

    # =============================================================================
    # CONFIGURATION
    # =============================================================================
    app.config.from_mapping(
        ENV_NAME=config.env,
        HOST=config.host,
        PORT=config.port,
        DEBUG=config.debug,
        DISABLE_RATE_LIMITING=config.disable_rate_limiting,
        RATELIMIT_STORAGE_URI=config.ratelimit_storage_uri,
    )
    app.json.sort_keys = False

    # =============================================================================
    # LOGGING & RATE LIMITING
    # =============================================================================
    from .log import log, debug_log_event, configure_file_logging
    from .rate_limit import init_rate_limiting

    configure_file_logging(config.log_dir)
    init_rate_limiting(app)

    # Register logging callback for sources
    from sources.base import set_log_callback
    set_log_callback(log)

    @app.before_request
    def assign_request_id():
        g.request_id = uuid.uuid4().hex[:12]
        g.request_start = time.time()

    @app.after_request
    def debug_request_log(response):
        duration_ms = None
        start_time = getattr(g, 'request_start', None)
        if start_time:
            duration_ms = int((time.time() - start_time) * 1000)
        debug_log_event({
            'event': 'request',
            'request_id': getattr(g, 'request_id', None),
            'method': request.method,
            'path': request.path,
            'query': request.query_string.decode('utf-8', errors='ignore'),
            'status': response.status_code,
            'duration_ms': duration_ms,
            'remote_addr': request.remote_addr,
        })
        return response

    @app.teardown_request
    def debug_exception_log(error=None):
        if not error:
            return
        debug_log_event({
            'event': 'exception',
            'request_id': getattr(g, 'request_id', None),
            'error_type': error.__class__.__name__,
            'error': str(error),
        })

    # =============================================================================
    # ERROR HANDLERS
    # =============================================================================
    @app.errorhandler(404)
    def not_found(error):
        return jsonify({'error': 'Endpoint not found'}), 404

    @app.errorhandler(Exception)
    def internal_error(error):
        if isinstance(error, HTTPException):
            return error
        log(f"❌ Unhandled error on {request.path}: {error.__class__.__name__}: {error}")
        payload = {'error': 'Internal server error'}
        if not config.is_production:
            payload['details'] = str(error)
        return jsonify(payload), 500

    # =============================================================================
    # SERVICES (fetcher, adapters, codec, orchestrator)
    # =============================================================================
    from .extensions import build_services, EXTENSION_KEY

    services = build_services(config, registry=sources, fetcher=fetcher, rng=rng)
    app.extensions[EXTENSION_KEY] = services

    # =============================================================================
    # BLUEPRINTS & ROUTES
    # =============================================================================
    from .routes.main_api import main_bp
    from .routes.search_api import search_bp
    from .routes.proxy_api import proxy_bp

    app.register_blueprint(main_bp)
    app.register_blueprint(search_bp)
    app.register_blueprint(proxy_bp)

    # =============================================================================
    # STARTUP REPORT
    # =============================================================================
    if config.uses_default_encryption_key:
        log("⚠️ IMAGE_ENCRYPTION_KEY not set, using the development default")

    log(f"📚 Loaded {len(services.registry)} image sources:")
    for source in services.registry.sources:
        status = "✅" if source.is_configured else "❌"
        log(f"   {status} {source.name} ({source.id}, {source.kind})")

    key_status = config.api_key_status()
    if key_status['missing']:
        log(f"⚠️ Missing API keys: {', '.join(key_status['missing'])}")

    return app

# App instance should be created by the caller (run.py or WSGI entrypoint)
