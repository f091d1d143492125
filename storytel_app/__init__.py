# Load environment variables FIRST before any other imports
from dotenv import load_dotenv
load_dotenv()

import os
import time
import uuid
from typing import Any, Mapping, Optional
from flask import Flask, g, request


def _env_bool(name: str, default: str = 'false') -> bool:
    return os.environ.get(name, default).lower() in ('true', '1', 'yes', 'on')


def create_app(config: Optional[Mapping[str, Any]] = None, aggregator=None):
    """Create and configure an instance of the Flask application.

    Args:
        config: Overrides applied after the environment defaults
        aggregator: Prebuilt SearchAggregator (tests); built from config otherwise
    """
    app = Flask(__name__, instance_relative_config=True)

    # =============================================================================
    # CONFIGURATION
    # =============================================================================
    app.config.from_mapping(
        # Static token required in the Authorization header (unset = open)
        AUTH_TOKEN=os.environ.get('STORYTEL_AUTH_TOKEN') or os.environ.get('AUTH') or None,
        DEFAULT_LOCALE=os.environ.get('STORYTEL_DEFAULT_LOCALE', 'en'),
        CACHE_TTL=int(os.environ.get('STORYTEL_CACHE_TTL', '600')),
        CACHE_MAX_SIZE=int(os.environ.get('STORYTEL_CACHE_MAX_SIZE', '1000')),
        REQUEST_DELAY=float(os.environ.get('STORYTEL_REQUEST_DELAY', '1.0')),
        MAX_CANDIDATES=int(os.environ.get('STORYTEL_MAX_CANDIDATES', '5')),
        HTTP_TIMEOUT=float(os.environ.get('STORYTEL_HTTP_TIMEOUT', '30')),
        DISABLE_RATE_LIMITING=_env_bool('DISABLE_RATE_LIMITING'),
        HOST=os.environ.get('FLASK_HOST', '127.0.0.1'),
        PORT=int(os.environ.get('PORT') or os.environ.get('FLASK_PORT') or '3000'),
        DEBUG=_env_bool('FLASK_DEBUG'),
    )
    if config:
        app.config.update(config)
    app.json.sort_keys = False

    # =============================================================================
    # LOGGING, RATE LIMITING
    # =============================================================================
    from .log import log, debug_log_event
    from .rate_limit import init_rate_limiting

    init_rate_limiting(app)

    @app.before_request
    def assign_request_id():
        g.request_id = uuid.uuid4().hex[:12]
        g.request_start = time.time()

    @app.after_request
    def cors_and_request_log(response):
        # Metadata consumers call from other origins
        response.headers['Access-Control-Allow-Origin'] = '*'
        response.headers['Access-Control-Allow-Headers'] = 'Authorization, Content-Type'
        response.headers['Access-Control-Allow-Methods'] = 'GET, OPTIONS'

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
    def exception_log(error=None):
        if not error:
            return
        debug_log_event({
            'event': 'exception',
            'request_id': getattr(g, 'request_id', None),
            'path': request.path,
            'error_type': error.__class__.__name__,
            'error': str(error)
        })

    # =============================================================================
    # APPLICATION EXTENSIONS (Search aggregator)
    # =============================================================================
    from .extensions import init_search
    init_search(app, aggregator)

    # =============================================================================
    # BLUEPRINTS & ROUTES
    # =============================================================================
    from .routes.search_api import search_bp
    app.register_blueprint(search_bp)

    if app.config['AUTH_TOKEN']:
        log("Authorization token required for search endpoints")

    return app

# App instance should be created by the caller (run.py or WSGI entrypoint)
