"""
Rate limiting configuration for the Storytel provider API.

Uses Flask-Limiter to protect endpoints from abuse. Every search can fan out
to six catalog calls, so the search endpoints get the heavy tier.

Rate Limit Tiers:
- Heavy: /<region>/search, /<region>/book/search, /<region>/audiobook/search
- Light: /health
"""

import os
from flask import current_app, jsonify
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

# Initialize limiter (will be attached to app in create_app)
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=["1000 per day", "200 per hour"],
    storage_uri=os.environ.get("RATELIMIT_STORAGE_URI", "memory://"),
    strategy="fixed-window",
    headers_enabled=True,  # Add X-RateLimit-* headers to responses
)


@limiter.request_filter
def rate_limiting_disabled() -> bool:
    """Per-app switch: DISABLE_RATE_LIMITING exempts every request of that app."""
    return bool(current_app.config.get('DISABLE_RATE_LIMITING'))


# ==============================================================================
# RATE LIMIT TIERS
# ==============================================================================

# Heavy operations - one search + up to five detail calls upstream
HEAVY_LIMIT = "20 per minute"

# Light operations - fast reads
LIGHT_LIMIT = "120 per minute"


# ==============================================================================
# RATE LIMIT DECORATORS
# ==============================================================================

def limit_heavy(f):
    """Apply heavy rate limit to expensive operations like search."""
    return limiter.limit(HEAVY_LIMIT)(f)


def limit_light(f):
    """Apply light rate limit to cheap operations."""
    return limiter.limit(LIGHT_LIMIT)(f)


# ==============================================================================
# ERROR HANDLER
# ==============================================================================

def rate_limit_exceeded_handler(e):
    """JSON body for rate limit exceeded errors."""
    retry_after = e.retry_after if hasattr(e, 'retry_after') else 60

    response = jsonify({
        "error": "Rate limit exceeded",
        "message": str(e.description),
        "retry_after": retry_after
    })
    response.status_code = 429
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
    limiter.init_app(app)

    # Register custom error handler
    app.errorhandler(429)(rate_limit_exceeded_handler)

    return limiter
