import hmac
from functools import wraps
from flask import current_app, jsonify, request
from storytel_app.log import log

BEARER_PREFIX = 'Bearer '


def _matches(presented: str, expected: str) -> bool:
    return hmac.compare_digest(presented.encode('utf-8'), expected.encode('utf-8'))


def _token_accepted(header: str, expected: str) -> bool:
    """The whole header may equal the token, or carry it after "Bearer "."""
    header = header.strip()
    if not header:
        return False
    if _matches(header, expected):
        return True
    if header.startswith(BEARER_PREFIX):
        return _matches(header[len(BEARER_PREFIX):].strip(), expected)
    return False


def require_token(f):
    """Decorator to require the static API token when one is configured.

    Accepts the raw token or "Bearer <token>" in the Authorization header.
    Uses constant-time comparison to prevent timing attacks.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        expected = current_app.config.get('AUTH_TOKEN')
        if expected:
            header = request.headers.get('Authorization', '')
            if not _token_accepted(header, expected):
                log(f"Auth: rejected request to {request.path} (provided={bool(header.strip())})")
                return jsonify({'error': 'Unauthorized'}), 401

        return f(*args, **kwargs)
    return decorated_function
