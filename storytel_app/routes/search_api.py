"""
================================================================================
Storytel Provider - Search API Routes
================================================================================
Flask blueprint exposing the aggregator as an Audiobookshelf-style custom
metadata provider.

ENDPOINTS:
  GET /<region>/search            - All normalized matches
  GET /<region>/book/search       - Matches without a duration (text editions)
  GET /<region>/audiobook/search  - Matches with a duration, plus stats
  GET /health                     - Liveness + cache statistics

Query parameters: query (required), author (optional).
================================================================================
"""

import asyncio
import logging
from typing import Any, Dict, List

from flask import Blueprint, current_app, jsonify, request

from ..extensions import get_search_aggregator
from ..metadata.models import BookMetadata, SearchResult
from ..rate_limit import limit_heavy, limit_light
from .auth import require_token
from .validators import parse_search_args, validate_region

logger = logging.getLogger(__name__)

search_bp = Blueprint('search_api', __name__)


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def run_async(coro):
    """
    Run async coroutine in sync Flask context.

    Flask routes are sync, the aggregator is async. Each request gets its own
    event loop, so concurrent requests run as independent pipelines.
    """
    return asyncio.run(coro)


def _error(message: str, status: int):
    return jsonify({'error': message}), status


def _run_search(region: str):
    """
    Validate the request and run the aggregator.

    Returns:
        (SearchResult, None) on success, (None, error_response) otherwise
    """
    error = validate_region(region)
    if error:
        return None, _error(error, 400)

    query, author, error = parse_search_args(request.args)
    if error:
        return None, _error(error, 400)

    aggregator = get_search_aggregator(current_app)
    return run_async(aggregator.search(query, author, region)), None


def audiobook_stats(audiobooks: List[BookMetadata]) -> Dict[str, Any]:
    """Count, count with narrator, and mean duration (rounded) in minutes."""
    total = len(audiobooks)
    with_narrator = sum(1 for book in audiobooks if book.narrator)
    average = 0
    if total:
        mean = sum(book.duration or 0 for book in audiobooks) / total
        # Round half up
        average = int(mean + 0.5)
    return {
        'total': total,
        'withNarrator': with_narrator,
        'averageDuration': average,
    }


# =============================================================================
# SEARCH ROUTES
# =============================================================================

@search_bp.route('/<region>/search', methods=['GET'])
@limit_heavy
@require_token
def search(region: str):
    """
    Search the catalog for all editions.

    Returns:
        {"matches": [{"title": ..., "author": ..., ...}, ...]}
    """
    try:
        result, error_response = _run_search(region)
        if error_response:
            return error_response
        return jsonify(result.to_dict())
    except Exception as e:
        logger.error(f"Search error: {e}", exc_info=True)
        return _error('Internal server error', 500)


@search_bp.route('/<region>/book/search', methods=['GET'])
@limit_heavy
@require_token
def book_search(region: str):
    """Search restricted to matches without a duration (e-books)."""
    try:
        result, error_response = _run_search(region)
        if error_response:
            return error_response
        ebooks = SearchResult(tuple(m for m in result.matches if not m.is_audiobook))
        return jsonify(ebooks.to_dict())
    except Exception as e:
        logger.error(f"Book search error: {e}", exc_info=True)
        return _error('Internal server error', 500)


@search_bp.route('/<region>/audiobook/search', methods=['GET'])
@limit_heavy
@require_token
def audiobook_search(region: str):
    """
    Search restricted to audiobooks.

    Returns:
        {
            "matches": [...],
            "stats": {"total": 2, "withNarrator": 1, "averageDuration": 612}
        }
    """
    try:
        result, error_response = _run_search(region)
        if error_response:
            return error_response
        audiobooks = [m for m in result.matches if m.is_audiobook]
        payload = SearchResult(tuple(audiobooks)).to_dict()
        payload['stats'] = audiobook_stats(audiobooks)
        return jsonify(payload)
    except Exception as e:
        logger.error(f"Audiobook search error: {e}", exc_info=True)
        return _error('Internal server error', 500)


# =============================================================================
# HEALTH
# =============================================================================

@search_bp.route('/health', methods=['GET'])
@limit_light
def health():
    """Liveness check with cache statistics. Stale entries are dropped first."""
    aggregator = get_search_aggregator(current_app)
    aggregator.cache.evict_expired()
    return jsonify({
        'status': 'ok',
        'cache': aggregator.cache.stats(),
    })
