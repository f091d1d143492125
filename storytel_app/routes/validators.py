"""Lightweight request validation helpers."""

import re
from typing import Optional, Tuple


# Storytel locales: "en", "sv", "pt-br", "zh_CN" ...
REGION_PATTERN = re.compile(r'^[a-zA-Z]{2,3}([_-][a-zA-Z0-9]{2,4})?$')

MAX_QUERY_LENGTH = 500
MAX_AUTHOR_LENGTH = 200


def validate_region(region: Optional[str]) -> Optional[str]:
    """
    Validate the region/locale path segment.

    Returns:
        None if valid, or error message string.
    """
    if not region:
        return "Region parameter is required"
    if not REGION_PATTERN.match(region):
        return "Invalid region format"
    return None


def sanitize_string(value: str, max_length: int = 500) -> str:
    """
    Sanitize a string by removing control characters and limiting length.

    Args:
        value: String to sanitize
        max_length: Maximum allowed length

    Returns:
        Sanitized string
    """
    if not isinstance(value, str):
        return ""

    result = ''.join(c for c in value if c >= ' ')
    return result[:max_length]


def parse_search_args(args) -> Tuple[str, str, Optional[str]]:
    """
    Extract query/author from request args.

    Returns:
        Tuple of (query, author, error_or_none)
    """
    query = sanitize_string(args.get('query', ''), MAX_QUERY_LENGTH).strip()
    author = sanitize_string(args.get('author', ''), MAX_AUTHOR_LENGTH).strip()
    if not query:
        return '', author, "Query parameter is required"
    return query, author, None
