"""
================================================================================
Storytel Provider - Search Package
================================================================================
Components:
  - aggregator.py - Cache lookup, catalog search, sequential detail fetch
  - cache.py      - Composed-result cache (10 minute TTL)
================================================================================
"""

from .aggregator import SearchAggregator, clean_query, format_query
from .cache import SearchCache

__all__ = ['SearchAggregator', 'SearchCache', 'clean_query', 'format_query']
