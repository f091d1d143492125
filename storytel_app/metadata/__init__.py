"""
Storytel metadata normalization.

Components:
  - models.py     - BookMetadata / SeriesEntry / SearchResult
  - patterns.py   - Ordered locale title-marker rules
  - normalizer.py - Detail payload -> BookMetadata
"""

from .models import BookMetadata, SearchResult, SeriesEntry
from .normalizer import MetadataNormalizer
from .patterns import TITLE_PATTERNS, TitlePattern, apply_title_patterns

__all__ = [
    'BookMetadata', 'SearchResult', 'SeriesEntry',
    'MetadataNormalizer', 'TITLE_PATTERNS', 'TitlePattern', 'apply_title_patterns',
]
