"""
================================================================================
Storytel Provider - Metadata Models
================================================================================
Canonical book metadata produced from Storytel detail records.

Every optional field is either derived from the detail record or left as
None. Serialization (to_dict) omits absent fields entirely - absence, not
null, tells the consumer a value is unknown.
================================================================================
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple


# =============================================================================
# DATA MODELS
# =============================================================================

@dataclass(frozen=True)
class SeriesEntry:
    """A book's position in a series (only the first listed series is kept)."""
    series: str
    sequence: str

    def to_dict(self) -> Dict[str, str]:
        return {'series': self.series, 'sequence': self.sequence}


@dataclass(frozen=True)
class BookMetadata:
    """
    Canonical metadata for one catalog item.

    Derived from exactly one detail record, never merged across records.
    Instances are immutable so cached results can be served verbatim.
    """

    # =========================================================================
    # TITLES
    # =========================================================================

    title: Optional[str] = None
    subtitle: Optional[str] = None

    # =========================================================================
    # PEOPLE
    # =========================================================================

    author: Optional[str] = None
    narrator: Optional[str] = None  # Audio edition only

    # =========================================================================
    # CLASSIFICATION
    # =========================================================================

    language: Optional[str] = None
    genres: Tuple[str, ...] = ()
    series: Optional[SeriesEntry] = None

    # =========================================================================
    # MEDIA & PUBLICATION
    # =========================================================================

    cover: Optional[str] = None
    duration: Optional[int] = None  # Whole minutes, audio edition only
    description: Optional[str] = None
    publisher: Optional[str] = None
    published_year: Optional[str] = None  # 4-digit string
    isbn: Optional[str] = None

    @property
    def is_audiobook(self) -> bool:
        return self.duration is not None

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert to the provider's JSON shape.

        Fields that are None, empty strings or empty lists are left out.
        """
        raw: Dict[str, Any] = {
            'title': self.title,
            'subtitle': self.subtitle,
            'author': self.author,
            'language': self.language,
            'genres': list(self.genres),
            'series': [self.series.to_dict()] if self.series else None,
            'cover': self.cover,
            'duration': self.duration,
            'narrator': self.narrator,
            'description': self.description,
            'publisher': self.publisher,
            'publishedYear': self.published_year,
            'isbn': self.isbn,
        }
        return {key: value for key, value in raw.items() if not _is_empty(value)}


@dataclass(frozen=True)
class SearchResult:
    """Ordered matches for one search (at most the number of resolved candidates)."""
    matches: Tuple[BookMetadata, ...] = field(default_factory=tuple)

    def __len__(self) -> int:
        return len(self.matches)

    def to_dict(self) -> Dict[str, List[Dict[str, Any]]]:
        return {'matches': [match.to_dict() for match in self.matches]}


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, (str, list, tuple)) and len(value) == 0:
        return True
    return False
