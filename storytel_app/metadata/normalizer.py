"""
================================================================================
Storytel Provider - Metadata Normalizer
================================================================================
Turns a Storytel detail payload into a BookMetadata.

Detail payload shape:
    {"slb": {"book": {...}, "abook": {...}, "ebook": {...}}}

  - book:  name, authorsAsString, language.isoValue, series[].name,
           seriesOrder, category.title, largeCover
  - abook: audio edition (length in ms, narratorAsString, description,
           publisher.name, releaseDateFormat, isbn)
  - ebook: text edition (same fields minus length/narrator)

Title cleanup is heuristic: locale marker rules, series stripping and a
generic ":"/"-" subtitle split. Titles whose punctuation is part of the real
title can be split wrongly; that approximation is accepted.
================================================================================
"""

import re
import math
import logging
from typing import Any, Dict, List, Optional, Tuple

from ..errors import InvalidDetail
from .models import BookMetadata, SeriesEntry
from .patterns import apply_title_patterns

logger = logging.getLogger(__name__)

IMAGE_HOST = "https://storytel.com"
MS_PER_MINUTE = 60000
MIN_SUBTITLE_LENGTH = 3

GENRE_RENAMES = {
    'Sci-Fi': 'Science-Fiction',
}


def ensure_string(value: Any) -> str:
    """None -> '', anything else -> stripped str."""
    if value is None:
        return ''
    return str(value).strip()


def split_genres(category: str) -> List[str]:
    """Split a category label on '/' or ',' and rename known aliases."""
    if not category:
        return []
    genres = []
    for piece in re.split(r'[/,]', category):
        genre = piece.strip()
        if not genre:
            continue
        genres.append(GENRE_RENAMES.get(genre, genre))
    return genres


def upgrade_cover_url(path: Optional[str], image_host: str = IMAGE_HOST) -> Optional[str]:
    """Swap the 320x320 rendition for 640x640 and make the path absolute."""
    if not path:
        return None
    return f"{image_host}{path.replace('320x320', '640x640')}"


def clean_title(title: str, series_name: Optional[str] = None,
                series_order: Optional[str] = None) -> Tuple[str, Optional[str]]:
    """
    Split a raw catalog title into (title, subtitle).

    Order:
      1. strip locale markers
      2. if the series name is in the title: subtitle = "<series> <order>",
         keep the part before "-"/"," + series name, drop the series name
      3. generic split on the first ":" or "-" when the rest is >= 3 chars
      4. strip locale markers again, trim
    """
    subtitle = None
    title = apply_title_patterns(title)

    if series_name and series_name in title:
        subtitle = f"{series_name} {series_order}"
        before_series = re.match(
            r'^(.+?)[-,]\s*' + re.escape(series_name), title, re.IGNORECASE
        )
        if before_series:
            title = before_series.group(1).strip()
        title = title.replace(series_name, '', 1)

    if ':' in title or '-' in title:
        head, rest = re.split(r'[:\-]', title, maxsplit=1)
        if len(rest.strip()) >= MIN_SUBTITLE_LENGTH:
            title = head.strip()
            subtitle = rest.strip()

    title = apply_title_patterns(title).strip()
    if subtitle:
        subtitle = subtitle.strip()
    return title, subtitle or None


class MetadataNormalizer:
    """
    Detail payload -> BookMetadata.

    Pure: no I/O, no shared state. The session locale is only used as the
    language fallback.
    """

    def __init__(self, image_host: str = IMAGE_HOST):
        self.image_host = image_host

    def normalize(self, detail: Any, locale: str) -> Optional[BookMetadata]:
        """Return canonical metadata, or None for an unusable payload."""
        try:
            book, audio, text = self._unpack(detail)
        except InvalidDetail as e:
            logger.debug(f"Skipping detail record: {e}")
            return None

        series = self._series(book)
        raw_title = ensure_string(book.get('name'))
        title, subtitle = clean_title(
            raw_title,
            series.series if series else None,
            series.sequence if series else None,
        )

        # Edition-level fields come from the audio edition when there is one
        edition = audio if audio is not None else text

        return BookMetadata(
            title=title or None,
            subtitle=subtitle,
            author=ensure_string(book.get('authorsAsString')) or None,
            language=self._language(book, locale),
            genres=tuple(split_genres(self._category(book))),
            series=series,
            cover=upgrade_cover_url(ensure_string(book.get('largeCover')), self.image_host),
            duration=self._duration(audio),
            narrator=self._narrator(audio),
            description=ensure_string(edition.get('description')) or None,
            publisher=ensure_string(_nested(edition, 'publisher', 'name')) or None,
            published_year=self._published_year(edition),
            isbn=ensure_string(edition.get('isbn')) or None,
        )

    # =========================================================================
    # HELPERS
    # =========================================================================

    def _unpack(self, detail: Any) -> Tuple[Dict, Optional[Dict], Optional[Dict]]:
        slb = detail.get('slb') if isinstance(detail, dict) else None
        if not isinstance(slb, dict):
            raise InvalidDetail("missing 'slb' object")

        book = slb.get('book')
        if not isinstance(book, dict):
            raise InvalidDetail("missing 'book' object")

        audio = slb.get('abook') if isinstance(slb.get('abook'), dict) else None
        text = slb.get('ebook') if isinstance(slb.get('ebook'), dict) else None
        if audio is None and text is None:
            raise InvalidDetail(f"book {book.get('id')!r} has no audio or text edition")

        return book, audio, text

    def _series(self, book: Dict) -> Optional[SeriesEntry]:
        series_list = book.get('series') or []
        order = book.get('seriesOrder')
        if not isinstance(series_list, list) or not series_list or not order:
            return None
        if not isinstance(series_list[0], dict):
            return None
        name = ensure_string(series_list[0].get('name'))
        if not name:
            return None
        return SeriesEntry(series=name, sequence=ensure_string(order))

    def _language(self, book: Dict, locale: str) -> Optional[str]:
        iso = _nested(book, 'language', 'isoValue')
        return ensure_string(iso or locale) or None

    def _category(self, book: Dict) -> str:
        return ensure_string(_nested(book, 'category', 'title'))

    def _duration(self, audio: Optional[Dict]) -> Optional[int]:
        if audio is None:
            return None
        length = audio.get('length')
        if isinstance(length, bool) or not isinstance(length, (int, float)):
            return None
        if not math.isfinite(length):
            return None
        return int(length // MS_PER_MINUTE)

    def _narrator(self, audio: Optional[Dict]) -> Optional[str]:
        if audio is None:
            return None
        return ensure_string(audio.get('narratorAsString')) or None

    def _published_year(self, edition: Dict) -> Optional[str]:
        released = ensure_string(edition.get('releaseDateFormat'))
        return released[:4] or None


def _nested(obj: Optional[Dict], *keys: str) -> Any:
    for key in keys:
        if not isinstance(obj, dict):
            return None
        obj = obj.get(key)
    return obj
