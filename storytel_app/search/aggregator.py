"""
================================================================================
Storytel Provider - Search Aggregator
================================================================================
Orchestrates one metadata search end to end.

Flow:
  1. Clean the query ("Dune: Part Two" -> "Dune" -> "Dune" formatted)
  2. Cache lookup - a hit returns the stored result with no upstream calls
  3. Take one identity, build one session client
  4. Catalog search (failure -> empty result, not cached)
  5. First 5 candidates, detail fetched one at a time with a 1s pause
     between candidates; a failing candidate is skipped
  6. Normalize, cache, return

Detail calls are strictly sequential. Slower, but it keeps the request rate
low enough that the catalog does not start throttling.
================================================================================
"""

import re
import time
import asyncio
import logging
from typing import Callable, List, Optional

import httpx

from ..errors import CatalogError, InvalidCandidate
from ..metadata.models import BookMetadata, SearchResult
from ..metadata.normalizer import MetadataNormalizer
from ..sources.http_client import build_client
from ..sources.stealth_headers import IdentityRotation, SessionIdentity
from ..sources.storytel import StorytelCatalog
from .cache import SearchCache

logger = logging.getLogger(__name__)

ClientFactory = Callable[[SessionIdentity], httpx.AsyncClient]

MAX_CANDIDATES = 5
REQUEST_DELAY = 1.0
DEFAULT_LOCALE = "en"


def clean_query(raw_query: str) -> str:
    """Text before the first ':' ("Dune: Part Two" -> "Dune")."""
    return (raw_query or '').split(':', 1)[0].strip()


def format_query(query: str) -> str:
    """Collapse whitespace runs into the catalog's '+' separator."""
    return re.sub(r'\s+', '+', query)


class SearchAggregator:
    """
    Cache -> catalog search -> sequential detail fetch -> normalize.

    Constructed once at app startup and shared by all requests. The only
    shared mutable state lives in the cache and the identity rotation, both
    of which are thread-safe.
    """

    def __init__(
        self,
        cache: Optional[SearchCache] = None,
        catalog: Optional[StorytelCatalog] = None,
        identities: Optional[IdentityRotation] = None,
        client_factory: ClientFactory = build_client,
        normalizer: Optional[MetadataNormalizer] = None,
        max_candidates: int = MAX_CANDIDATES,
        request_delay: float = REQUEST_DELAY,
        default_locale: str = DEFAULT_LOCALE,
    ):
        self.cache = cache if cache is not None else SearchCache()
        self.catalog = catalog or StorytelCatalog()
        self.identities = identities or IdentityRotation()
        self.client_factory = client_factory
        self.normalizer = normalizer or MetadataNormalizer()
        self.max_candidates = max_candidates
        self.request_delay = request_delay
        self.default_locale = default_locale

    async def search(self, raw_query: str, author: str = '', locale: Optional[str] = None) -> SearchResult:
        """
        Search the catalog and return normalized matches.

        Never raises: any upstream failure of the search call itself yields
        an empty (uncached) result.

        Args:
            raw_query: Free-text title query
            author: Author hint (part of the cache key only)
            locale: Catalog locale, e.g. "en", "de", "sv"

        Returns:
            SearchResult with at most max_candidates matches
        """
        start_time = time.time()
        locale = locale or self.default_locale
        author = author or ''
        formatted_query = format_query(clean_query(raw_query))

        # CHECK CACHE FIRST
        cached = self.cache.get(formatted_query, author, locale)
        if cached is not None:
            logger.info(f"Cache HIT for '{formatted_query}' [{locale}] ({len(cached)} matches)")
            return cached

        logger.info(f"Cache MISS - searching '{formatted_query}' [{locale}]")

        identity = self.identities.next()
        try:
            async with self.client_factory(identity) as client:
                matches = await self._collect(client, formatted_query, locale)
        except CatalogError as e:
            logger.error(f"Error searching books: {e}")
            return SearchResult()
        except Exception:
            logger.exception(f"Unexpected error searching '{formatted_query}'")
            return SearchResult()

        result = SearchResult(matches=tuple(matches))
        self.cache.set(formatted_query, author, locale, result)

        elapsed = time.time() - start_time
        logger.info(f"Successfully fetched {len(result)} books in {elapsed:.2f}s")
        return result

    async def _collect(self, client: httpx.AsyncClient, query: str, locale: str) -> List[BookMetadata]:
        """Search, then fetch and normalize the first candidates one by one."""
        books = await self.catalog.search_books(client, locale, query)
        candidates = books[:self.max_candidates]
        logger.info(f"Found {len(candidates)} books in search results")

        matches: List[BookMetadata] = []
        for index, entry in enumerate(candidates):
            try:
                book_id = self.catalog.candidate_id(entry)
            except InvalidCandidate as e:
                logger.debug(f"Skipping candidate {index}: {e}")
                continue

            # Politeness delay between detail requests
            if index > 0 and self.request_delay > 0:
                await asyncio.sleep(self.request_delay)

            try:
                detail = await self.catalog.get_book_details(client, book_id, locale)
            except CatalogError as e:
                logger.warning(f"Error fetching book details for ID {book_id}: {e}")
                continue

            try:
                metadata = self.normalizer.normalize(detail, locale)
            except Exception:
                logger.exception(f"Error normalizing book {book_id}, skipping")
                continue
            if metadata is None:
                logger.debug(f"Book {book_id} has no usable edition, skipping")
                continue

            matches.append(metadata)

        return matches
