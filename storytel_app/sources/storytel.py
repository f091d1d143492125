"""
================================================================================
Storytel Provider - Catalog Client
================================================================================
Thin client for the two Storytel endpoints the provider consumes:

  - search.action                   ?request_locale=<locale>&q=<query>
        -> {"books": [{"book": {"id": ...}, ...}, ...]}
  - getBookInfoForContent.action    ?bookId=<id>&request_locale=<locale>
        -> {"slb": {"book": {...}, "abook": {...}, "ebook": {...}}}

The client never owns an HTTP session: callers pass the session client so all
calls of one search share one identity. No retries - a failed call raises
immediately and the caller decides how to degrade.
================================================================================
"""

import logging
from typing import Any, Dict, List

import httpx

from ..errors import InvalidCandidate, MalformedResponse, UpstreamUnavailable

logger = logging.getLogger(__name__)

SEARCH_URL = "https://www.storytel.com/api/search.action"
DETAIL_URL = "https://www.storytel.com/api/getBookInfoForContent.action"


class StorytelCatalog:
    """Storytel search + detail endpoints."""

    id = "storytel"
    name = "Storytel"

    def __init__(self, search_url: str = SEARCH_URL, detail_url: str = DETAIL_URL):
        self.search_url = search_url
        self.detail_url = detail_url

    async def _get_json(self, client: httpx.AsyncClient, url: str, params: Dict[str, Any]) -> Any:
        """
        GET a catalog endpoint and decode its JSON body.

        Raises:
            UpstreamUnavailable: transport error, timeout or non-2xx status
            MalformedResponse: body is not JSON
        """
        try:
            response = await client.get(url, params=params)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise UpstreamUnavailable(url, "bad status", e.response.status_code) from e
        except httpx.RequestError as e:
            raise UpstreamUnavailable(url, str(e) or e.__class__.__name__) from e

        try:
            return response.json()
        except ValueError as e:
            raise MalformedResponse(url, "body is not JSON") from e

    async def search_books(self, client: httpx.AsyncClient, locale: str, query: str) -> List[Dict[str, Any]]:
        """
        Run a catalog search.

        Returns:
            The raw "books" result list (may be empty)

        Raises:
            UpstreamUnavailable, MalformedResponse
        """
        data = await self._get_json(client, self.search_url, {
            'request_locale': locale,
            'q': query,
        })

        if not isinstance(data, dict) or not isinstance(data.get('books'), list):
            raise MalformedResponse(self.search_url, "no 'books' list")

        return data['books']

    async def get_book_details(self, client: httpx.AsyncClient, book_id: Any, locale: str) -> Dict[str, Any]:
        """
        Fetch the detail record for one book.

        Raises:
            UpstreamUnavailable, MalformedResponse
        """
        data = await self._get_json(client, self.detail_url, {
            'bookId': book_id,
            'request_locale': locale,
        })

        if not isinstance(data, dict):
            raise MalformedResponse(self.detail_url, "detail is not an object")

        return data

    @staticmethod
    def candidate_id(entry: Any) -> Any:
        """
        Extract the nested book id from a search entry.

        Raises:
            InvalidCandidate: entry has no usable id
        """
        book = entry.get('book') if isinstance(entry, dict) else None
        book_id = book.get('id') if isinstance(book, dict) else None
        if book_id is None or book_id == '' or isinstance(book_id, bool):
            raise InvalidCandidate(f"search entry without book id: {entry!r:.80}")
        return book_id

    def __repr__(self):
        return f"<{self.__class__.__name__}(search_url='{self.search_url}')>"
