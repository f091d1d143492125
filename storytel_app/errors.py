"""
Error taxonomy for catalog access.

Per-candidate errors (InvalidCandidate, InvalidDetail, a single detail call's
UpstreamUnavailable) are absorbed by the aggregator and only shrink the match
list. A failing top-level search call degrades the whole search to an empty
result.
"""

from typing import Optional


class CatalogError(Exception):
    """Base class for everything that can go wrong talking to the catalog."""


class UpstreamUnavailable(CatalogError):
    """Transport error, timeout or non-2xx status from a catalog endpoint."""
    def __init__(self, url: str, reason: str, status_code: Optional[int] = None):
        self.url = url
        self.reason = reason
        self.status_code = status_code
        if status_code is not None:
            super().__init__(f"{url} returned HTTP {status_code}")
        else:
            super().__init__(f"{url} unreachable: {reason}")


class MalformedResponse(CatalogError):
    """Response body is not JSON or lacks the expected list/object shape."""
    def __init__(self, url: str, reason: str):
        self.url = url
        self.reason = reason
        super().__init__(f"Malformed response from {url}: {reason}")


class InvalidCandidate(CatalogError):
    """Search entry without a usable nested book id."""


class InvalidDetail(CatalogError):
    """Detail payload without a book or without any edition."""
