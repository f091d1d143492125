import asyncio

import httpx
import pytest

from storytel_app.metadata.normalizer import MetadataNormalizer
from storytel_app.search import aggregator as aggregator_module
from storytel_app.search.aggregator import SearchAggregator, clean_query, format_query
from storytel_app.search.cache import SearchCache
from storytel_app.sources.http_client import build_client
from storytel_app.sources.stealth_headers import IdentityRotation

SEARCH_PATH = "/api/search.action"
DETAIL_PATH = "/api/getBookInfoForContent.action"


class FakeCatalog:
    """
    MockTransport handler standing in for the Storytel API.

    Records every request so tests can assert on call counts and params.
    """

    def __init__(self, book_ids=(1, 2, 3), search_response=None, detail_overrides=None):
        self.entries = [{'book': {'id': book_id}} for book_id in book_ids]
        self.search_response = search_response
        self.detail_overrides = detail_overrides or {}
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path == SEARCH_PATH:
            if self.search_response is not None:
                return self.search_response(request)
            return httpx.Response(200, json={'books': self.entries})

        book_id = request.url.params['bookId']
        override = self.detail_overrides.get(book_id)
        if override is not None:
            return override(request)
        return httpx.Response(200, json={'slb': {
            'book': {'id': book_id, 'name': f'Book {book_id}', 'authorsAsString': 'Author'},
            'abook': {'length': 120000 * int(book_id), 'narratorAsString': 'Narrator'},
        }})

    @property
    def search_calls(self):
        return [r for r in self.requests if r.url.path == SEARCH_PATH]

    @property
    def detail_calls(self):
        return [r for r in self.requests if r.url.path == DETAIL_PATH]

    def detail_ids(self):
        return [r.url.params['bookId'] for r in self.detail_calls]


def make_aggregator(catalog, **kwargs):
    kwargs.setdefault('request_delay', 0)
    return SearchAggregator(
        cache=kwargs.pop('cache', SearchCache()),
        identities=kwargs.pop('identities', IdentityRotation(["ua-1", "ua-2"])),
        client_factory=lambda identity: build_client(identity, transport=httpx.MockTransport(catalog)),
        **kwargs,
    )


def run(aggregator, *args):
    return asyncio.run(aggregator.search(*args))


def connect_error(request):
    raise httpx.ConnectError("connection refused", request=request)


# =============================================================================
# QUERY HANDLING
# =============================================================================

def test_clean_and_format_query():
    assert clean_query("Dune: Part Two") == "Dune"
    assert clean_query("  Dune  ") == "Dune"
    assert format_query("The  Left Hand\tof Darkness") == "The+Left+Hand+of+Darkness"


def test_search_request_uses_clean_query_and_locale():
    catalog = FakeCatalog(book_ids=(1,))
    run(make_aggregator(catalog), "Dune: Part Two", "", "sv")

    params = catalog.search_calls[0].url.params
    assert params['q'] == "Dune"
    assert params['request_locale'] == "sv"
    assert catalog.detail_calls[0].url.params['request_locale'] == "sv"


def test_missing_locale_uses_default():
    catalog = FakeCatalog(book_ids=(1,))
    result = run(make_aggregator(catalog, default_locale="de"), "Dune", "", None)

    assert catalog.search_calls[0].url.params['request_locale'] == "de"
    assert result.matches[0].language == "de"


# =============================================================================
# AGGREGATION
# =============================================================================

def test_matches_keep_candidate_order():
    catalog = FakeCatalog(book_ids=(3, 1, 2))
    result = run(make_aggregator(catalog), "Dune", "", "en")

    assert [m.title for m in result.matches] == ["Book 3", "Book 1", "Book 2"]
    assert [m.duration for m in result.matches] == [6, 2, 4]


def test_only_first_five_candidates_are_fetched():
    catalog = FakeCatalog(book_ids=range(1, 8))
    result = run(make_aggregator(catalog), "Dune", "", "en")

    assert catalog.detail_ids() == ["1", "2", "3", "4", "5"]
    assert len(result.matches) == 5


def test_invalid_candidates_are_skipped():
    catalog = FakeCatalog(book_ids=(7,))
    catalog.entries = [{'book': {}}, {'other': 1}, {'book': {'id': 7}}, 'junk']
    result = run(make_aggregator(catalog), "Dune", "", "en")

    assert catalog.detail_ids() == ["7"]
    assert len(result.matches) == 1


@pytest.mark.parametrize("failure", [
    connect_error,
    lambda request: httpx.Response(500, text="oops"),
    lambda request: httpx.Response(200, text="<html>not json</html>"),
])
def test_failed_detail_call_only_drops_that_candidate(failure):
    catalog = FakeCatalog(book_ids=(1, 2, 3, 4, 5), detail_overrides={'3': failure})
    result = run(make_aggregator(catalog), "Dune", "", "en")

    assert len(catalog.detail_calls) == 5
    assert [m.title for m in result.matches] == ["Book 1", "Book 2", "Book 4", "Book 5"]


def test_detail_without_edition_is_skipped():
    no_edition = lambda request: httpx.Response(200, json={'slb': {'book': {'id': 2, 'name': 'X'}}})
    catalog = FakeCatalog(book_ids=(1, 2), detail_overrides={'2': no_edition})
    result = run(make_aggregator(catalog), "Dune", "", "en")

    assert [m.title for m in result.matches] == ["Book 1"]


def test_non_finite_length_keeps_candidate_without_duration():
    nan_length = lambda request: httpx.Response(
        200,
        content=b'{"slb": {"book": {"id": 2, "name": "Book 2"}, "abook": {"length": NaN}}}',
        headers={'content-type': 'application/json'},
    )
    catalog = FakeCatalog(book_ids=(1, 2, 3), detail_overrides={'2': nan_length})
    result = run(make_aggregator(catalog), "Dune", "", "en")

    assert [m.title for m in result.matches] == ["Book 1", "Book 2", "Book 3"]
    assert [m.duration for m in result.matches] == [2, None, 6]


def test_normalizer_error_only_drops_that_candidate():
    class FlakyNormalizer(MetadataNormalizer):
        def normalize(self, detail, locale):
            if detail['slb']['book']['id'] == '2':
                raise ValueError("cannot convert float NaN to integer")
            return super().normalize(detail, locale)

    catalog = FakeCatalog(book_ids=(1, 2, 3))
    aggregator = make_aggregator(catalog, normalizer=FlakyNormalizer())
    result = run(aggregator, "Dune", "", "en")

    assert [m.title for m in result.matches] == ["Book 1", "Book 3"]
    assert len(catalog.detail_calls) == 3
    assert len(aggregator.cache) == 1


def test_text_only_candidate_has_no_duration_or_narrator():
    text_only = lambda request: httpx.Response(200, json={'slb': {
        'book': {'id': 1, 'name': 'Dune'},
        'ebook': {'isbn': '9780441013593'},
    }})
    catalog = FakeCatalog(book_ids=(1,), detail_overrides={'1': text_only})
    result = run(make_aggregator(catalog), "Dune: Part Two", "", "en")

    assert catalog.search_calls[0].url.params['q'] == "Dune"
    match = result.to_dict()['matches'][0]
    assert 'duration' not in match
    assert 'narrator' not in match


# =============================================================================
# TOP-LEVEL FAILURES
# =============================================================================

@pytest.mark.parametrize("search_response", [
    connect_error,
    lambda request: httpx.Response(503),
    lambda request: httpx.Response(200, json={'results': []}),
    lambda request: httpx.Response(200, json={'books': None}),
    lambda request: httpx.Response(200, text="not json"),
])
def test_failed_search_call_degrades_to_empty_and_is_not_cached(search_response):
    catalog = FakeCatalog(search_response=search_response)
    aggregator = make_aggregator(catalog)

    assert run(aggregator, "Dune", "", "en").to_dict() == {'matches': []}
    assert run(aggregator, "Dune", "", "en").to_dict() == {'matches': []}

    assert len(catalog.search_calls) == 2
    assert catalog.detail_calls == []
    assert len(aggregator.cache) == 0


def test_unexpected_error_degrades_to_empty():
    def broken_factory(identity):
        raise RuntimeError("bug")

    aggregator = make_aggregator(FakeCatalog(book_ids=(1,)))
    aggregator.client_factory = broken_factory
    result = run(aggregator, "Dune", "", "en")

    assert result.to_dict() == {'matches': []}
    assert len(aggregator.cache) == 0


# =============================================================================
# CACHING & SESSIONS
# =============================================================================

def test_repeated_search_is_a_pure_cache_hit():
    catalog = FakeCatalog(book_ids=(1, 2, 3))
    aggregator = make_aggregator(catalog)

    first = run(aggregator, "Dune", "Herbert", "en")
    second = run(aggregator, "Dune", "Herbert", "en")

    assert second is first
    assert len(catalog.search_calls) == 1
    assert len(catalog.detail_calls) == 3


def test_queries_with_same_clean_form_share_cache_entry():
    catalog = FakeCatalog(book_ids=(1,))
    aggregator = make_aggregator(catalog)

    run(aggregator, "Dune: Part One", "", "en")
    run(aggregator, "Dune: Part Two", "", "en")

    assert len(catalog.search_calls) == 1


def test_empty_successful_search_is_cached():
    catalog = FakeCatalog(book_ids=())
    aggregator = make_aggregator(catalog)

    run(aggregator, "Nothing", "", "en")
    run(aggregator, "Nothing", "", "en")

    assert len(catalog.search_calls) == 1


def test_session_shares_one_identity_and_sessions_rotate():
    catalog = FakeCatalog(book_ids=(1, 2))
    aggregator = make_aggregator(catalog)

    run(aggregator, "Dune", "", "en")
    first_session = {r.headers['User-Agent'] for r in catalog.requests}
    catalog.requests.clear()

    run(aggregator, "Emma", "", "en")
    second_session = {r.headers['User-Agent'] for r in catalog.requests}

    assert first_session == {"ua-1"}
    assert second_session == {"ua-2"}


def test_delay_before_every_candidate_after_the_first(monkeypatch):
    delays = []

    async def fake_sleep(seconds):
        delays.append(seconds)

    monkeypatch.setattr(aggregator_module.asyncio, 'sleep', fake_sleep)
    catalog = FakeCatalog(book_ids=(1, 2, 3))
    run(make_aggregator(catalog, request_delay=1.0), "Dune", "", "en")

    assert delays == [1.0, 1.0]


def test_no_delay_on_cache_hit(monkeypatch):
    delays = []

    async def fake_sleep(seconds):
        delays.append(seconds)

    monkeypatch.setattr(aggregator_module.asyncio, 'sleep', fake_sleep)
    catalog = FakeCatalog(book_ids=(1, 2))
    aggregator = make_aggregator(catalog, request_delay=1.0)
    run(aggregator, "Dune", "", "en")
    run(aggregator, "Dune", "", "en")

    assert delays == [1.0]
