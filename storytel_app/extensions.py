from functools import partial

from .log import log
from .metadata.normalizer import MetadataNormalizer
from .search.aggregator import SearchAggregator
from .search.cache import SearchCache
from .sources.http_client import build_client
from .sources.stealth_headers import IdentityRotation
from .sources.storytel import StorytelCatalog

EXTENSION_KEY = 'storytel_search'


# =============================================================================
# APPLICATION EXTENSIONS (one shared aggregator per app)
# =============================================================================

def init_search(app, aggregator: SearchAggregator = None) -> SearchAggregator:
    """
    Build the shared aggregator from app config and attach it to the app.

    The aggregator (and with it the identity rotation and the result cache)
    lives as long as the app. Tests may pass a prebuilt aggregator.
    """
    if aggregator is None:
        cfg = app.config
        aggregator = SearchAggregator(
            cache=SearchCache(ttl=cfg['CACHE_TTL'], max_size=cfg['CACHE_MAX_SIZE']),
            catalog=StorytelCatalog(),
            identities=IdentityRotation(),
            client_factory=partial(build_client, timeout=cfg['HTTP_TIMEOUT']),
            normalizer=MetadataNormalizer(),
            max_candidates=cfg['MAX_CANDIDATES'],
            request_delay=cfg['REQUEST_DELAY'],
            default_locale=cfg['DEFAULT_LOCALE'],
        )
    app.extensions[EXTENSION_KEY] = aggregator
    log(f"Search aggregator ready (cache ttl={aggregator.cache.ttl}s, "
        f"{len(aggregator.identities)} identities)")
    return aggregator


def get_search_aggregator(app) -> SearchAggregator:
    return app.extensions[EXTENSION_KEY]
