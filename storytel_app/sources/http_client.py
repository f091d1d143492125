from typing import Optional

import httpx

from .stealth_headers import SessionIdentity

DEFAULT_TIMEOUT = 30.0


def build_client(
    identity: SessionIdentity,
    timeout: float = DEFAULT_TIMEOUT,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> httpx.AsyncClient:
    """
    Build a transient client for one search session.

    The same client serves the session's search call and all of its detail
    calls, so every request of a session carries the same identity.
    """
    return httpx.AsyncClient(
        headers=identity.get_json_headers(),
        timeout=timeout,
        transport=transport,
    )
