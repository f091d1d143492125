"""
================================================================================
Storytel Provider - Session Identities
================================================================================
Rotating browser identities for outbound catalog traffic.

Each search session takes the next identity from a fixed pool and keeps it
for every request of that session (search call + all detail calls), like a
real browser would. Consecutive sessions cycle through the pool so repeated
traffic is spread over distinguishable user agents.
================================================================================
"""

import threading
from dataclasses import dataclass
from typing import Dict, Optional, Sequence


USER_AGENTS = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:121.0) Gecko/20100101 Firefox/121.0",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.1 Safari/605.1.15",
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/119.0.0.0 Safari/537.36 Edg/119.0.0.0",
    "Mozilla/5.0 (X11; Ubuntu; Linux x86_64; rv:121.0) Gecko/20100101 Firefox/121.0",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/119.0.0.0 Safari/537.36",
)

JSON_ACCEPT = "application/json, text/javascript, */*; q=0.01"
ACCEPT_LANGUAGE = "en-US,en;q=0.9"
ACCEPT_ENCODING = "gzip, deflate"


@dataclass(frozen=True)
class SessionIdentity:
    """
    Browser identity bound to one search session.

    Usage:
        identity = rotation.next()
        headers = identity.get_json_headers()
    """

    user_agent: str

    def get_json_headers(self) -> Dict[str, str]:
        """Headers for the catalog's JSON endpoints."""
        return {
            "User-Agent": self.user_agent,
            "Accept": JSON_ACCEPT,
            "Accept-Language": ACCEPT_LANGUAGE,
            "Accept-Encoding": ACCEPT_ENCODING,
        }


class IdentityRotation:
    """
    Cyclic cursor over a fixed user-agent pool.

    One instance is created at app startup and shared by every search; the
    cursor advance is guarded so concurrent sessions never corrupt it.
    """

    def __init__(self, user_agents: Optional[Sequence[str]] = None):
        agents = tuple(user_agents) if user_agents is not None else USER_AGENTS
        if not agents:
            raise ValueError("IdentityRotation needs at least one user agent")
        self._identities = tuple(SessionIdentity(ua) for ua in agents)
        self._index = 0
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._identities)

    def next(self) -> SessionIdentity:
        """Return the current identity and advance the cursor, wrapping to 0."""
        with self._lock:
            identity = self._identities[self._index]
            self._index = (self._index + 1) % len(self._identities)
        return identity
