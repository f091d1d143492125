import asyncio
import threading

import httpx
import pytest

from storytel_app.sources.http_client import build_client
from storytel_app.sources.stealth_headers import USER_AGENTS, IdentityRotation, SessionIdentity


def test_rotation_cycles_and_wraps():
    rotation = IdentityRotation(["ua-1", "ua-2", "ua-3"])
    seen = [rotation.next().user_agent for _ in range(7)]
    assert seen == ["ua-1", "ua-2", "ua-3", "ua-1", "ua-2", "ua-3", "ua-1"]


def test_default_pool():
    rotation = IdentityRotation()
    assert len(rotation) == len(USER_AGENTS) == 8
    assert rotation.next().user_agent == USER_AGENTS[0]


def test_empty_pool_is_rejected():
    with pytest.raises(ValueError):
        IdentityRotation([])


def test_concurrent_advance_hands_out_every_identity_evenly():
    rotation = IdentityRotation(["a", "b", "c", "d"])
    seen = []
    lock = threading.Lock()

    def worker():
        for _ in range(100):
            ua = rotation.next().user_agent
            with lock:
                seen.append(ua)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(seen) == 800
    assert {ua: seen.count(ua) for ua in "abcd"} == {"a": 200, "b": 200, "c": 200, "d": 200}


def test_json_headers():
    headers = SessionIdentity("agent/1.0").get_json_headers()
    assert headers["User-Agent"] == "agent/1.0"
    assert headers["Accept"].startswith("application/json")
    assert headers["Accept-Language"] == "en-US,en;q=0.9"
    assert "gzip" in headers["Accept-Encoding"]


def test_client_carries_identity_and_timeout():
    seen = {}

    def handler(request):
        seen['ua'] = request.headers['User-Agent']
        return httpx.Response(200, json={})

    async def go():
        client = build_client(SessionIdentity("agent/2.0"), transport=httpx.MockTransport(handler))
        async with client:
            assert client.timeout.read == 30.0
            await client.get("https://example.test/")

    asyncio.run(go())
    assert seen['ua'] == "agent/2.0"
