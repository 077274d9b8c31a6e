import asyncio

import httpx
import pytest

from authclient.client import AuthClient
from authclient.session import Identity, SessionState

BASE_URL = "https://api.test/api/v1"


class FakeAPI(httpx.AsyncBaseTransport):
    """Cookie-session API whose access credential starts out expired."""

    def __init__(self, refresh_status: int = 200):
        self.calls = []
        self.authorized = False
        self.refresh_status = refresh_status
        self.refresh_gate = None
        self.delays = {}
        self.always_401 = set()
        self.statuses = {}
        self.outstanding_refreshes = 0
        self.max_outstanding_refreshes = 0

    async def handle_async_request(self, request):
        path = request.url.path
        self.calls.append((request.method, path))

        if path.endswith("/refresh-token"):
            self.outstanding_refreshes += 1
            self.max_outstanding_refreshes = max(self.max_outstanding_refreshes,
                                                 self.outstanding_refreshes)
            try:
                if self.refresh_gate is not None:
                    await self.refresh_gate.wait()
            finally:
                self.outstanding_refreshes -= 1
            if self.refresh_status == 200:
                self.authorized = True
                return httpx.Response(200, json={"message": "Token refreshed"},
                                      headers={"Set-Cookie": "access_token=fresh; Path=/"})
            return httpx.Response(self.refresh_status, json={"error": "Invalid refresh token"})

        if path in self.statuses:
            return httpx.Response(self.statuses[path], json={"error": "boom"})

        if path in self.always_401 or not self.authorized:
            return httpx.Response(401, json={"error": "Unauthorized"})

        delay = self.delays.get(path)
        if delay:
            await asyncio.sleep(delay)
        return httpx.Response(200, json={"path": path})

    def count(self, suffix: str) -> int:
        return sum(1 for _, path in self.calls if path.endswith(suffix))

    def expire(self):
        self.authorized = False


class SpySession(SessionState):
    def __init__(self, store=None):
        super().__init__(store)
        self.clear_calls = 0

    def clear(self):
        self.clear_calls += 1
        super().clear()


async def wait_for_pending(client: AuthClient, count: int):
    """Spin the loop until `count` callers are parked behind the refresh."""
    for _ in range(1000):
        if client.coordinator.pending >= count:
            return
        await asyncio.sleep(0)
    raise AssertionError(f"expected {count} queued callers, got {client.coordinator.pending}")


@pytest.fixture
def api():
    return FakeAPI()


@pytest.fixture
def session():
    spy = SpySession()
    spy.set(Identity(user_id="u-1", email="ada@example.com", role="ADMIN"))
    return spy


@pytest.fixture
async def client(api, session):
    async with AuthClient(BASE_URL, session=session, transport=api, refresh_timeout=1.0) as c:
        yield c
