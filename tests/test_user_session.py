import asyncio
import json

import httpx
import pytest

from src.client.api_client import ApiClient
from src.client.user_session import UserSession, login_payload_from_account
from tests.test_client_pipeline import BASE_URL, FakeTokenProvider, envelope

ACCOUNT = {
    "home_account_id": "home-1",
    "local_account_id": "oid-001",
    "username": "alice@test.com",
    "realm": "tenant-1",
    "id_token_claims": {"name": "Alice"},
}


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


class LoginBackend:
    def __init__(self, status=200):
        self.status = status
        self.calls = 0
        self.gate: asyncio.Event | None = None

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls += 1
        if self.gate is not None:
            await self.gate.wait()
        if self.status != 200:
            return httpx.Response(self.status, json=envelope(status=self.status, errors=["down"]))
        body = json.loads(request.content)
        return httpx.Response(200, json=envelope({"id": 1, **body}))


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def backend():
    return LoginBackend()


@pytest.fixture
def tokens():
    return FakeTokenProvider(account=dict(ACCOUNT))


@pytest.fixture
async def session(backend, tokens, clock):
    http = httpx.AsyncClient(transport=httpx.MockTransport(backend), base_url=BASE_URL)
    api = ApiClient.with_default_pipeline(tokens, http_client=http)
    yield UserSession(api, tokens, cooldown_seconds=5.0, clock=clock)
    await api.aclose()


def test_login_payload_from_account():
    assert login_payload_from_account(ACCOUNT) == {
        "externalUserId": "oid-001",
        "email": "alice@test.com",
        "name": "Alice",
        "tenantId": "tenant-1",
    }


class TestSync:
    async def test_sync_posts_login(self, session, backend):
        user = await session.sync()

        assert user["id"] == 1
        assert user["email"] == "alice@test.com"
        assert session.current_user == user
        assert backend.calls == 1

    async def test_cooldown_skips_resync(self, session, backend, clock):
        await session.sync()
        clock.now += 4.9
        await session.sync()
        assert backend.calls == 1

        clock.now += 0.2
        await session.sync()
        assert backend.calls == 2

    async def test_force_bypasses_cooldown(self, session, backend):
        await session.sync()
        await session.sync(force=True)
        assert backend.calls == 2

    async def test_concurrent_sync_is_suppressed(self, session, backend):
        backend.gate = asyncio.Event()
        first = asyncio.create_task(session.sync())
        await asyncio.sleep(0)
        while backend.calls == 0:
            await asyncio.sleep(0)

        assert await session.sync() is None

        backend.gate.set()
        assert (await first)["id"] == 1
        assert backend.calls == 1

    async def test_no_account(self, session, tokens, backend):
        tokens.account = None
        assert await session.sync() is None
        assert await session.get_current_user() is None
        assert backend.calls == 0


class TestCurrentUserAndLogout:
    async def test_backend_failure_falls_back_to_local_account(self, session, backend):
        backend.status = 500

        user = await session.get_current_user()

        assert user["id"] == 0
        assert user["email"] == "alice@test.com"
        assert backend.calls == 2

    async def test_logout_clears_state(self, session, tokens):
        await session.sync()

        session.logout()

        assert session.current_user is None
        assert tokens.cleared
        assert not session.is_authenticated()
