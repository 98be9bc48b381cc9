"""
Shared fixtures: a scripted backend behind httpx.MockTransport, a fake
clock and a session store on a temporary directory.
"""

import json

import httpx
import pytest
import pytest_asyncio

from unigen_auth.config import AuthConfig
from unigen_auth.http import BackendClient
from unigen_auth.storage import FileStorage, MemoryStorage, SessionStorePolicy

API_BASE = "http://backend.test/api/v1"
API_PREFIX = "/api/v1"


class FakeBackend:
    """
    Answers requests from a route table and records what it was sent.

    A route is either a (status, body) pair or a callable taking the request
    and returning an httpx.Response (or a coroutine producing one).
    """

    def __init__(self):
        self.routes = {}
        self.requests = []

    def on(self, method, path, status=200, body=None, handler=None):
        self.routes[(method, path)] = handler or (status, body)
        return self

    def __call__(self, request: httpx.Request):
        path = request.url.path
        if path.startswith(API_PREFIX):
            path = path[len(API_PREFIX):]
        self.requests.append((request.method, path, request))
        route = self.routes.get((request.method, path))
        if route is None:
            return httpx.Response(404, json={"message": f"no route {path}"})
        if callable(route):
            return route(request)
        status, body = route
        if body is None:
            return httpx.Response(status)
        return httpx.Response(status, json=body)

    def calls(self, path):
        return [r for (_, p, r) in self.requests if p == path]

    def body(self, path, index=-1):
        return json.loads(self.calls(path)[index].content)


class FakeClock:
    def __init__(self, start=1000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def config(tmp_path):
    return AuthConfig(
        api_base_url=API_BASE,
        kakao_client_id="kakao-rest-key",
        kakao_token_url="https://kauth.test/oauth/token",
        kakao_authorize_url="https://kauth.test/oauth/authorize",
        kakao_logout_url="https://kapi.test/v1/user/logout",
        durable_store_path=str(tmp_path / "session.json"),
        redis_url=None,
    )


@pytest_asyncio.fixture
async def client(config, backend):
    client = BackendClient(config, transport=httpx.MockTransport(backend))
    yield client
    await client.aclose()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(config):
    return SessionStorePolicy(
        durable=FileStorage(config.durable_store_path),
        tab=MemoryStorage(),
    )


@pytest.fixture
def kakao_server():
    """Stands in for kauth.kakao.com / kapi.kakao.com."""
    return FakeBackend().on(
        "POST", "/oauth/token", body={"access_token": "kakao-access", "token_type": "bearer"}
    )


@pytest_asyncio.fixture
async def kakao(config, kakao_server):
    from unigen_auth.oauth import KakaoProvider

    provider = KakaoProvider(config, transport=httpx.MockTransport(kakao_server))
    provider.init()
    yield provider
    await provider.aclose()
