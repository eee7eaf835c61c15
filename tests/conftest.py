from __future__ import annotations

from typing import Any, AsyncIterator

import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestClient, TestServer

from core.config_manager import ConfigManager
from core.server import create_app

API_KEY = "test-nookipedia-key"


class FakeUpstream:
    """Stand-in for the Nookipedia API that records what it receives."""

    def __init__(self) -> None:
        self.requests: list[dict[str, Any]] = []
        self.status = 200
        self.body = b'{"name":"Tom Nook"}'
        self.content_type = "application/json"
        self.extra_headers: dict[str, str] = {}
        self.base_url = ""

    async def handle(self, request: web.Request) -> web.Response:
        self.requests.append(
            {
                "method": request.method,
                "raw_path": request.raw_path,
                "headers": dict(request.headers),
            }
        )
        headers = {"Content-Type": self.content_type, **self.extra_headers}
        return web.Response(status=self.status, body=self.body, headers=headers)

    def create_app(self) -> web.Application:
        app = web.Application()
        app.router.add_route("*", "/{path:.*}", self.handle)
        return app


@pytest.fixture
def environ() -> dict[str, str]:
    return {"NOOKIPEDIA_API_KEY": API_KEY}


@pytest.fixture
def config(tmp_path, environ) -> ConfigManager:
    return ConfigManager(config_path=tmp_path / "config.json", environ=environ)


@pytest_asyncio.fixture
async def upstream() -> AsyncIterator[FakeUpstream]:
    fake = FakeUpstream()
    server = TestServer(fake.create_app())
    await server.start_server()
    fake.base_url = f"http://{server.host}:{server.port}"
    try:
        yield fake
    finally:
        await server.close()


@pytest_asyncio.fixture
async def client(config: ConfigManager, upstream: FakeUpstream) -> AsyncIterator[TestClient]:
    config.set("nookipedia.base_url", upstream.base_url)
    test_client = TestClient(TestServer(create_app(config)))
    await test_client.start_server()
    try:
        yield test_client
    finally:
        await test_client.close()
