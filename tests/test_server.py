from __future__ import annotations


async def test_root_tells_visitors_they_are_lost(client) -> None:
    response = await client.get("/")

    assert response.status == 200
    assert await response.text() == "You might not be in the right place"


async def test_every_response_allows_any_origin(client) -> None:
    for path in ("/", "/nookipedia/villagers", "/does-not-exist"):
        response = await client.get(path)
        assert response.headers["Access-Control-Allow-Origin"] == "*"


async def test_preflight_is_answered_without_proxying(client, upstream) -> None:
    response = await client.options(
        "/nookipedia/villagers",
        headers={
            "Origin": "http://localhost:8081",
            "Access-Control-Request-Method": "GET",
            "Access-Control-Request-Headers": "content-type",
        },
    )

    assert response.status == 204
    assert response.headers["Access-Control-Allow-Origin"] == "*"
    assert "GET" in response.headers["Access-Control-Allow-Methods"]
    assert response.headers["Access-Control-Allow-Headers"] == "content-type"
    assert upstream.requests == []


async def test_mount_prefix_is_configurable(config, upstream) -> None:
    from aiohttp.test_utils import TestClient, TestServer

    from core.server import create_app

    config.set("nookipedia.base_url", upstream.base_url)
    config.set("nookipedia.mount_prefix", "/api/acnh/")
    client = TestClient(TestServer(create_app(config)))
    await client.start_server()
    try:
        response = await client.get("/api/acnh/nh/sea?month=8")

        assert response.status == 200
        assert upstream.requests[0]["raw_path"] == "/nh/sea?month=8"
    finally:
        await client.close()
