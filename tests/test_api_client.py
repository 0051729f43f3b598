"""
Integration tests for the signage API client against a local aiohttp server.

Tests cover:
- Display lookup by device key (200, 404, non-JSON bodies)
- Heartbeat body and auth header
- Unreachable API and request timeouts
"""
import asyncio
import json
import socket

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from conftest import display_payload
from core.api_client import ApiSession, ApiUnreachableError, SignageApiClient


def make_api(received):
    async def get_display(request):
        received.append(("get", request.match_info["device_key"], request.headers.get("Authorization")))
        if request.match_info["device_key"] == "abc123":
            return web.json_response(display_payload())
        if request.match_info["device_key"] == "plain":
            return web.Response(text=json.dumps(display_payload()), content_type="text/plain")
        if request.match_info["device_key"] == "empty":
            return web.Response(status=502)
        if request.match_info["device_key"] == "broken":
            return web.Response(status=500, text="<html>Internal Server Error</html>")
        if request.match_info["device_key"] == "slow":
            await asyncio.sleep(1)
            return web.json_response(display_payload())
        return web.json_response({"error": "Display not found"}, status=404)

    async def heartbeat(request):
        received.append(("heartbeat", await request.json(), request.headers.get("Authorization")))
        return web.json_response({"success": True})

    app = web.Application()
    app.router.add_get("/api/displays/player/{device_key}", get_display)
    app.router.add_post("/api/displays/heartbeat", heartbeat)
    return app


async def with_server(device_key, action, token=None, fetch_timeout=5.0):
    received = []
    server = TestServer(make_api(received))
    await server.start_server()
    client = SignageApiClient(ApiSession(
        api_url=f"http://{server.host}:{server.port}/",
        device_key=device_key,
        token=token,
        fetch_timeout=fetch_timeout,
    ))
    try:
        result = await action(client)
    finally:
        await client.close()
        await server.close()
    return result, received


def unused_port():
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


@pytest.mark.integration
class TestSignageApiClient:
    """Tests for SignageApiClient over HTTP."""

    def test_get_display(self):
        response, received = asyncio.run(with_server("abc123", lambda c: c.get_display()))

        assert response.status == 200
        assert response.ok
        assert response.payload["display"]["name"] == "Lobby Screen"
        assert received == [("get", "abc123", None)]

    def test_get_display_not_found(self):
        response, _ = asyncio.run(with_server("missing", lambda c: c.get_display()))

        assert response.status == 404
        assert response.error_message == "Display not found"

    def test_non_json_body(self):
        response, _ = asyncio.run(with_server("broken", lambda c: c.get_display()))

        assert response.status == 500
        assert response.payload == {}
        assert response.error_message is None

    def test_json_body_without_json_content_type(self):
        response, _ = asyncio.run(with_server("plain", lambda c: c.get_display()))

        assert response.ok
        assert response.payload["display"]["id"] == "d1"

    def test_empty_body(self):
        response, _ = asyncio.run(with_server("empty", lambda c: c.get_display()))

        assert response.status == 502
        assert response.payload == {}

    def test_heartbeat_body(self):
        response, received = asyncio.run(with_server("abc123", lambda c: c.send_heartbeat()))

        assert response.ok
        assert received == [("heartbeat", {"deviceKey": "abc123"}, None)]

    def test_bearer_token(self):
        _, received = asyncio.run(with_server("abc123", lambda c: c.get_display(), token="secret"))

        assert received[0][2] == "Bearer secret"

    def test_timeout_is_unreachable(self):
        with pytest.raises(ApiUnreachableError):
            asyncio.run(with_server("slow", lambda c: c.get_display(), fetch_timeout=0.1))

    def test_connection_refused_is_unreachable(self):
        async def scenario():
            client = SignageApiClient(ApiSession(
                api_url=f"http://127.0.0.1:{unused_port()}",
                device_key="abc123",
            ))
            try:
                await client.get_display()
            finally:
                await client.close()

        with pytest.raises(ApiUnreachableError):
            asyncio.run(scenario())

    def test_heartbeat_connection_refused_is_unreachable(self):
        async def scenario():
            client = SignageApiClient(ApiSession(
                api_url=f"http://127.0.0.1:{unused_port()}",
                device_key="abc123",
            ))
            try:
                await client.send_heartbeat()
            finally:
                await client.close()

        with pytest.raises(ApiUnreachableError):
            asyncio.run(scenario())
