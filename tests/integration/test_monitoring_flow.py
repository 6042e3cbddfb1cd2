"""End-to-end monitoring flow against a real TCP endpoint and a fake Gotify server."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator

import pytest
from aiohttp import web
from aiohttp import test_utils

from portwatch.config import DestinationConfig, EndpointConfig
from portwatch.core import CycleRunner, CycleScheduler, DestinationRouter, StatusStore, TCPProber
from portwatch.plugins.gotify import GotifyDestination
from portwatch.utils.http_client import AIOHTTPClient


class FakeGotify:
    """Records messages posted to ``/message``."""

    def __init__(self) -> None:
        self.messages: list[dict[str, object]] = []
        self.tokens: list[str] = []

    async def handle(self, request: web.Request) -> web.Response:
        self.tokens.append(request.query.get("token", ""))
        self.messages.append(await request.json())
        return web.json_response({"id": len(self.messages)})


@pytest.fixture
async def gotify() -> AsyncIterator[tuple[FakeGotify, str]]:
    fake = FakeGotify()
    app = web.Application()
    _ = app.router.add_post("/message", fake.handle)
    server = test_utils.TestServer(app)
    await server.start_server()
    try:
        yield fake, str(server.make_url(""))
    finally:
        await server.close()


async def _start_endpoint() -> asyncio.Server:
    async def _handle(_reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        writer.close()

    return await asyncio.start_server(_handle, host="127.0.0.1", port=0)


@pytest.mark.asyncio
async def test_down_then_up_delivers_two_alerts_to_matching_destinations(gotify: tuple[FakeGotify, str]) -> None:
    fake, base_url = gotify
    endpoint_server = await _start_endpoint()
    port: int = endpoint_server.sockets[0].getsockname()[1]
    endpoints = [EndpointConfig(name="api", host="127.0.0.1", port=port)]

    async with AIOHTTPClient() as http_client:
        destinations = [
            GotifyDestination(
                config=DestinationConfig(name="ops", base_url=base_url, token="ops-token"),
                http_client=http_client,
            ),
            GotifyDestination(
                config=DestinationConfig(
                    name="dba",
                    base_url=base_url,
                    token="dba-token",
                    monitor_all=False,
                    monitored_endpoints=("database",),
                ),
                http_client=http_client,
            ),
        ]
        scheduler = CycleScheduler(
            CycleRunner(TCPProber(timeout_seconds=2.0)),
            StatusStore(),
            DestinationRouter(destinations),
            endpoints,
            check_interval=1.0,
            startup_delay=0.0,
        )

        baseline = await scheduler.run_once()
        assert baseline.up_count == 1
        assert fake.messages == []

        endpoint_server.close()
        await endpoint_server.wait_closed()
        down = await scheduler.run_once()

        restarted = await asyncio.start_server(lambda _r, w: w.close(), host="127.0.0.1", port=port)
        try:
            up = await scheduler.run_once()
        finally:
            restarted.close()
            await restarted.wait_closed()

    assert down.down_count == 1
    assert [delivery.success for delivery in down.deliveries] == [True]
    assert up.up_count == 1
    assert fake.tokens == ["ops-token", "ops-token"]
    assert [message["priority"] for message in fake.messages] == [8, 3]
    assert fake.messages[0]["title"] == "🔴 Server Down: api"
    assert fake.messages[1]["title"] == "🟢 Server Up: api"
