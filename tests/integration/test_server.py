"""Integration tests for the server lifecycle."""

import asyncio
import socket

import httpx
import pytest

from icsgrid.config_loader import Config
from icsgrid.server import _serve

pytestmark = [pytest.mark.integration]


def _free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


@pytest.mark.asyncio
async def test_serve_when_started_then_answers_and_stops_on_event() -> None:
    port = _free_port()
    stop_event = asyncio.Event()
    server = asyncio.ensure_future(_serve(Config(server_bind="127.0.0.1", server_port=port), stop_event))

    try:
        response = None
        async with httpx.AsyncClient(trust_env=False) as client:
            for _ in range(50):
                try:
                    response = await client.get(f"http://127.0.0.1:{port}/api/health")
                    break
                except httpx.ConnectError:
                    await asyncio.sleep(0.05)

        assert response is not None
        assert response.status_code == 200
        assert response.json()["status"] == "ok"
    finally:
        stop_event.set()
        await asyncio.wait_for(server, timeout=5)

    assert server.done()
    assert server.exception() is None
