"""Unit tests for icsgrid.http_client."""

import httpx
import pytest

from icsgrid import __version__
from icsgrid.http_client import DEFAULT_HEADERS, close_all_clients, create_client, get_shared_client

pytestmark = [pytest.mark.unit, pytest.mark.fast]


class TestCreateClient:
    """Tests for create_client()."""

    @pytest.mark.asyncio
    async def test_create_client_follows_bounded_redirects(self) -> None:
        client = create_client(max_redirects=3)
        try:
            assert client.follow_redirects is True
            assert client.max_redirects == 3
            assert client.headers["User-Agent"] == DEFAULT_HEADERS["User-Agent"]
            assert __version__ in client.headers["User-Agent"]
        finally:
            await client.aclose()


class TestSharedClients:
    """Tests for the shared client pool."""

    @pytest.mark.asyncio
    async def test_get_shared_client_returns_same_instance(self) -> None:
        await close_all_clients()
        try:
            first = await get_shared_client("pool-test")
            second = await get_shared_client("pool-test")

            assert first is second
            assert isinstance(first, httpx.AsyncClient)
        finally:
            await close_all_clients()

    @pytest.mark.asyncio
    async def test_close_all_clients_closes_and_forgets(self) -> None:
        client = await get_shared_client("pool-test")

        await close_all_clients()

        assert client.is_closed is True
        replacement = await get_shared_client("pool-test")
        assert replacement is not client
        await close_all_clients()
