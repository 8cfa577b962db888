from __future__ import annotations

import httpx
import pytest
import respx
from httpx import Response

from app.core.config import Settings
from app.services.search import SearchClient


ADDRESS_PAGE = (
    "<html><body><div>Adresse : 15 Avenue Victor Hugo, 69006 Lyon</div></body></html>"
)


def _settings(**overrides) -> Settings:
    values = {
        "search_url": "https://search.test/search",
        "search_retries": 3,
        "search_backoff": 0.5,
        "delay_min": 0.0,
        "delay_max": 0.0,
    }
    values.update(overrides)
    return Settings(**values)


class _Sleeper:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.mark.asyncio
@respx.mock
async def test_fetch_returns_extracted_address_text():
    route = respx.get(host="search.test", path="/search").mock(
        return_value=Response(200, html=ADDRESS_PAGE)
    )

    async with SearchClient(_settings(), httpx.AsyncClient()) as client:
        raw_text = await client.fetch_address_text("Brasserie Lyon")

    assert raw_text == "15 Avenue Victor Hugo, 69006 Lyon"
    request = route.calls.last.request
    assert request.url.params["q"] == "Brasserie Lyon"
    assert request.url.params["hl"] == "fr"
    assert "Mozilla" in request.headers["User-Agent"]


@pytest.mark.asyncio
@respx.mock
async def test_fetch_retries_transport_errors():
    route = respx.get(host="search.test", path="/search").mock(
        side_effect=[
            httpx.ConnectError("connection refused"),
            Response(200, html=ADDRESS_PAGE),
        ]
    )
    sleeper = _Sleeper()

    client = SearchClient(_settings(), httpx.AsyncClient(), sleeper=sleeper)
    raw_text = await client.fetch_address_text("Brasserie Lyon")

    assert raw_text == "15 Avenue Victor Hugo, 69006 Lyon"
    assert route.call_count == 2
    assert sleeper.delays == [0.5]


@pytest.mark.asyncio
@respx.mock
async def test_fetch_gives_up_with_empty_text():
    route = respx.get(host="search.test", path="/search").mock(
        return_value=Response(503)
    )
    sleeper = _Sleeper()

    client = SearchClient(_settings(), httpx.AsyncClient(), sleeper=sleeper)
    raw_text = await client.fetch_address_text("Brasserie Lyon")

    assert raw_text == ""
    assert route.call_count == 3
    assert sleeper.delays == [0.5, 1.0]


@pytest.mark.asyncio
@respx.mock
async def test_fetch_caches_results_per_query():
    route = respx.get(host="search.test", path="/search").mock(
        return_value=Response(200, html=ADDRESS_PAGE)
    )

    client = SearchClient(_settings(), httpx.AsyncClient())
    first = await client.fetch_address_text("Brasserie Lyon")
    second = await client.fetch_address_text("  Brasserie Lyon ")

    assert first == second
    assert route.call_count == 1


@pytest.mark.asyncio
@respx.mock
async def test_blank_query_is_not_sent():
    route = respx.get(host="search.test", path="/search").mock(
        return_value=Response(200, html=ADDRESS_PAGE)
    )

    client = SearchClient(_settings(), httpx.AsyncClient())

    assert await client.fetch_address_text("   ") == ""
    assert route.call_count == 0
