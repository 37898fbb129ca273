"""
Unit tests for the storefront fetcher. The aiohttp session is mocked.
"""
import asyncio
from unittest.mock import MagicMock

import aiohttp
import pytest

from storefront_radar.catalog.ops.fetcher import StorefrontFetcher
from storefront_radar.core.results import Degraded, Unknown


def _fetcher_with_failing_get(exc):
    fetcher = StorefrontFetcher(step_timeout=1.0)
    session = MagicMock()
    session.get.return_value.__aenter__.side_effect = exc
    fetcher.session = session
    return fetcher


@pytest.mark.parametrize("base, path, expected", [
    ("https://store.example", "", "https://store.example"),
    ("https://store.example", "/cart.js", "https://store.example/cart.js"),
    ("https://store.example/", "cart.js", "https://store.example/cart.js"),
    ("https://store.example", "https://other.example/x", "https://other.example/x"),
])
def test_full_url(base, path, expected):
    assert StorefrontFetcher._full_url(base, path) == expected


@pytest.mark.asyncio
async def test_fetch_requires_context():
    with pytest.raises(RuntimeError):
        await StorefrontFetcher().fetch("https://store.example")


@pytest.mark.asyncio
async def test_timeout_is_degraded():
    fetcher = _fetcher_with_failing_get(asyncio.TimeoutError())
    assert await fetcher.fetch("https://store.example", "/cart.js") == Degraded("timeout")


@pytest.mark.asyncio
async def test_connection_error_is_degraded():
    fetcher = _fetcher_with_failing_get(aiohttp.ClientConnectionError("refused"))
    result = await fetcher.fetch("https://store.example")
    assert isinstance(result, Degraded)
    assert "ClientConnectionError" in result.reason


@pytest.mark.asyncio
async def test_fetch_json_statuses(stub_fetcher, response):
    fetcher = stub_fetcher({
        "https://store.example/products.json": response(json_body={"products": []}),
        "https://store.example/broken.json": response(text="<html>oops</html>"),
        "https://store.example/slow.json": "timeout",
    })

    assert (await fetcher.fetch_json("https://store.example", "/products.json")).value == {"products": []}
    assert await fetcher.fetch_json("https://store.example", "/broken.json") == Unknown("not_json")
    assert await fetcher.fetch_json("https://store.example", "/missing.json") == Unknown("http_404")
    assert await fetcher.fetch_json("https://store.example", "/slow.json") == Degraded("timeout")


@pytest.mark.asyncio
async def test_fetch_page_includes_meta(stub_fetcher, response):
    fetcher = stub_fetcher({
        "https://store.example": response(text="<title>Store</title>", headers={"X-ShopId": "1"}),
        "https://store.example/meta.json": response(json_body={"theme": {"name": "Dawn"}}),
    })

    page = (await fetcher.fetch_page("https://store.example")).value

    assert page.html == "<title>Store</title>"
    assert page.meta == {"theme": {"name": "Dawn"}}
    assert page.headers["x-shopid"] == "1"
