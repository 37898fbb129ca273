"""
Shared pytest fixtures for the storefront catalog test suite.
"""
import json
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

import pytest
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

from storefront_radar.catalog.database import Base, StoreModel  # noqa: F401  (registers the table)
from storefront_radar.catalog.ops.fetcher import StorefrontFetcher
from storefront_radar.core.data_types import FetchedResponse, StorefrontPage
from storefront_radar.core.results import Degraded, Ok


# --- Database Fixtures ---

@pytest.fixture
async def async_db_session():
    """Async in-memory SQLite session for testing."""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async_session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with async_session_factory() as session:
        yield session

    await engine.dispose()


@pytest.fixture
async def session_factory(tmp_path):
    """
    Session factory over a file-backed SQLite database, for code that opens
    one session per unit of work (several may be open at once).
    """
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path}/catalog.db")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


# --- HTTP Fixtures ---

def make_response(
    status: int = 200,
    text: str = "",
    headers: Optional[Dict[str, str]] = None,
    url: str = "https://store.example",
    json_body: Any = None,
) -> FetchedResponse:
    headers = {k.lower(): v for k, v in (headers or {}).items()}
    if json_body is not None:
        text = json.dumps(json_body)
        headers.setdefault("content-type", "application/json; charset=utf-8")
    else:
        headers.setdefault("content-type", "text/html; charset=utf-8")
    return FetchedResponse(url=url, status=status, headers=headers, text=text)


RouteValue = Union[FetchedResponse, str, Callable[[], Any]]


class StubFetcher(StorefrontFetcher):
    """
    StorefrontFetcher with the network replaced by a route table.

    ``routes`` maps a full URL (no query string) to a FetchedResponse, the
    string "timeout" (-> Degraded), or a callable returning either. Unrouted
    URLs answer 404.
    """

    def __init__(self, routes: Optional[Dict[str, RouteValue]] = None):
        super().__init__(step_timeout=1.0, page_timeout=1.0)
        self.routes: Dict[str, RouteValue] = dict(routes or {})
        self.calls: List[Tuple[str, Optional[Dict[str, Any]]]] = []

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        return False

    async def fetch(self, base_url, path="", params=None, timeout=None):
        url = self._full_url(base_url, path)
        self.calls.append((url, params))
        route = self.routes.get(url)
        if callable(route):
            route = route()
        if route is None:
            return Ok(make_response(status=404, text="Not Found", url=url))
        if route == "timeout":
            return Degraded("timeout")
        return Ok(route)

    def requested(self, url: str) -> bool:
        return any(called == url for called, _ in self.calls)


@pytest.fixture
def response():
    """Factory for FetchedResponse objects."""
    return make_response


@pytest.fixture
def stub_fetcher():
    """Factory: stub_fetcher({url: response}) -> StubFetcher."""
    return StubFetcher


@pytest.fixture
def make_page():
    """Factory for StorefrontPage snapshots."""
    def _make_page(
        html: str = "<html><head><title>Test Store</title></head><body></body></html>",
        url: str = "https://store.example",
        status: int = 200,
        meta: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> StorefrontPage:
        return StorefrontPage(url=url, status=status, html=html, headers=headers or {}, meta=meta)

    return _make_page
