import asyncio
from typing import Any, Callable, Dict, List, Optional, Tuple

import httpx
import pytest
from fastapi.testclient import TestClient

from catalog_server import database
from catalog_server.main import app
from catalog_sdk.cache import RequestCache
from catalog_sdk.client import AsyncCatalogClient, CatalogClient
from catalog_sdk.models import ProductImage

PNG = ProductImage(content=b"\x89PNG\r\n\x1a\nfake-pixels", media_type="image/png", filename="lamp.png")


class FakeCatalog:
    """httpx MockTransport handler: canned responses per (method, path), every call recorded."""

    def __init__(self):
        self.requests: List[httpx.Request] = []
        self.routes: Dict[Tuple[str, str], Any] = {}
        self.gate: Optional[asyncio.Event] = None

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.gate is not None:
            await self.gate.wait()
        else:
            await asyncio.sleep(0)
        route = self.routes.get((request.method, request.url.path))
        if route is None:
            return httpx.Response(404, json={"message": "not found"})
        if callable(route):
            return route(request)
        status, body = route
        if isinstance(body, bytes):
            return httpx.Response(status, content=body, headers={"content-type": "image/png"})
        if body is None:
            return httpx.Response(status)
        return httpx.Response(status, json=body)

    def count(self, method: str, path: str) -> int:
        return sum(1 for r in self.requests if r.method == method and r.url.path == path)

    def cache(self) -> RequestCache:
        api = AsyncCatalogClient(base_url="http://catalog.test", transport=httpx.MockTransport(self))
        return RequestCache(api, owns_api=True)


@pytest.fixture(autouse=True)
def reset_store():
    database.reset_all()
    yield
    database.reset_all()


@pytest.fixture
def fake() -> FakeCatalog:
    return FakeCatalog()


@pytest.fixture
def server_cache() -> Callable[[], RequestCache]:
    """Cache talking to the in-memory reference service; build it inside the running loop."""
    def build() -> RequestCache:
        api = AsyncCatalogClient(base_url="http://test", transport=httpx.ASGITransport(app=app))
        return RequestCache(api, owns_api=True)
    return build


@pytest.fixture
def seed() -> CatalogClient:
    return CatalogClient(base_url="http://testserver", session=TestClient(app))


@pytest.fixture
def png() -> ProductImage:
    return PNG
