# tests/test_cli.py
import asyncio

import httpx
import pytest
from rich.console import Console

import cli
from catalog_sdk.errors import ApiError
from catalog_sdk.forms import CategoryForm
from catalog_sdk.models import Category
from catalog_sdk.notify import Notifier
from catalog_sdk.views import CatalogView, CategoryListView, ProductListView


@pytest.fixture
def screen(monkeypatch) -> Console:
    console = Console(record=True, width=120, color_system=None)
    monkeypatch.setattr(cli, "console", console)
    return console


@pytest.fixture
def answers(monkeypatch):
    """Scripted replies for every prompt the console asks."""
    queue = []

    async def ask(message, completer=None, default=""):
        return queue.pop(0)

    monkeypatch.setattr(cli, "ask", ask)
    return queue


def test_product_table_shows_labels(fake, screen, png):
    fake.routes[("GET", "/products")] = (200, [
        {"id": 1, "name": "Desk Lamp", "description": "warm light", "price": 1234.5, "quantity": 4,
         "category": {"id": 1, "name": "Lighting"}},
        {"id": 2, "name": "Chair", "price": 40, "quantity": 0},
    ])
    fake.routes[("GET", "/products/1/image")] = (200, png.content)

    async def scenario():
        async with fake.cache() as cache:
            view = ProductListView(cache)
            await cache.settle()
            view.rows
            await cache.settle()
            cli.show_products(view)
            view.close()

    asyncio.run(scenario())
    text = screen.export_text()
    assert "Product Management" in text
    assert "$1,234.50" in text and "4 in stock" in text
    assert "Out of stock" in text
    assert "warm light" in text
    assert "no image" in text


def test_search_without_results_shows_hint(fake, screen):
    fake.routes[("GET", "/products")] = (200, [{"id": 1, "name": "Lamp"}])
    fake.routes[("GET", "/products/search")] = (200, [])

    async def scenario():
        async with fake.cache() as cache:
            view = CatalogView(cache)
            view.search("sofa")
            await cache.settle()
            cli.show_catalog(view)
            view.close()

    asyncio.run(scenario())
    text = screen.export_text()
    assert 'Search results for "sofa" (0 found)' in text
    assert "No products found" in text
    assert "Try adjusting your search terms" in text


def test_category_load_error_panel(fake, screen):
    fake.routes[("GET", "/categories")] = (503, {"message": "maintenance"})

    async def scenario():
        async with fake.cache() as cache:
            view = CategoryListView(cache)
            await cache.settle()
            cli.show_categories(view)
            view.close()

    asyncio.run(scenario())
    text = screen.export_text()
    assert "Error loading categories" in text
    assert "maintenance" in text


def test_show_image(screen, png):
    cli.show_image(None)
    cli.show_image(png, "Selected image")
    text = screen.export_text()
    assert "No image" in text
    assert "lamp.png" in text and "image/png" in text


def test_pick_matches_id_or_name(screen, answers):
    items = [Category(id=1, name="Lighting"), Category(id=2, name="Seating")]
    answers.extend(["seating", "1", "garden"])

    async def scenario():
        return [await cli.pick(items, "category") for _ in range(3)]

    picked = asyncio.run(scenario())
    assert [c.name if c else None for c in picked] == ["Seating", "Lighting", None]
    assert "Unknown category" in screen.export_text()


def test_try_api_turns_errors_into_status_panel(screen):
    async def failing():
        raise ApiError(409, "Category is used by 1 product(s)")

    assert asyncio.run(cli.try_api(failing())) is None
    assert "Category is used by 1 product(s)" in screen.export_text()


def test_run_form_retries_with_kept_values(fake, screen, answers):
    replies = iter([(400, {"message": "Category already exists"}), (201, {"id": 3, "name": "Lighting"})])

    def post(request):
        status, body = next(replies)
        return httpx.Response(status, json=body)

    fake.routes[("POST", "/categories")] = post
    notifier = Notifier()
    notifier.add_listener(cli.show_notification)
    # first pass, retry prompt, second pass
    answers.extend(["Lighting", "", "y", "Lighting", "Lamps"])

    async def scenario():
        async with fake.cache() as cache:
            form = CategoryForm(cache, notifier)
            return await cli.run_form(form, cli.fill_category_form)

    assert asyncio.run(scenario()) is True
    text = screen.export_text()
    assert "Category already exists" in text
    assert "Category created successfully" in text
    assert fake.count("POST", "/categories") == 2
