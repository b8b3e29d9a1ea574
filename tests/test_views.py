# tests/test_views.py
import asyncio

import httpx

from catalog_sdk.models import Product
from catalog_sdk.notify import Notifier
from catalog_sdk.views import CatalogView, CategoryListView, ImageStatus, ProductListView, ProductRow, ViewState


def _lamp(seed, png, name="Desk Lamp"):
    category = seed.create_category({"name": "Lighting"})
    return seed.create_product({"name": name, "price": 25, "quantity": 2, "category": {"id": category.id}}, png)


def test_deleted_category_leaves_mounted_list(server_cache, seed):
    seed.create_category({"name": "Lighting"})
    seed.create_category({"name": "Seating"})
    renders = []
    notifier = Notifier()

    async def scenario():
        async with server_cache() as cache:
            view = CategoryListView(cache, notifier, on_change=lambda v: renders.append([c.name for c in v.items]))
            await cache.settle()
            assert view.state is ViewState.READY
            seating = next(c for c in view.items if c.name == "Seating")

            view.deletion.request(seating)
            assert await view.deletion.confirm()
            await cache.settle()
            view.close()
            return view

    view = asyncio.run(scenario())
    assert renders[-1] == ["Lighting"]
    assert notifier.last.description == "Category deleted successfully"
    assert not view.deletion.is_open


def test_catalog_empty_state(server_cache):
    async def scenario():
        async with server_cache() as cache:
            view = CatalogView(cache)
            assert view.state is ViewState.LOADING
            await cache.settle()
            return view.state, view.empty_message, view.title

    state, message, title = asyncio.run(scenario())
    assert state is ViewState.EMPTY
    assert message == ("No products available", "Add some products to get started")
    assert title == "All Products"


def test_search_without_matches_is_not_the_empty_state(server_cache, seed, png):
    _lamp(seed, png)

    async def scenario():
        async with server_cache() as cache:
            view = CatalogView(cache)
            await cache.settle()
            assert view.state is ViewState.READY

            view.search("  sofa ")
            assert view.search_term == "sofa"
            await cache.settle()
            assert view.state is ViewState.NO_RESULTS
            assert view.empty_message == ("No products found", "Try adjusting your search terms")
            assert view.summary == 'Search results for "sofa" (0 found)'
            # the unfiltered listing is a separate cache entry
            assert cache.select("get_products").data[0].name == "Desk Lamp"

            view.search("lamp")
            await cache.settle()
            assert [p.name for p in view.items] == ["Desk Lamp"]

            view.clear_search()
            assert not view.searching
            assert view.state is ViewState.READY
            assert view.title == "All Products"
            view.close()

    asyncio.run(scenario())


def test_blank_search_reverts_to_full_listing(fake):
    fake.routes[("GET", "/products")] = (200, [{"id": 1, "name": "Lamp"}])
    fake.routes[("GET", "/products/search")] = (200, [])

    async def scenario():
        async with fake.cache() as cache:
            view = CatalogView(cache)
            view.search("lamp")
            await cache.settle()
            view.search("   ")
            assert not view.searching
            assert [p.name for p in view.items] == ["Lamp"]
            view.close()

    asyncio.run(scenario())
    assert fake.requests[-1].url.params["search"] == "lamp"


def test_image_failure_shows_placeholder(fake, png):
    fake.routes[("GET", "/products")] = (200, [
        {"id": 1, "name": "Lamp", "price": 1234.5, "quantity": 0},
        {"id": 2, "name": "Chair", "price": 40, "quantity": 3},
    ])
    fake.routes[("GET", "/products/1/image")] = (200, png.content)
    fake.routes[("GET", "/products/2/image")] = (500, {"message": "disk on fire"})

    async def scenario():
        async with fake.cache() as cache:
            view = ProductListView(cache)
            await cache.settle()
            rows = view.rows
            assert [r.image_status for r in rows] == [ImageStatus.LOADING, ImageStatus.LOADING]
            await cache.settle()
            rows = view.rows
            result = (view.state, [r.image_status for r in rows], rows[0].image,
                      [(r.price_label, r.stock_label) for r in rows])
            view.close()
            return result

    state, statuses, image, labels = asyncio.run(scenario())
    assert state is ViewState.READY
    assert statuses == [ImageStatus.LOADED, ImageStatus.PLACEHOLDER]
    assert image.media_type == "image/png"
    assert labels == [("$1,234.50", "Out of stock"), ("$40.00", "3 in stock")]


def test_row_without_id_never_fetches_an_image(fake):
    async def scenario():
        async with fake.cache() as cache:
            row = ProductRow(cache, Product(name="Draft"))
            assert row.image_status is ImageStatus.PLACEHOLDER
            row.close()

    asyncio.run(scenario())
    assert fake.requests == []


def test_removed_rows_cancel_their_image_fetch(fake):
    products = [{"id": 1, "name": "Lamp"}]
    fake.routes[("GET", "/products")] = lambda request: httpx.Response(200, json=list(products))

    async def scenario():
        async with fake.cache() as cache:
            view = ProductListView(cache)
            await cache.settle()
            fake.gate = asyncio.Event()
            view.rows
            task = cache.select("get_product_image", 1).inflight
            await asyncio.sleep(0)

            # the image request stays parked; later requests go straight through
            fake.gate = None
            products.clear()
            cache.invalidate_tags({"Product"})
            await cache.query("get_products")
            assert view.rows == []
            await asyncio.gather(task, return_exceptions=True)
            view.close()
            return task

    task = asyncio.run(scenario())
    assert task.cancelled()


def test_delete_needs_confirmation(fake):
    fake.routes[("GET", "/products")] = (200, [{"id": 1, "name": "Lamp"}])
    fake.routes[("DELETE", "/products/1")] = (200, {"message": "Product deleted successfully"})
    notifier = Notifier()

    async def scenario():
        async with fake.cache() as cache:
            view = ProductListView(cache, notifier)
            await cache.settle()
            lamp = view.items[0]

            assert await view.deletion.confirm() is False
            prompt = view.deletion.request(lamp)
            assert prompt == 'Are you sure you want to delete "Lamp"? This action cannot be undone.'
            view.deletion.cancel()
            assert fake.count("DELETE", "/products/1") == 0

            view.deletion.request(lamp)
            assert await view.deletion.confirm() is True
            view.close()

    asyncio.run(scenario())
    assert fake.count("DELETE", "/products/1") == 1
    assert notifier.last.description == "Product deleted successfully"


def test_failed_delete_keeps_prompt_open(fake):
    fake.routes[("GET", "/categories")] = (200, [{"id": 3, "name": "Lighting"}])
    fake.routes[("DELETE", "/categories/3")] = (409, {"message": "Category is used by 2 product(s)"})
    notifier = Notifier()

    async def scenario():
        async with fake.cache() as cache:
            view = CategoryListView(cache, notifier)
            await cache.settle()
            view.deletion.request(view.items[0])
            assert await view.deletion.confirm() is False
            assert view.deletion.is_open
            await cache.settle()
            names = [c.name for c in view.items]
            view.close()
            return names

    assert asyncio.run(scenario()) == ["Lighting"]
    assert notifier.last.title == "Error"
    assert notifier.last.description == "Category is used by 2 product(s)"
    assert fake.count("GET", "/categories") == 1


def test_list_error_state(fake):
    fake.routes[("GET", "/categories")] = (502, None)

    async def scenario():
        async with fake.cache() as cache:
            view = CategoryListView(cache)
            await cache.settle()
            result = view.state, view.error_message
            view.close()
            return result

    assert asyncio.run(scenario()) == (ViewState.ERROR, "Something went wrong")


def test_edit_form_loads_inline_image(server_cache, seed, png):
    lamp = _lamp(seed, png)

    async def scenario():
        async with server_cache() as cache:
            view = ProductListView(cache)
            await cache.settle()
            form = await view.edit_form(view.items[0])
            view.close()
            return form

    form = asyncio.run(scenario())
    assert form.product.id == lamp.id
    assert form.image_preview.content == png.content
    assert [c.name for c in form.categories] == ["Lighting"]
