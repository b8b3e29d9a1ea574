import asyncio
import logging

import httpx

from catalog_sdk.cache import RequestCache
from catalog_sdk.client import AsyncCatalogClient


class CountingTransport(httpx.AsyncHTTPTransport):
    def __init__(self):
        super().__init__()
        self.calls = 0

    async def handle_async_request(self, request):
        self.calls += 1
        return await super().handle_async_request(request)


async def main():
    logging.basicConfig(level=logging.DEBUG, format="%(name)s - %(message)s")
    transport = CountingTransport()
    api = AsyncCatalogClient(base_url="http://127.0.0.1:8085", transport=transport)

    async with RequestCache(api, owns_api=True) as cache:
        # Five views asking for the same list at once
        print("\n⚡ Five concurrent identical list queries...")
        entries = await asyncio.gather(*[cache.query("get_products") for _ in range(5)])
        print(f"✅ {len(entries[0].data)} products, {transport.calls} network call(s)")

        # A subscriber keeps the list mounted; a write refreshes it
        seen = []
        sub = cache.subscribe("get_categories", None, lambda e: seen.append(len(e.data or [])))
        await cache.settle()
        created = await cache.mutate("create_category", {"name": "Concurrent demo"})
        await cache.settle()
        print(f"🏷️  category list sizes seen by the subscriber: {seen}")

        await cache.mutate("delete_category", created.id)
        await cache.settle()
        print(f"🏷️  after delete: {seen}")
        sub.unsubscribe()


if __name__ == "__main__":
    asyncio.run(main())
