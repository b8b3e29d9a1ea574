# catalog_sdk/endpoints.py
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, FrozenSet

from .errors import UnknownEndpointError

# Tags
CATEGORY = "Category"
PRODUCT = "Product"
PRODUCT_IMAGE = "ProductImage"

QUERY = "query"
MUTATION = "mutation"


@dataclass(frozen=True)
class Endpoint:
    name: str
    kind: str
    call: Callable[[Any, Any], Awaitable[Any]]
    provides: FrozenSet[str] = frozenset()
    invalidates: FrozenSet[str] = frozenset()


def _query(name, call, *provides):
    return Endpoint(name, QUERY, call, provides=frozenset(provides))


def _mutation(name, call, *invalidates):
    return Endpoint(name, MUTATION, call, invalidates=frozenset(invalidates))


# Mutation arguments: a body for create/update category, an id for deletes,
# and a (product, image) pair for create/update product.
CATALOG_ENDPOINTS: Dict[str, Endpoint] = {e.name: e for e in (
    _query("get_categories", lambda api, _: api.list_categories(), CATEGORY),
    _mutation("create_category", lambda api, body: api.create_category(body), CATEGORY),
    _mutation("update_category", lambda api, body: api.update_category(body), CATEGORY),
    _mutation("delete_category", lambda api, cid: api.delete_category(cid), CATEGORY),

    _query("get_products", lambda api, _: api.list_products(), PRODUCT),
    _query("get_product", lambda api, pid: api.get_product(pid), PRODUCT),
    _query("search_products", lambda api, kw: api.search_products(kw), PRODUCT),
    _query("get_product_image", lambda api, pid: api.get_product_image(pid), PRODUCT_IMAGE),
    _mutation("create_product", lambda api, arg: api.create_product(*arg), PRODUCT),
    _mutation("update_product", lambda api, arg: api.update_product(*arg), PRODUCT, PRODUCT_IMAGE),
    _mutation("delete_product", lambda api, pid: api.delete_product(pid), PRODUCT, PRODUCT_IMAGE),
)}


def lookup(endpoints: Dict[str, Endpoint], name: str, kind: str) -> Endpoint:
    endpoint = endpoints.get(name)
    if endpoint is None or endpoint.kind != kind:
        raise UnknownEndpointError(f"no {kind} endpoint named {name!r}")
    return endpoint
