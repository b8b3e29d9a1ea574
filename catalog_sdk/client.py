# catalog_sdk/client.py
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Union

import httpx
import requests

from .config import Settings, get_settings
from .errors import ApiError, TransportError, extract_message
from .models import Category, CategoryPayload, Product, ProductImage, ProductPayload, DEFAULT_IMAGE_TYPE

logger = logging.getLogger(__name__)

CATEGORY_URL = "/categories"
PRODUCT_URL = "/products"

CategoryBody = Union[CategoryPayload, Dict[str, Any]]
ProductBody = Union[ProductPayload, Dict[str, Any]]


@dataclass
class ApiRequest:
    method: str
    path: str
    params: Optional[Dict[str, Any]] = None
    json: Any = None
    files: Optional[Dict[str, Any]] = None
    parse: Callable[[Any], Any] = lambda body: body
    binary: bool = False
    headers: Dict[str, str] = field(default_factory=dict)


# ---------------------------
# Request construction (shared by both clients)
# ---------------------------
def _as_json(body: Any) -> Any:
    return body.to_json() if hasattr(body, "to_json") else body


def _multipart(product: ProductBody, image: Optional[ProductImage]) -> Dict[str, Any]:
    image = image or ProductImage.empty()
    return {
        # browsers name blobs "blob"; the service reads the part as JSON either way
        "product": ("blob", json.dumps(_as_json(product)), "application/json"),
        "imageFile": (image.filename or "blob", image.content, image.media_type or DEFAULT_IMAGE_TYPE),
    }


def _category(body: Any) -> Any:
    return Category.model_validate(body) if isinstance(body, dict) else body


def _categories(body: Any) -> List[Category]:
    return [Category.model_validate(c) for c in (body or [])]


def _product(body: Any) -> Any:
    return Product.model_validate(body) if isinstance(body, dict) else body


def _products(body: Any) -> List[Product]:
    return [Product.model_validate(p) for p in (body or [])]


class CatalogRoutes:
    """One method per REST endpoint, each returning an ``ApiRequest``."""

    def get_categories(self) -> ApiRequest:
        return ApiRequest("GET", CATEGORY_URL, parse=_categories)

    def create_category(self, category: CategoryBody) -> ApiRequest:
        return ApiRequest("POST", CATEGORY_URL, json=_as_json(category), parse=_category)

    def update_category(self, category: CategoryBody) -> ApiRequest:
        return ApiRequest("PUT", CATEGORY_URL, json=_as_json(category), parse=_category)

    def delete_category(self, category_id: Any) -> ApiRequest:
        return ApiRequest("DELETE", f"{CATEGORY_URL}/{category_id}")

    def get_products(self) -> ApiRequest:
        return ApiRequest("GET", PRODUCT_URL, parse=_products)

    def get_product(self, product_id: Any) -> ApiRequest:
        return ApiRequest("GET", f"{PRODUCT_URL}/{product_id}", parse=_product)

    def search_products(self, keyword: str) -> ApiRequest:
        return ApiRequest("GET", f"{PRODUCT_URL}/search", params={"search": keyword}, parse=_products)

    def get_product_image(self, product_id: Any) -> ApiRequest:
        return ApiRequest("GET", f"{PRODUCT_URL}/{product_id}/image", binary=True)

    def create_product(self, product: ProductBody, image: Optional[ProductImage]) -> ApiRequest:
        return ApiRequest("POST", PRODUCT_URL, files=_multipart(product, image), parse=_product)

    def update_product(self, product: ProductBody, image: Optional[ProductImage] = None) -> ApiRequest:
        return ApiRequest("PUT", PRODUCT_URL, files=_multipart(product, image), parse=_product)

    def delete_product(self, product_id: Any) -> ApiRequest:
        return ApiRequest("DELETE", f"{PRODUCT_URL}/{product_id}")


# ---------------------------
# Response handling (shared by both clients)
# ---------------------------
def _decode_body(content: bytes, text: str, content_type: str) -> Any:
    if not content:
        return None
    if "json" in content_type or content[:1] in (b"{", b"["):
        try:
            return json.loads(text)
        except ValueError:
            pass
    return text


def _handle_response(req: ApiRequest, status_code: int, content: bytes, text: str, headers) -> Any:
    content_type = headers.get("content-type", "")
    if status_code >= 400:
        payload = _decode_body(content, text, content_type)
        message = extract_message(payload)
        logger.warning("%s %s -> %s %s", req.method, req.path, status_code, message or "")
        raise ApiError(status_code, message, payload)
    logger.debug("%s %s -> %s", req.method, req.path, status_code)
    if req.binary:
        media_type = content_type.split(";")[0].strip() or DEFAULT_IMAGE_TYPE
        return ProductImage(content=content, media_type=media_type)
    return req.parse(_decode_body(content, text, content_type))


def _auth_headers(api_key: Optional[str]) -> Dict[str, str]:
    return {"Authorization": f"Bearer {api_key}"} if api_key else {}


class _Endpoints:
    """Turns ``CatalogRoutes`` into callable client methods."""

    routes = CatalogRoutes()

    def _call(self, req: ApiRequest):
        raise NotImplementedError

    def list_categories(self):
        return self._call(self.routes.get_categories())

    def create_category(self, category: CategoryBody):
        return self._call(self.routes.create_category(category))

    def update_category(self, category: CategoryBody):
        return self._call(self.routes.update_category(category))

    def delete_category(self, category_id: Any):
        return self._call(self.routes.delete_category(category_id))

    def list_products(self):
        return self._call(self.routes.get_products())

    def get_product(self, product_id: Any):
        return self._call(self.routes.get_product(product_id))

    def search_products(self, keyword: str):
        return self._call(self.routes.search_products(keyword))

    def get_product_image(self, product_id: Any):
        return self._call(self.routes.get_product_image(product_id))

    def create_product(self, product: ProductBody, image: Optional[ProductImage]):
        return self._call(self.routes.create_product(product, image))

    def update_product(self, product: ProductBody, image: Optional[ProductImage] = None):
        return self._call(self.routes.update_product(product, image))

    def delete_product(self, product_id: Any):
        return self._call(self.routes.delete_product(product_id))


class CatalogClient(_Endpoints):
    """Blocking client, handy for scripts and seeding."""

    def __init__(self, base_url: Optional[str] = None, api_key: Optional[str] = None,
                 timeout: Optional[float] = None, session: Optional[requests.Session] = None):
        settings = get_settings()
        self.base_url = (base_url or settings.api_url).rstrip("/")
        self.timeout = timeout or settings.timeout
        self.session = session or requests.Session()
        self.session.headers.update(_auth_headers(api_key or settings.api_key))

    def _call(self, req: ApiRequest):
        try:
            r = self.session.request(
                req.method, f"{self.base_url}{req.path}",
                params=req.params, json=req.json, files=req.files,
                headers=req.headers or None, timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            raise TransportError(f"{req.method} {req.path} failed: {e}") from e
        return _handle_response(req, r.status_code, r.content, r.text, r.headers)

    def reset(self):
        # only the reference service exposes this
        return self._call(ApiRequest("POST", "/reset"))

    def close(self):
        self.session.close()


class AsyncCatalogClient(_Endpoints):
    """Non-blocking client used by the request cache."""

    def __init__(self, base_url: Optional[str] = None, api_key: Optional[str] = None,
                 timeout: Optional[float] = None, transport: Optional[httpx.AsyncBaseTransport] = None,
                 settings: Optional[Settings] = None):
        settings = settings or get_settings()
        self.base_url = (base_url or settings.api_url).rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout or settings.timeout,
            headers=_auth_headers(api_key or settings.api_key),
            transport=transport,
        )

    async def _call(self, req: ApiRequest):
        try:
            r = await self._client.request(
                req.method, req.path,
                params=req.params, json=req.json, files=req.files,
                headers=req.headers or None,
            )
        except httpx.HTTPError as e:
            raise TransportError(f"{req.method} {req.path} failed: {e}") from e
        return _handle_response(req, r.status_code, r.content, r.text, r.headers)

    async def aclose(self):
        await self._client.aclose()
