# catalog_server/main.py
import logging
from typing import Any, Dict, Optional, Tuple

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from pydantic import ValidationError
from starlette.datastructures import UploadFile

from .core import CategoryIn, ProductIn, _make_category_dict, _make_product_dict, _with_inline_image
from .database import CATEGORIES, IMAGES, PRODUCTS, next_id, reset_all

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

app = FastAPI(title="catalog-service (in-memory reference)")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(HTTPException)
async def http_error(request: Request, exc: HTTPException):
    return JSONResponse(status_code=exc.status_code, content={"message": exc.detail})


# ---------------------------
# Helpers
# ---------------------------
async def _read_part(form, name: str) -> Tuple[bytes, Optional[str], Optional[str]]:
    part = form.get(name)
    if part is None:
        return b"", None, None
    if isinstance(part, UploadFile):
        return await part.read(), part.content_type, part.filename
    return part.encode(), None, None


async def _read_product_form(request: Request) -> Tuple[ProductIn, Tuple[bytes, Optional[str], Optional[str]]]:
    form = await request.form()
    raw, _, _ = await _read_part(form, "product")
    if not raw:
        raise HTTPException(status_code=400, detail="Missing product part")
    try:
        product = ProductIn.model_validate_json(raw)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=f"Invalid product: {e.errors()[0]['msg']}")
    if not product.name.strip():
        raise HTTPException(status_code=400, detail="Product name is required")
    return product, await _read_part(form, "imageFile")


def _category_or_400(category_id: int) -> Dict[str, Any]:
    category = CATEGORIES.get(category_id)
    if not category:
        raise HTTPException(status_code=400, detail=f"Unknown category {category_id}")
    return category


def _product_or_404(product_id: int) -> Dict[str, Any]:
    p = PRODUCTS.get(product_id)
    if not p:
        raise HTTPException(status_code=404, detail="Product not found")
    return p


# ---------------------------
# Category endpoints
# ---------------------------
@app.get("/categories")
async def list_categories():
    return list(CATEGORIES.values())


@app.post("/categories", status_code=201)
async def create_category(payload: CategoryIn):
    if not payload.name.strip():
        raise HTTPException(status_code=400, detail="Category name is required")
    cid = next_id("category")
    CATEGORIES[cid] = _make_category_dict(cid, payload)
    logger.info("category %s created", cid)
    return CATEGORIES[cid]


@app.put("/categories")
async def update_category(payload: CategoryIn):
    if payload.id is None or payload.id not in CATEGORIES:
        raise HTTPException(status_code=404, detail="Category not found")
    if not payload.name.strip():
        raise HTTPException(status_code=400, detail="Category name is required")
    CATEGORIES[payload.id] = _make_category_dict(payload.id, payload)
    # products embed their category
    for p in PRODUCTS.values():
        if p["category"]["id"] == payload.id:
            p["category"] = dict(CATEGORIES[payload.id])
    logger.info("category %s updated", payload.id)
    return CATEGORIES[payload.id]


@app.delete("/categories/{category_id}")
async def delete_category(category_id: int):
    if category_id not in CATEGORIES:
        raise HTTPException(status_code=404, detail="Category not found")
    used_by = sum(1 for p in PRODUCTS.values() if p["category"]["id"] == category_id)
    if used_by:
        raise HTTPException(status_code=409, detail=f"Category is used by {used_by} product(s)")
    del CATEGORIES[category_id]
    logger.info("category %s deleted", category_id)
    return {"message": "Category deleted successfully"}


# ---------------------------
# Product endpoints
# ---------------------------
@app.get("/products")
async def list_products():
    return list(PRODUCTS.values())


@app.get("/products/search")
async def search_products(search: str = Query("")):
    term = search.strip().lower()
    if not term:
        return list(PRODUCTS.values())
    return [
        p for p in PRODUCTS.values()
        if term in p["name"].lower()
        or term in (p["description"] or "").lower()
        or term in p["category"]["name"].lower()
    ]


@app.get("/products/{product_id}")
async def get_product(product_id: int):
    return _with_inline_image(_product_or_404(product_id), IMAGES.get(product_id))


@app.get("/products/{product_id}/image")
async def get_product_image(product_id: int):
    _product_or_404(product_id)
    image = IMAGES.get(product_id)
    if image is None:
        raise HTTPException(status_code=404, detail="Image not found")
    content, media_type, _ = image
    return Response(content=content, media_type=media_type)


@app.post("/products", status_code=201)
async def create_product(request: Request):
    payload, (content, media_type, filename) = await _read_product_form(request)
    if not content:
        raise HTTPException(status_code=400, detail="Product image is required")
    category = _category_or_400(payload.category.id)
    pid = next_id("product")
    media_type = media_type or "application/octet-stream"
    IMAGES[pid] = (content, media_type, filename or "image")
    PRODUCTS[pid] = _make_product_dict(pid, payload, category, filename or "image", media_type)
    logger.info("product %s created", pid)
    return PRODUCTS[pid]


@app.put("/products")
async def update_product(request: Request):
    payload, (content, media_type, filename) = await _read_product_form(request)
    if payload.id is None:
        raise HTTPException(status_code=404, detail="Product not found")
    current = _product_or_404(payload.id)
    category = _category_or_400(payload.category.id)
    if content:
        media_type = media_type or "application/octet-stream"
        IMAGES[payload.id] = (content, media_type, filename or "image")
        image_name, image_type = filename or "image", media_type
    else:
        # empty file part: keep the stored image
        image_name, image_type = current["imageName"], current["imageType"]
    PRODUCTS[payload.id] = _make_product_dict(payload.id, payload, category, image_name, image_type)
    logger.info("product %s updated", payload.id)
    return PRODUCTS[payload.id]


@app.delete("/products/{product_id}")
async def delete_product(product_id: int):
    _product_or_404(product_id)
    del PRODUCTS[product_id]
    IMAGES.pop(product_id, None)
    logger.info("product %s deleted", product_id)
    return {"message": "Product deleted successfully"}


# ---------------------------
# Utility: reset (for tests/demo)
# ---------------------------
@app.post("/reset")
async def reset():
    reset_all()
    return {"status": "reset"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8085)
