# tests/test_server.py
import base64
import json

from fastapi.testclient import TestClient

from catalog_server.main import app

client = TestClient(app)


def _product_files(product, content=b"img-bytes", filename="a.png", media_type="image/png"):
    return {
        "product": ("blob", json.dumps(product), "application/json"),
        "imageFile": (filename, content, media_type),
    }


def _category(name="Lighting"):
    r = client.post("/categories", json={"name": name, "description": "  lamps  "})
    assert r.status_code == 201
    return r.json()


def test_category_crud():
    cat = _category()
    assert cat["description"] == "lamps"

    r = client.put("/categories", json={"id": cat["id"], "name": "Lights"})
    assert r.status_code == 200
    assert client.get("/categories").json()[0]["name"] == "Lights"

    r = client.delete(f"/categories/{cat['id']}")
    assert r.status_code == 200
    assert client.get("/categories").json() == []


def test_blank_category_name_rejected_with_message():
    r = client.post("/categories", json={"name": "   "})
    assert r.status_code == 400
    assert r.json() == {"message": "Category name is required"}


def test_product_create_requires_image():
    cat = _category()
    product = {"name": "Lamp", "price": 10, "category": {"id": cat["id"]}}
    r = client.post("/products", files=_product_files(product, content=b""))
    assert r.status_code == 400
    assert r.json()["message"] == "Product image is required"


def test_product_update_with_empty_image_keeps_stored_image():
    cat = _category()
    product = {"name": "Lamp", "price": 10, "quantity": 2, "category": {"id": cat["id"]}}
    created = client.post("/products", files=_product_files(product)).json()
    assert created["imageName"] == "a.png"
    assert created["category"]["name"] == "Lighting"

    update = dict(product, id=created["id"], price=12.5)
    r = client.put("/products", files=_product_files(update, content=b"", filename="blob",
                                                     media_type="application/octet-stream"))
    assert r.status_code == 200
    assert r.json()["price"] == 12.5
    assert r.json()["imageType"] == "image/png"

    img = client.get(f"/products/{created['id']}/image")
    assert img.status_code == 200
    assert img.content == b"img-bytes"
    assert img.headers["content-type"] == "image/png"

    detail = client.get(f"/products/{created['id']}").json()
    assert base64.b64decode(detail["image"]) == b"img-bytes"


def test_search_matches_name_and_description():
    cat = _category()
    client.post("/products", files=_product_files({"name": "Desk Lamp", "price": 1, "category": {"id": cat["id"]}}))
    client.post("/products", files=_product_files({"name": "Chair", "description": "a lamp-free chair",
                                                   "price": 1, "category": {"id": cat["id"]}}))
    client.post("/products", files=_product_files({"name": "Table", "price": 1, "category": {"id": cat["id"]}}))

    names = {p["name"] for p in client.get("/products/search", params={"search": "LAMP"}).json()}
    assert names == {"Desk Lamp", "Chair"}
    assert client.get("/products/search", params={"search": "sofa"}).json() == []
    # the category name matches too
    assert len(client.get("/products/search", params={"search": "lighting"}).json()) == 3


def test_negative_price_and_unknown_category_rejected():
    cat = _category()
    r = client.post("/products", files=_product_files({"name": "Lamp", "price": -1, "category": {"id": cat["id"]}}))
    assert r.status_code == 400
    r = client.post("/products", files=_product_files({"name": "Lamp", "price": 1, "category": {"id": 999}}))
    assert r.status_code == 400
    assert r.json()["message"] == "Unknown category 999"


def test_category_in_use_cannot_be_deleted():
    cat = _category()
    client.post("/products", files=_product_files({"name": "Lamp", "price": 1, "category": {"id": cat["id"]}}))
    r = client.delete(f"/categories/{cat['id']}")
    assert r.status_code == 409


def test_missing_product_is_404():
    assert client.get("/products/42").status_code == 404
    assert client.get("/products/42/image").json() == {"message": "Product not found"}
    assert client.delete("/products/42").status_code == 404


def test_out_of_range_price_rejected_and_listing_still_works():
    cat = _category()
    raw = '{"name": "Lamp", "price": 1e400, "category": {"id": %d}}' % cat["id"]
    r = client.post("/products", files={
        "product": ("blob", raw, "application/json"),
        "imageFile": ("a.png", b"img-bytes", "image/png"),
    })
    assert r.status_code == 400
    assert client.get("/products").json() == []
