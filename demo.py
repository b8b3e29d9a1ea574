#!/usr/bin/env python
import base64

from catalog_sdk.client import CatalogClient
from catalog_sdk.models import ProductImage

# 1x1 transparent PNG
PIXEL = ProductImage(
    content=base64.b64decode(
        "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNkYPhfDwAChwGA60e6kgAAAABJRU5ErkJggg=="
    ),
    media_type="image/png",
    filename="pixel.png",
)


def main():
    c = CatalogClient(base_url="http://127.0.0.1:8085")

    # -----------------------------
    # Reset everything for demo
    # -----------------------------
    print("Resetting store...")
    c.reset()

    # -----------------------------
    # Categories
    # -----------------------------
    print("\nCreating categories...")
    electronics = c.create_category({"name": "Electronics", "description": "Gadgets and gear"})
    books = c.create_category({"name": "Books"})
    print(electronics)
    print(books)

    # -----------------------------
    # Products (multipart: JSON part + image part)
    # -----------------------------
    print("\nCreating products...")
    laptop = c.create_product(
        {"name": "Laptop", "description": "14 inch", "price": 1500.0, "quantity": 3,
         "category": {"id": electronics.id}, "available": True},
        PIXEL,
    )
    novel = c.create_product(
        {"name": "Novel", "price": 12.5, "quantity": 0, "category": {"id": books.id}, "available": True},
        PIXEL,
    )
    print(laptop)
    print(novel)

    print("\nListing products...")
    for p in c.list_products():
        print(f"  {p.id}: {p.name} ({p.category_name}) {p.price}")

    print("\nSearching for 'lap'...")
    print(c.search_products("lap"))

    # -----------------------------
    # Update without a new image keeps the stored one
    # -----------------------------
    print("\nUpdating laptop price...")
    c.update_product(
        {"id": laptop.id, "name": "Laptop", "description": "14 inch", "price": 1399.0, "quantity": 3,
         "category": {"id": electronics.id}, "available": True},
    )
    image = c.get_product_image(laptop.id)
    print(f"Image still there: {image.media_type}, {image.size} bytes")

    # -----------------------------
    # Delete
    # -----------------------------
    print("\nDeleting novel and its category...")
    c.delete_product(novel.id)
    c.delete_category(books.id)
    print(c.list_categories())


if __name__ == "__main__":
    main()
