import base64
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class CategoryIn(BaseModel):
    id: Optional[int] = None
    name: str = ""
    description: Optional[str] = ""


class CategoryRefIn(BaseModel):
    id: int


class ProductIn(BaseModel):
    id: Optional[int] = None
    name: str = ""
    description: Optional[str] = ""
    price: float = Field(ge=0, allow_inf_nan=False)
    quantity: int = Field(default=0, ge=0)
    category: CategoryRefIn
    available: bool = True


def _make_category_dict(category_id: int, c: CategoryIn) -> Dict[str, Any]:
    return {
        "id": category_id,
        "name": c.name.strip(),
        "description": (c.description or "").strip()
    }


def _make_product_dict(product_id: int, p: ProductIn, category: Dict[str, Any],
                       image_name: Optional[str], image_type: Optional[str]) -> Dict[str, Any]:
    return {
        "id": product_id,
        "name": p.name.strip(),
        "description": (p.description or "").strip(),
        "price": p.price,
        "quantity": p.quantity,
        "category": dict(category),
        "available": p.available,
        "imageName": image_name,
        "imageType": image_type
    }


def _with_inline_image(product: Dict[str, Any], image) -> Dict[str, Any]:
    out = dict(product)
    if image is not None:
        out["image"] = base64.b64encode(image[0]).decode("ascii")
    return out
