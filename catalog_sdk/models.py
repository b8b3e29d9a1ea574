# catalog_sdk/models.py
import base64
import binascii
import mimetypes
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_IMAGE_TYPE = "application/octet-stream"


class Category(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: Optional[int] = None
    name: str
    description: Optional[str] = None


class CategoryRef(BaseModel):
    """Category as embedded in a product: sometimes a full object, sometimes just a name."""
    model_config = ConfigDict(extra="ignore")

    id: Optional[int] = None
    name: Optional[str] = None


class ProductImage(BaseModel):
    """Raw image bytes plus their declared media type.

    Every transport ends up here: the binary ``/products/{id}/image`` response,
    the base64 ``image`` field of a product payload, or a file picked locally.
    """
    model_config = ConfigDict(frozen=True)

    content: bytes
    media_type: str = DEFAULT_IMAGE_TYPE
    filename: Optional[str] = None

    @classmethod
    def from_base64(cls, data: str, media_type: Optional[str] = None, filename: Optional[str] = None) -> "ProductImage":
        try:
            raw = base64.b64decode(data, validate=True)
        except (binascii.Error, ValueError) as e:
            raise ValueError(f"invalid base64 image data: {e}") from e
        return cls(content=raw, media_type=media_type or DEFAULT_IMAGE_TYPE, filename=filename)

    @classmethod
    def from_path(cls, path: Union[str, Path]) -> "ProductImage":
        p = Path(path).expanduser()
        media_type, _ = mimetypes.guess_type(p.name)
        return cls(content=p.read_bytes(), media_type=media_type or DEFAULT_IMAGE_TYPE, filename=p.name)

    @classmethod
    def empty(cls) -> "ProductImage":
        # An empty file part on update means "keep the current image"
        return cls(content=b"", media_type=DEFAULT_IMAGE_TYPE, filename="")

    @property
    def size(self) -> int:
        return len(self.content)

    @property
    def is_empty(self) -> bool:
        return not self.content

    def data_uri(self) -> str:
        encoded = base64.b64encode(self.content).decode("ascii")
        return f"data:{self.media_type};base64,{encoded}"


class Product(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: Optional[int] = None
    name: str = ""
    description: Optional[str] = None
    price: Decimal = Decimal("0")
    quantity: int = 0
    category: Optional[CategoryRef] = None
    available: bool = True
    image_name: Optional[str] = Field(default=None, alias="imageName")
    image_type: Optional[str] = Field(default=None, alias="imageType")
    image_data: Optional[str] = Field(default=None, alias="image")

    @field_validator("category", mode="before")
    @classmethod
    def _coerce_category(cls, v: Any):
        if isinstance(v, str):
            return {"name": v}
        return v

    @property
    def category_id(self) -> Optional[int]:
        return self.category.id if self.category else None

    @property
    def category_name(self) -> Optional[str]:
        return self.category.name if self.category else None

    def inline_image(self) -> Optional[ProductImage]:
        """Image embedded in the payload (single-product reads), if any."""
        if not (self.image_name and self.image_data):
            return None
        try:
            return ProductImage.from_base64(self.image_data, self.image_type, self.image_name)
        except ValueError:
            return None


class CategoryPayload(BaseModel):
    id: Optional[int] = None
    name: str
    description: str = ""

    def to_json(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


class ProductPayload(BaseModel):
    """JSON part of the multipart create/update request."""
    id: Optional[int] = None
    name: str
    description: str = ""
    price: float
    quantity: int = 0
    category: Dict[str, int]
    available: bool = True

    def to_json(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


def format_price(price: Union[Decimal, float, int, None]) -> str:
    value = Decimal(str(price or 0)).quantize(Decimal("0.01"))
    return f"${value:,.2f}"


def format_stock(quantity: Optional[int]) -> str:
    if quantity and quantity > 0:
        return f"{quantity} in stock"
    return "Out of stock"
