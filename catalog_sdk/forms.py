# catalog_sdk/forms.py
import logging
import math
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Callable, List, Optional, Union

from .cache import RequestCache
from .errors import CatalogError, FormValidationError, user_message
from .models import Category, CategoryPayload, Product, ProductImage, ProductPayload
from .notify import Notifier

logger = logging.getLogger(__name__)


class _EntityForm:
    """Shared submit flow: validate locally, mutate, notify, reset on success."""

    entity_label = "entity"

    def __init__(self, cache: RequestCache, notifier: Optional[Notifier] = None,
                 on_success: Optional[Callable[[Any], None]] = None):
        self.cache = cache
        self.notifier = notifier or Notifier()
        self.on_success = on_success
        self.error: Optional[str] = None
        self.error_field: Optional[str] = None
        self.submitting = False

    @property
    def is_editing(self) -> bool:
        raise NotImplementedError

    def validate(self):
        raise NotImplementedError

    def reset(self):
        raise NotImplementedError

    def _mutation(self, payload):
        raise NotImplementedError

    async def submit(self):
        """Returns the saved entity, or None when validation or the request failed."""
        self.error = self.error_field = None
        try:
            payload = self.validate()
        except FormValidationError as e:
            self.error, self.error_field = e.message, e.field
            self.notifier.validation_error(e.message)
            return None

        verb = "update" if self.is_editing else "create"
        name, arg = self._mutation(payload)
        self.submitting = True
        try:
            result = await self.cache.mutate(name, arg)
        except CatalogError as e:
            logger.warning("%s %s failed: %s", self.entity_label, verb, e)
            # entered values stay put so the user can retry
            self.error = user_message(e, f"Failed to {verb} {self.entity_label}")
            self.notifier.error(self.error)
            return None
        finally:
            self.submitting = False

        self.notifier.success(f"{self.entity_label.capitalize()} {verb}d successfully")
        self.reset()
        if self.on_success:
            self.on_success(result)
        return result

    def cancel(self):
        self.reset()


class CategoryForm(_EntityForm):
    entity_label = "category"

    def __init__(self, cache: RequestCache, notifier: Optional[Notifier] = None,
                 category: Optional[Category] = None, on_success=None):
        super().__init__(cache, notifier, on_success)
        self.category = category
        self.name = ""
        self.description = ""
        if category is not None:
            self.name = category.name or ""
            self.description = category.description or ""

    @property
    def is_editing(self) -> bool:
        return self.category is not None

    def validate(self) -> CategoryPayload:
        name = (self.name or "").strip()
        if not name:
            raise FormValidationError("name", "Category name is required")
        return CategoryPayload(
            id=self.category.id if self.is_editing else None,
            name=name,
            description=(self.description or "").strip(),
        )

    def _mutation(self, payload: CategoryPayload):
        return ("update_category" if self.is_editing else "create_category"), payload

    def reset(self):
        self.name = ""
        self.description = ""


class ProductForm(_EntityForm):
    entity_label = "product"

    def __init__(self, cache: RequestCache, notifier: Optional[Notifier] = None,
                 product: Optional[Product] = None, categories: Optional[List[Category]] = None,
                 on_success=None):
        super().__init__(cache, notifier, on_success)
        self.product = product
        self.categories = categories or []
        self.name = ""
        self.description = ""
        self.price = ""
        self.stock = ""
        self.category_id = ""
        self.image_file: Optional[ProductImage] = None
        self.image_preview: Optional[ProductImage] = None
        if product is not None:
            self.name = product.name or ""
            self.description = product.description or ""
            self.price = str(product.price) if product.price is not None else ""
            self.stock = str(product.quantity) if product.quantity is not None else ""
            self.category_id = str(product.category_id) if product.category_id is not None else ""
            self.image_preview = product.inline_image()

    @property
    def is_editing(self) -> bool:
        return self.product is not None

    # ---------------------------
    # Image selection
    # ---------------------------
    def select_image(self, source: Union[str, Path, ProductImage]) -> ProductImage:
        if isinstance(source, ProductImage):
            image = source
        else:
            try:
                image = ProductImage.from_path(source)
            except OSError as e:
                raise FormValidationError("image", f"Cannot read image: {e}") from e
        if not image.media_type.startswith("image/"):
            raise FormValidationError("image", "Please choose an image file")
        self.image_file = image
        self.image_preview = image
        return image

    def remove_image(self):
        self.image_file = None
        self.image_preview = None

    # ---------------------------
    # Validation
    # ---------------------------
    def _parse_price(self) -> Decimal:
        raw = (self.price or "").strip()
        try:
            value = Decimal(raw)
        except InvalidOperation:
            value = None
        # values past the float range would go out as Infinity
        if not raw or value is None or not value.is_finite() or value < 0 or not math.isfinite(float(value)):
            raise FormValidationError("price", "Please enter a valid price")
        return value

    def _parse_stock(self) -> int:
        raw = (self.stock or "").strip()
        if not raw:
            return 0
        try:
            value = int(raw)
        except ValueError:
            value = -1
        if value < 0:
            raise FormValidationError("stock", "Please enter a valid stock quantity")
        return value

    def _parse_category(self) -> int:
        raw = (self.category_id or "").strip()
        try:
            return int(raw)
        except ValueError:
            raise FormValidationError("category", "Please select a category")

    def validate(self) -> ProductPayload:
        name = (self.name or "").strip()
        if not name:
            raise FormValidationError("name", "Product name is required")
        price = self._parse_price()
        quantity = self._parse_stock()
        category_id = self._parse_category()
        if not self.is_editing and (self.image_file is None or self.image_file.is_empty):
            raise FormValidationError("image", "Please select an image for the product")
        return ProductPayload(
            id=self.product.id if self.is_editing else None,
            name=name,
            description=(self.description or "").strip(),
            price=float(price),
            quantity=quantity,
            category={"id": category_id},
            available=True,
        )

    def _mutation(self, payload: ProductPayload):
        if self.is_editing:
            # no new file means an empty part, which keeps the stored image
            return "update_product", (payload, self.image_file)
        return "create_product", (payload, self.image_file)

    def reset(self):
        self.name = ""
        self.description = ""
        self.price = ""
        self.stock = ""
        self.category_id = ""
        self.remove_image()
