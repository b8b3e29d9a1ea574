# catalog_sdk/views.py
import logging
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from .cache import CacheEntry, RequestCache, Subscription
from .errors import CatalogError, user_message
from .forms import CategoryForm, ProductForm
from .models import Category, Product, ProductImage, format_price, format_stock
from .notify import Notifier

logger = logging.getLogger(__name__)


class ViewState(str, Enum):
    LOADING = "loading"
    ERROR = "error"
    EMPTY = "empty"
    NO_RESULTS = "no_results"
    READY = "ready"


class ImageStatus(str, Enum):
    LOADING = "loading"
    LOADED = "loaded"
    PLACEHOLDER = "placeholder"


def _error_text(entry: CacheEntry) -> str:
    return user_message(entry.error, "Something went wrong") if entry.error else "Something went wrong"


class _View:
    """Owns cache subscriptions; ``close()`` is the unmount."""

    def __init__(self, cache: RequestCache, notifier: Optional[Notifier] = None,
                 on_change: Optional[Callable[[Any], None]] = None):
        self.cache = cache
        self.notifier = notifier or Notifier()
        self.on_change = on_change
        self._subs: List[Subscription] = []

    def _subscribe(self, name: str, arg: Any = None) -> Subscription:
        sub = self.cache.subscribe(name, arg, self._entry_changed)
        self._subs.append(sub)
        return sub

    def _drop(self, sub: Optional[Subscription]):
        if sub is not None:
            sub.unsubscribe()
            if sub in self._subs:
                self._subs.remove(sub)

    def _entry_changed(self, entry: CacheEntry):
        self._changed()

    def _changed(self):
        if self.on_change:
            self.on_change(self)

    def close(self):
        for sub in self._subs:
            sub.unsubscribe()
        self._subs.clear()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()


# ---------------------------
# Delete confirmation (request -> confirm/cancel)
# ---------------------------
class DeleteConfirmation:
    def __init__(self, cache: RequestCache, notifier: Notifier, mutation: str, entity_label: str):
        self.cache = cache
        self.notifier = notifier
        self.mutation = mutation
        self.entity_label = entity_label
        self.pending: Any = None
        self.deleting = False

    @property
    def is_open(self) -> bool:
        return self.pending is not None

    def request(self, entity) -> str:
        self.pending = entity
        return self.prompt

    @property
    def prompt(self) -> str:
        if self.pending is None:
            return ""
        return (f'Are you sure you want to delete "{self.pending.name}"? '
                "This action cannot be undone.")

    def cancel(self):
        self.pending = None

    async def confirm(self) -> bool:
        if self.pending is None:
            return False
        self.deleting = True
        try:
            await self.cache.mutate(self.mutation, self.pending.id)
        except CatalogError as e:
            self.notifier.error(user_message(e, f"Failed to delete {self.entity_label}"))
            return False
        finally:
            self.deleting = False
        self.notifier.success(f"{self.entity_label.capitalize()} deleted successfully")
        self.pending = None
        return True


# ---------------------------
# Product rows (per-row image resolution)
# ---------------------------
class ProductRow:
    def __init__(self, cache: RequestCache, product: Product, on_change: Optional[Callable[[], None]] = None):
        self.cache = cache
        self.product = product
        self._on_change = on_change
        self._sub: Optional[Subscription] = None
        if product.id is not None:
            self._sub = cache.subscribe("get_product_image", product.id, self._image_changed)

    def _image_changed(self, entry: CacheEntry):
        if self._on_change:
            self._on_change()

    @property
    def image_status(self) -> ImageStatus:
        if self._sub is None:
            return ImageStatus.PLACEHOLDER
        entry = self._sub.entry
        if entry.is_loading:
            return ImageStatus.LOADING
        if entry.is_error or not isinstance(entry.data, ProductImage) or entry.data.is_empty:
            return ImageStatus.PLACEHOLDER
        return ImageStatus.LOADED

    @property
    def image(self) -> Optional[ProductImage]:
        if self.image_status is ImageStatus.LOADED:
            return self._sub.entry.data
        return None

    @property
    def price_label(self) -> str:
        return format_price(self.product.price)

    @property
    def stock_label(self) -> str:
        return format_stock(self.product.quantity)

    def close(self):
        if self._sub is not None:
            self._sub.unsubscribe()
            self._sub = None


class _ProductRows:
    def __init__(self, cache: RequestCache, on_change: Callable[[], None]):
        self.cache = cache
        self.on_change = on_change
        self._rows: Dict[Any, ProductRow] = {}

    def sync(self, products: List[Product]) -> List[ProductRow]:
        rows, seen = [], set()
        for p in products:
            row = self._rows.get(p.id) if p.id is not None else None
            if row is None:
                row = ProductRow(self.cache, p, self.on_change)
                if p.id is not None:
                    self._rows[p.id] = row
            else:
                row.product = p
            seen.add(p.id)
            rows.append(row)
        for pid in [pid for pid in self._rows if pid not in seen]:
            self._rows.pop(pid).close()
        return rows

    def close(self):
        for row in self._rows.values():
            row.close()
        self._rows.clear()


# ---------------------------
# Category list
# ---------------------------
class CategoryListView(_View):
    def __init__(self, cache: RequestCache, notifier: Optional[Notifier] = None, on_change=None):
        super().__init__(cache, notifier, on_change)
        self.deletion = DeleteConfirmation(cache, self.notifier, "delete_category", "category")
        self._sub = self._subscribe("get_categories")

    @property
    def entry(self) -> CacheEntry:
        return self._sub.entry

    @property
    def items(self) -> List[Category]:
        return list(self.entry.data or [])

    @property
    def state(self) -> ViewState:
        entry = self.entry
        if entry.is_loading:
            return ViewState.LOADING
        if entry.is_error and entry.data is None:
            return ViewState.ERROR
        return ViewState.READY if self.items else ViewState.EMPTY

    @property
    def error_message(self) -> Optional[str]:
        return _error_text(self.entry) if self.entry.is_error else None

    def create_form(self, on_success=None) -> CategoryForm:
        return CategoryForm(self.cache, self.notifier, on_success=on_success)

    def edit_form(self, category: Category, on_success=None) -> CategoryForm:
        return CategoryForm(self.cache, self.notifier, category=category, on_success=on_success)


# ---------------------------
# Product management table
# ---------------------------
class ProductListView(_View):
    def __init__(self, cache: RequestCache, notifier: Optional[Notifier] = None, on_change=None):
        super().__init__(cache, notifier, on_change)
        self.deletion = DeleteConfirmation(cache, self.notifier, "delete_product", "product")
        self._rows = _ProductRows(cache, self._changed)
        self._sub = self._subscribe("get_products")
        self._categories = self._subscribe("get_categories")

    @property
    def entry(self) -> CacheEntry:
        return self._sub.entry

    @property
    def items(self) -> List[Product]:
        return list(self.entry.data or [])

    @property
    def rows(self) -> List[ProductRow]:
        return self._rows.sync(self.items)

    @property
    def categories(self) -> List[Category]:
        return list(self._categories.entry.data or [])

    @property
    def state(self) -> ViewState:
        entry = self.entry
        if entry.is_loading:
            return ViewState.LOADING
        if entry.is_error and entry.data is None:
            return ViewState.ERROR
        return ViewState.READY if self.items else ViewState.EMPTY

    @property
    def error_message(self) -> Optional[str]:
        return _error_text(self.entry) if self.entry.is_error else None

    def create_form(self, on_success=None) -> ProductForm:
        return ProductForm(self.cache, self.notifier, categories=self.categories, on_success=on_success)

    async def edit_form(self, product: Product, on_success=None) -> ProductForm:
        # list payloads carry no image bytes; the single-product read does
        try:
            entry = await self.cache.query("get_product", product.id)
            if isinstance(entry.data, Product):
                product = entry.data
        except CatalogError as e:
            logger.warning("could not load product %s for editing: %s", product.id, e)
        return ProductForm(self.cache, self.notifier, product=product,
                           categories=self.categories, on_success=on_success)

    def close(self):
        self._rows.close()
        super().close()


# ---------------------------
# Catalog (home) with keyword search
# ---------------------------
class CatalogView(_View):
    EMPTY_MESSAGES = {
        ViewState.EMPTY: ("No products available", "Add some products to get started"),
        ViewState.NO_RESULTS: ("No products found", "Try adjusting your search terms"),
    }

    def __init__(self, cache: RequestCache, notifier: Optional[Notifier] = None, on_change=None):
        super().__init__(cache, notifier, on_change)
        self._rows = _ProductRows(cache, self._changed)
        self._all = self._subscribe("get_products")
        self._search: Optional[Subscription] = None
        self.search_term = ""

    @property
    def searching(self) -> bool:
        return self._search is not None

    def search(self, term: str):
        term = (term or "").strip()
        if not term:
            self.clear_search()
            return
        if self._search is not None and self.search_term == term:
            return
        self._drop(self._search)
        self.search_term = term
        self._search = self._subscribe("search_products", term)
        self._changed()

    def clear_search(self):
        self._drop(self._search)
        self._search = None
        self.search_term = ""
        self._changed()

    @property
    def entry(self) -> CacheEntry:
        return (self._search or self._all).entry

    @property
    def items(self) -> List[Product]:
        return list(self.entry.data or [])

    @property
    def rows(self) -> List[ProductRow]:
        return self._rows.sync(self.items)

    @property
    def state(self) -> ViewState:
        entry = self.entry
        if entry.is_loading:
            return ViewState.LOADING
        if entry.is_error and entry.data is None:
            return ViewState.ERROR
        if self.items:
            return ViewState.READY
        return ViewState.NO_RESULTS if self.searching else ViewState.EMPTY

    @property
    def title(self) -> str:
        return "Search Results" if self.searching else "All Products"

    @property
    def summary(self) -> Optional[str]:
        if not self.searching:
            return None
        if self.entry.is_loading:
            return "Searching..."
        return f'Search results for "{self.search_term}" ({len(self.items)} found)'

    @property
    def empty_message(self):
        return self.EMPTY_MESSAGES.get(self.state)

    @property
    def error_message(self) -> Optional[str]:
        return _error_text(self.entry) if self.entry.is_error else None

    def close(self):
        self._rows.close()
        super().close()
