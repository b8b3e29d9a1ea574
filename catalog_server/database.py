import itertools
from typing import Any, Dict, Tuple

# This file holds all the in-memory data stores of the reference service.

CATEGORIES: Dict[int, Dict[str, Any]] = {}
PRODUCTS: Dict[int, Dict[str, Any]] = {}
# product id -> (content, media type, file name)
IMAGES: Dict[int, Tuple[bytes, str, str]] = {}

_ids = {"category": itertools.count(1), "product": itertools.count(1)}


def next_id(kind: str) -> int:
    return next(_ids[kind])


def reset_all():
    CATEGORIES.clear()
    PRODUCTS.clear()
    IMAGES.clear()
    for kind in _ids:
        _ids[kind] = itertools.count(1)
