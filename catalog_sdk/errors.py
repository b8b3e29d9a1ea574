# catalog_sdk/errors.py
from typing import Any, Optional


class CatalogError(Exception):
    """Base class for everything the admin SDK raises."""


class FormValidationError(CatalogError):
    """Local validation failure; raised before any network call."""

    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field = field
        self.message = message


class ApiError(CatalogError):
    """The catalog service answered with a non-2xx status."""

    def __init__(self, status_code: int, message: Optional[str] = None, payload: Any = None):
        super().__init__(message or f"HTTP {status_code}")
        self.status_code = status_code
        self.message = message
        self.payload = payload


class TransportError(CatalogError):
    """The request never got an answer (connection refused, timeout, ...)."""


class CacheClosedError(CatalogError):
    pass


class UnknownEndpointError(CatalogError):
    pass


def extract_message(payload: Any) -> Optional[str]:
    # {"message": ...} first, FastAPI-style {"detail": ...} second
    if isinstance(payload, dict):
        for key in ("message", "detail", "error"):
            value = payload.get(key)
            if isinstance(value, str) and value:
                return value
    if isinstance(payload, str) and payload.strip():
        return payload.strip()
    return None


def user_message(exc: BaseException, fallback: str) -> str:
    """Message to show a user for a failed network action."""
    if isinstance(exc, ApiError) and exc.message:
        return exc.message
    return fallback
