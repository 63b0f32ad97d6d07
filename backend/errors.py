# backend/errors.py
"""Domain exceptions raised by the cart and order services.

Every error carries a stable machine-readable ``kind`` and a human message.
The HTTP layer maps each class to a status code (see ``main.ERROR_STATUS_CODES``).
"""

from typing import Optional


class StoreError(Exception):
    """Base exception for all cart / order errors."""

    kind = "INTERNAL_ERROR"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ValidationError(StoreError):
    """Raised on malformed or missing input."""

    kind = "VALIDATION_ERROR"


class NotFoundError(StoreError):
    """Raised when a book, cart, cart line or order does not exist."""

    kind = "NOT_FOUND"

    def __init__(self, resource: str):
        self.resource = resource
        super().__init__(f"{resource} not found")


class InsufficientStockError(StoreError):
    """Raised when the requested quantity exceeds available stock."""

    kind = "INSUFFICIENT_STOCK"

    def __init__(self, title: Optional[str] = None, book_id: Optional[int] = None):
        self.title = title
        self.book_id = book_id
        msg = "Insufficient stock"
        if title:
            msg = f"Insufficient stock for {title}"
        super().__init__(msg)


class QuantityLimitError(StoreError):
    """Raised when a cart line would exceed the per-line quantity cap."""

    kind = "QUANTITY_LIMIT"

    def __init__(self, limit: int, merged: bool = False):
        self.limit = limit
        msg = f"Maximum quantity is {limit} per item"
        if merged:
            msg = f"Maximum quantity of {limit} reached for this item"
        super().__init__(msg)


class EmptyCartError(StoreError):
    """Raised when an order is placed from a missing or empty cart."""

    kind = "EMPTY_CART"

    def __init__(self):
        super().__init__("Cart is empty")


class AccessDeniedError(StoreError):
    """Raised when a caller reads an order they neither own nor administer."""

    kind = "ACCESS_DENIED"

    def __init__(self, message: str = "Access denied"):
        super().__init__(message)


class InternalError(StoreError):
    """Raised on storage failures and order number exhaustion."""

    kind = "INTERNAL_ERROR"
