"""Stock Ledger exceptions."""

from __future__ import annotations

from modules.catalog.exceptions import ProductNotFound
from modules.core.exceptions import DomainError

__all__ = ["InsufficientStock", "InvalidQuantity", "ProductInactive", "ProductNotFound"]


class InsufficientStock(DomainError):
    """Not enough stock to cover the requested reservation."""

    code = "insufficient_stock"

    def __init__(self, product_id: str, available: int, requested: int) -> None:
        self.product_id = product_id
        self.available = available
        self.requested = requested
        super().__init__(
            f"Product {product_id}: requested {requested}, available {available}."
        )


class ProductInactive(DomainError):
    """The product (or one of its parents) is inactive and cannot be sold."""

    code = "product_inactive"


class InvalidQuantity(DomainError, ValueError):
    """A quantity is below the minimum allowed for the operation."""

    code = "invalid_quantity"
