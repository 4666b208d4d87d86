"""Stock Ledger.

The single serialization point for product stock.  No other component
writes ``Product.stock``: carts and orders reserve and release through
this service, which takes a row-level lock (``SELECT ... FOR UPDATE``)
on the product for the whole read-check-write.

Invariant: for every product,
``stock + outstanding reservations == initial stock + restocks``, and
``stock`` never goes below zero.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from modules.core.db import store_guard, unit_of_work
from modules.inventory.exceptions import (
    InsufficientStock,
    InvalidQuantity,
    ProductInactive,
    ProductNotFound,
)

if TYPE_CHECKING:
    from modules.catalog.models import Product
    from modules.catalog.repositories.interfaces import IProductRepository

logger = structlog.get_logger(__name__)


class StockLedger:
    """Reserve / release stock against a locked product row."""

    def __init__(self, product_repository: IProductRepository) -> None:
        self._product_repo = product_repository

    @unit_of_work
    def lock(self, product_id: str) -> Product:
        """Lock a product row for the rest of the caller's transaction.

        Raises:
            ProductNotFound: product does not exist.
        """
        product = self._product_repo.get_for_update(str(product_id))
        if not product:
            raise ProductNotFound(f"Product {product_id} not found.")
        return product

    @unit_of_work
    def reserve(self, product_id: str, quantity: int) -> Product:
        """Atomically check ``stock >= quantity`` and decrement.

        Raises:
            InvalidQuantity: quantity < 1.
            ProductNotFound: product does not exist.
            ProductInactive: product is inactive.
            InsufficientStock: not enough units available.
        """
        _require_positive(quantity)
        product = self.lock(product_id)
        log = logger.bind(product_id=str(product.id), quantity=quantity)

        if not product.is_active:
            log.warning("stock.reserve_rejected", reason="inactive")
            raise ProductInactive(f"Product {product_id} is inactive.")
        if product.stock < quantity:
            log.warning("stock.reserve_rejected", available=product.stock)
            raise InsufficientStock(
                product_id=str(product.id),
                available=product.stock,
                requested=quantity,
            )

        product.stock -= quantity
        product.save(update_fields=["stock"])
        log.info("stock.reserved", remaining=product.stock)
        return product

    @unit_of_work
    def release(self, product_id: str, quantity: int) -> Product:
        """Atomically return *quantity* units to the product.

        Works on inactive products too: cancelled orders and emptied carts
        must always give their stock back.

        Raises:
            InvalidQuantity: quantity < 1 (caller contract violation).
            ProductNotFound: product does not exist.
        """
        _require_positive(quantity)
        product = self.lock(product_id)

        product.stock += quantity
        product.save(update_fields=["stock"])
        logger.info(
            "stock.released",
            product_id=str(product.id),
            quantity=quantity,
            restored_stock=product.stock,
        )
        return product

    @unit_of_work
    def restock(self, product_id: str, quantity: int) -> Product:
        """Add newly received inventory to a product."""
        product = self.release(product_id, quantity)
        logger.info("stock.restocked", product_id=str(product.id), quantity=quantity)
        return product

    @store_guard
    def available(self, product_id: str) -> int:
        product = self._product_repo.get_by_id(str(product_id))
        if not product:
            raise ProductNotFound(f"Product {product_id} not found.")
        return product.stock


def _require_positive(quantity: int) -> None:
    if quantity < 1:
        raise InvalidQuantity(f"Quantity must be at least 1, got {quantity}.")
