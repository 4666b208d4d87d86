"""Cart Aggregate (Use Cases).

A user's cart maps products to quantities.  Every unit on a line is
reserved in the Stock Ledger at the moment it is added, so carts compete
for stock up front instead of at checkout.

Locking order, shared with the Stock Ledger and the Order engine:
product row first, then cart line row.  Operations over several products
lock them in ascending product-id order.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, List

import structlog

from modules.carts.dtos import CartLineOutputDTO, CartOutputDTO
from modules.carts.exceptions import CartLineNotFound
from modules.carts.models import CartLine
from modules.catalog.exceptions import InactiveParent
from modules.core.db import store_guard, unit_of_work
from modules.core.exceptions import StoreUnavailable
from modules.inventory.exceptions import InvalidQuantity, ProductInactive

if TYPE_CHECKING:
    from modules.carts.repositories.interfaces import ICartRepository
    from modules.catalog.models import Product
    from modules.inventory.services import StockLedger

logger = structlog.get_logger(__name__)


class CartService:
    """Application service for the Cart aggregate."""

    def __init__(self, cart_repository: ICartRepository, stock_ledger: StockLedger) -> None:
        self._cart_repo = cart_repository
        self._ledger = stock_ledger

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    @unit_of_work
    def add_or_update(self, user_id: int, product_id: str, quantity: int) -> CartLine:
        """Set the quantity of a product in the user's cart.

        New lines reserve the full quantity and snapshot the current price.
        Existing lines reserve or release only the difference.

        Raises:
            InvalidQuantity: quantity < 1.
            ProductNotFound: product does not exist.
            ProductInactive: product is inactive.
            InactiveParent: product's subcategory or category is inactive.
            InsufficientStock: not enough stock for the new units.
        """
        if quantity < 1:
            raise InvalidQuantity(f"Quantity must be at least 1, got {quantity}.")

        product = self._ledger.lock(product_id)
        line = self._cart_repo.get_line_for_update(user_id, str(product.id))
        log = logger.bind(user_id=user_id, product_id=str(product.id))

        if line is None:
            self._check_sellable(product)
            self._ledger.reserve(str(product.id), quantity)
            line = self._cart_repo.save(
                CartLine(
                    user_id=user_id,
                    product_id=product.id,
                    quantity=quantity,
                    unit_price=product.price,
                )
            )
            log.info("cart.line_added", quantity=quantity, unit_price=str(line.unit_price))
            return line

        delta = quantity - line.quantity
        if delta > 0:
            self._ledger.reserve(str(product.id), delta)
        elif delta < 0:
            self._ledger.release(str(product.id), -delta)

        line.quantity = quantity
        line = self._cart_repo.save(line)
        log.info("cart.line_updated", quantity=quantity, delta=delta)
        return line

    @unit_of_work
    def remove(self, user_id: int, product_id: str) -> None:
        """Release a line's reservation and delete it.

        Raises:
            ProductNotFound: product does not exist.
            CartLineNotFound: the user has no line for the product.
        """
        product = self._ledger.lock(product_id)
        line = self._cart_repo.get_line_for_update(user_id, str(product.id))
        if line is None:
            raise CartLineNotFound(
                f"User {user_id} has no cart line for product {product_id}."
            )

        self._ledger.release(str(product.id), line.quantity)
        self._cart_repo.delete(str(line.id))
        logger.info(
            "cart.line_removed",
            user_id=user_id,
            product_id=str(product.id),
            released=line.quantity,
        )

    @unit_of_work
    def clear(self, user_id: int) -> int:
        """Release every line of the user's cart and delete them.

        Returns the number of lines removed.
        """
        product_ids = sorted(
            str(line.product_id) for line in self._cart_repo.lines_for_user(user_id)
        )
        for product_id in product_ids:
            self._ledger.lock(product_id)

        removed = 0
        for line in self._cart_repo.lines_for_user(user_id, lock=True):
            if str(line.product_id) not in product_ids:
                # Added after the snapshot; its product is not locked by us.
                continue
            self._ledger.release(str(line.product_id), line.quantity)
            self._cart_repo.delete(str(line.id))
            removed += 1

        logger.info("cart.cleared", user_id=user_id, lines_removed=removed)
        return removed

    def release_stale_lines(self, older_than: datetime, batch_size: int = 500) -> int:
        """Expire lines not touched since *older_than*.

        Each line is released in its own transaction.  A line whose release
        hits ``StoreUnavailable`` is logged and left for the next sweep;
        the remaining lines are still processed.  Returns the lines released.
        """
        released = 0
        failed = 0
        for line_id in self._cart_repo.stale_line_ids(older_than, batch_size):
            try:
                if self._release_stale_line(line_id, older_than):
                    released += 1
            except StoreUnavailable as exc:
                failed += 1
                logger.error("cart.line_expiry_failed", line_id=line_id, error=str(exc))
        logger.info("cart.stale_lines_released", released=released, failed=failed)
        return released

    @unit_of_work
    def _release_stale_line(self, line_id: str, older_than: datetime) -> bool:
        snapshot = self._cart_repo.get_by_id(line_id)
        if snapshot is None:
            return False
        self._ledger.lock(str(snapshot.product_id))
        line = self._cart_repo.get_for_update(line_id)
        if line is None or line.updated_at >= older_than:
            return False

        self._ledger.release(str(line.product_id), line.quantity)
        self._cart_repo.delete(str(line.id))
        logger.info(
            "cart.line_expired",
            user_id=line.user_id,
            product_id=str(line.product_id),
            released=line.quantity,
        )
        return True

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @store_guard
    def total(self, user_id: int) -> Decimal:
        return self._cart_repo.total_for_user(user_id)

    @store_guard
    def get_cart(self, user_id: int) -> CartOutputDTO:
        lines: List[CartLine] = self._cart_repo.lines_for_user(user_id)
        return CartOutputDTO(
            user_id=user_id,
            lines=[CartLineOutputDTO.from_entity(line) for line in lines],
            total=sum((line.subtotal for line in lines), Decimal("0.00")),
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _check_sellable(product: Product) -> None:
        if not product.is_active:
            raise ProductInactive(f"Product {product.id} is inactive.")
        if not product.subcategory.is_active:
            raise InactiveParent(f"Subcategory of product {product.id} is inactive.")
        if not product.category.is_active:
            raise InactiveParent(f"Category of product {product.id} is inactive.")
