"""Order Lifecycle Engine (Use Cases).

Turns a cart into an immutable order, drives the order state machine and
returns stock to the ledger on cancellation.  Every write runs in a
single transaction (``unit_of_work``) and locks the rows it touches.

Business rules enforced:
- Checkout transfers the cart's reservations to the order: lines are
  copied with their quantity and price snapshot and the cart lines are
  deleted without releasing stock.  Nothing is reserved twice.
- Transitions follow ``VALID_TRANSITIONS``; ``paid_at``, ``shipped_at``
  and ``delivered_at`` are stamped once, the first time the status is
  reached.
- Only pending or paid orders can be cancelled.  Cancelling releases
  every line's quantity through the Stock Ledger; this is the only path
  that gives an order's stock back.
- Orders are never deleted.
- History recorded on every status change.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, List, Optional

import structlog
from django.utils import timezone

from modules.core.db import store_guard, unit_of_work
from modules.orders.constants import STATUS_TIMESTAMP_FIELDS, OrderStatus
from modules.orders.events import OrderCancelled, OrderCreated, OrderStatusChanged
from modules.orders.exceptions import (
    CannotCancel,
    EmptyCart,
    InvalidTransition,
    OrderDeletionForbidden,
    OrderNotFound,
)

if TYPE_CHECKING:
    from modules.carts.repositories.interfaces import ICartRepository
    from modules.inventory.services import StockLedger
    from modules.orders.dtos import CreateOrderDTO
    from modules.orders.models import Order
    from modules.orders.repositories.interfaces import IOrderRepository

logger = structlog.get_logger(__name__)


class OrderService:
    """Application service for Order use-cases.

    Receives repositories and the Stock Ledger via constructor injection.
    """

    def __init__(
        self,
        order_repository: IOrderRepository,
        cart_repository: ICartRepository,
        stock_ledger: StockLedger,
    ) -> None:
        self._order_repo = order_repository
        self._cart_repo = cart_repository
        self._ledger = stock_ledger

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    @unit_of_work
    def create_from_cart(self, dto: CreateOrderDTO) -> Order:
        """Create a pending order from the user's cart.

        Steps:
        1. Lock the user's cart lines (ordered by product id).
        2. Copy them into order lines and compute the total.
        3. Record the initial status history.
        4. Delete the copied cart lines; their reservations now belong
           to the order.

        Raises:
            EmptyCart: the user has no cart lines.
        """
        log = logger.bind(user_id=dto.user_id)
        log.info("order.creation_started")

        cart_lines = self._cart_repo.lines_for_user(dto.user_id, lock=True)
        if not cart_lines:
            log.warning("order.empty_cart")
            raise EmptyCart(f"User {dto.user_id} has no items in the cart.")

        order = self._order_repo.create(
            {
                "user_id": dto.user_id,
                "shipping_address": dto.shipping_address,
                "contact_phone": dto.contact_phone,
                "notes": dto.notes,
                "lines": [
                    {
                        "product_id": line.product_id,
                        "quantity": line.quantity,
                        "unit_price": line.unit_price,
                    }
                    for line in cart_lines
                ],
            }
        )
        order.add_domain_event(OrderCreated(aggregate_id=order.id))
        self._order_repo.save(order)
        self._order_repo.add_history(
            order_id=str(order.id),
            status=OrderStatus.PENDING,
            notes="Order created",
        )

        # Only the rows locked above: a line inserted concurrently keeps
        # its own reservation and stays in the cart.
        for line in cart_lines:
            self._cart_repo.delete(str(line.id))

        log.info(
            "order.created",
            order_id=str(order.id),
            total=str(order.total),
            line_count=len(cart_lines),
        )
        return self._order_repo.get_by_id(str(order.id)) or order

    @unit_of_work
    def transition(self, order_id: str, new_status: str, notes: str = "") -> Order:
        """Move an order along the state machine.

        A transition to ``cancelled`` is delegated to :meth:`cancel` so
        stock is always released.

        Raises:
            OrderNotFound: order does not exist.
            InvalidTransition: the edge is not allowed.
            CannotCancel: cancellation requested from a non-cancellable state.
        """
        if new_status == OrderStatus.CANCELLED:
            return self.cancel(order_id, notes=notes)

        order = self._order_repo.get_for_update(str(order_id))
        if not order:
            raise OrderNotFound(f"Order {order_id} not found.")

        log = logger.bind(
            order_id=str(order_id),
            current_status=order.status,
            new_status=new_status,
        )

        if new_status not in OrderStatus.values or not order.can_transition_to(
            new_status
        ):
            log.warning("order.invalid_transition")
            raise InvalidTransition(
                f"Cannot transition from {order.status} to {new_status}."
            )

        old_status = order.status
        order.status = new_status
        timestamp_field = STATUS_TIMESTAMP_FIELDS.get(new_status)
        if timestamp_field and getattr(order, timestamp_field) is None:
            setattr(order, timestamp_field, timezone.now())

        order.add_domain_event(OrderStatusChanged(aggregate_id=order.id))
        self._order_repo.save(order)
        self._order_repo.add_history(
            order_id=str(order.id),
            status=new_status,
            notes=notes,
            old_status=old_status,
        )

        log.info("order.status_updated")
        return self._order_repo.get_by_id(str(order_id)) or order

    @unit_of_work
    def cancel(self, order_id: str, notes: str = "") -> Order:
        """Cancel an order and release its stock.

        The order row is locked **first** so two concurrent cancellations
        cannot both release the stock.

        Raises:
            OrderNotFound: order does not exist.
            CannotCancel: order is shipped, delivered or already cancelled.
        """
        order = self._order_repo.get_for_update(str(order_id))
        if not order:
            raise OrderNotFound(f"Order {order_id} not found.")

        log = logger.bind(order_id=str(order_id), current_status=order.status)

        if not order.is_cancellable:
            log.warning("order.cancel_not_allowed")
            raise CannotCancel(f"Cannot cancel order in status {order.status}.")

        # Products are locked in id order to prevent deadlocks.
        for line in sorted(order.lines.all(), key=lambda item: str(item.product_id)):
            self._ledger.release(str(line.product_id), line.quantity)

        old_status = order.status
        order.status = OrderStatus.CANCELLED
        order.add_domain_event(OrderCancelled(aggregate_id=order.id))
        self._order_repo.save(order)
        self._order_repo.add_history(
            order_id=str(order.id),
            status=OrderStatus.CANCELLED,
            notes=notes or "Order cancelled",
            old_status=old_status,
        )

        log.info("order.cancelled")
        return self._order_repo.get_by_id(str(order_id)) or order

    def delete(self, order_id: str) -> None:
        """Orders are never deleted, whatever their status.

        Raises:
            OrderDeletionForbidden: always.
        """
        logger.warning("order.delete_rejected", order_id=str(order_id))
        raise OrderDeletionForbidden(
            f"Order {order_id} cannot be deleted; cancel it instead."
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @store_guard
    def get_order(self, order_id: str) -> Order:
        """Raises ``OrderNotFound`` if the order does not exist."""
        order = self._order_repo.get_by_id(str(order_id))
        if not order:
            raise OrderNotFound(f"Order {order_id} not found.")
        return order

    @store_guard
    def get_orders_by_state(self, status: str) -> List[Order]:
        return self._order_repo.list_by_status(status)

    @store_guard
    def get_user_order_history(self, user_id: int) -> List[Order]:
        return self._order_repo.list_by_user(user_id)

    @store_guard
    def list_orders(self, filters: Optional[Dict[str, Any]] = None) -> List[Order]:
        return self._order_repo.list(filters)
