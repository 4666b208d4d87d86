"""Django ORM implementation of the Order repository.

Satisfies ``IOrderRepository`` using Django's QuerySet API.  The caller
(``OrderService``) owns the transaction; this class never opens one.

Domain events collected on the aggregate are handed to the in-process
event bus only after the surrounding transaction commits, so a rolled
back operation never announces anything.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, List, Optional

import structlog
from django.core.exceptions import ValidationError
from django.db import transaction

from modules.orders.exceptions import OrderDeletionForbidden
from modules.orders.models import Order, OrderLine, OrderStatusHistory
from modules.orders.repositories.interfaces import IOrderRepository
from modules.core.events import event_bus

logger = structlog.get_logger(__name__)


class OrderDjangoRepository(IOrderRepository):
    """Concrete Order repository backed by Django ORM."""

    # ------------------------------------------------------------------
    # Create (aggregate root + children)
    # ------------------------------------------------------------------

    def create(self, data: Dict[str, Any]) -> Order:
        order = Order(
            user_id=data["user_id"],
            shipping_address=data["shipping_address"],
            contact_phone=data["contact_phone"],
            notes=data.get("notes", ""),
        )
        order.save()

        total = Decimal("0.00")
        lines = data.get("lines", [])
        for line_data in lines:
            line = OrderLine(
                order=order,
                product_id=line_data["product_id"],
                quantity=line_data["quantity"],
                unit_price=line_data["unit_price"],
            )
            line.save()
            total += line.subtotal

        order.total = total
        order.save(update_fields=["total"])

        logger.info("order.persisted", order_id=str(order.id), line_count=len(lines))
        return order

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def get_by_id(self, id: str) -> Optional[Order]:
        """Retrieve an order with eager-loaded lines and history.

        Returns ``None`` for non-existent or invalid IDs.
        """
        try:
            return (
                Order.objects.prefetch_related("lines__product", "status_history")
                .filter(id=id)
                .first()
            )
        except (ValueError, ValidationError):
            return None

    def get_for_update(self, id: str) -> Optional[Order]:
        """Retrieve an order with a row-level lock (SELECT FOR UPDATE).

        Lines are prefetched so the caller can iterate them while the
        row is locked.
        """
        try:
            return (
                Order.objects.select_for_update()
                .prefetch_related("lines")
                .filter(id=id)
                .first()
            )
        except (ValueError, ValidationError):
            return None

    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[Order]:
        """List orders with optional filters.

        Supported filter keys include ``status``, ``user_id`` and
        ``created_at__range``.
        """
        queryset = Order.objects.prefetch_related("lines__product", "status_history")
        if filters:
            queryset = queryset.filter(**filters)
        return list(queryset)

    def list_by_status(self, status: str) -> List[Order]:
        return self.list({"status": status})

    def list_by_user(self, user_id: int) -> List[Order]:
        return self.list({"user_id": user_id})

    # ------------------------------------------------------------------
    # Save / Delete (IRepository contract)
    # ------------------------------------------------------------------

    def save(self, entity: Order) -> Order:
        """Persist an order and schedule its pending domain events."""
        entity.save()

        events = entity.domain_events
        for event in events:
            transaction.on_commit(
                lambda event=event: event_bus.publish(event), robust=True
            )
        entity.clear_domain_events()

        logger.info("order.saved", order_id=str(entity.id), event_count=len(events))
        return entity

    def delete(self, id: str) -> bool:
        raise OrderDeletionForbidden(f"Order {id} cannot be deleted; cancel it instead.")

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    def add_history(
        self,
        order_id: str,
        status: str,
        notes: str = "",
        old_status: Optional[str] = None,
    ) -> OrderStatusHistory:
        history = OrderStatusHistory.objects.create(
            order_id=order_id,
            old_status=old_status,
            new_status=status,
            notes=notes,
        )
        logger.info(
            "order.history_added",
            order_id=str(order_id),
            old_status=old_status,
            new_status=status,
        )
        return history
