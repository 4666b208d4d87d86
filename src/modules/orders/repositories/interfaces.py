"""Order repository interface.

Extends ``IRepository[Order]`` with methods required by the Order
aggregate: atomic creation with lines, status history tracking and the
per-status / per-user listings.

The Service Layer depends exclusively on this contract (DIP).
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.orders.models import Order, OrderStatusHistory


class IOrderRepository(IRepository["Order"]):
    """Repository contract for the Order aggregate root.

    The Order aggregate includes OrderLine children and
    OrderStatusHistory records.  Orders are never deleted.
    """

    @abstractmethod
    def create(self, data: Dict[str, Any]) -> Order:
        """Create an order with its lines.

        ``data`` must include ``user_id``, ``shipping_address``,
        ``contact_phone``, ``lines`` (list of dicts with ``product_id``,
        ``quantity``, ``unit_price``) and optionally ``notes``.
        """

    @abstractmethod
    def add_history(
        self,
        order_id: str,
        status: str,
        notes: str = "",
        old_status: Optional[str] = None,
    ) -> OrderStatusHistory:
        """Record a status change in the order's audit trail."""

    @abstractmethod
    def list_by_status(self, status: str) -> List[Order]:
        """Orders currently in *status*, newest first."""

    @abstractmethod
    def list_by_user(self, user_id: int) -> List[Order]:
        """A user's orders, newest first."""
